"""Tests for reply parsing and the estimation gateway."""

import json

import httpx
import pytest
import pytest_asyncio

from core.exceptions import (
    EstimationError,
    UpstreamAuthError,
    UpstreamBadRequestError,
    UpstreamRateLimitError,
    UpstreamServiceError,
)
from services.estimation import (
    FALLBACK_REASONING,
    EstimationGateway,
    OutcomeKind,
    available_models,
    build_prompt,
    parse_estimate,
)
from services.llm_client import ChatCompletionClient


def test_valid_reply_round_trips_exactly():
    outcome = parse_estimate('{"calories":95,"protein":0.5,"carbs":25.0,"fat":0.3,"confidence":"high"}')

    assert outcome.kind is OutcomeKind.VALID
    estimate = outcome.estimate
    assert (estimate.calories, estimate.protein, estimate.carbs, estimate.fat) == (95, 0.5, 25.0, 0.3)
    assert estimate.confidence == "high"
    assert estimate.reasoning is None


def test_reasoning_is_kept():
    outcome = parse_estimate(json.dumps({
        "calories": 450, "protein": 35.5, "carbs": 42, "fat": 15.2,
        "confidence": "medium", "reasoning": "Typical portion",
    }))
    assert outcome.estimate.reasoning == "Typical portion"


def test_negative_values_are_clamped_to_zero():
    outcome = parse_estimate('{"calories":-50,"protein":-2,"carbs":10,"fat":-0.1,"confidence":"low"}')

    assert outcome.kind is OutcomeKind.VALID
    assert (outcome.estimate.calories, outcome.estimate.protein, outcome.estimate.fat) == (0, 0, 0)
    assert outcome.estimate.carbs == 10


@pytest.mark.parametrize("content", [
    '```json\n{"calories": 200, "protein": 10, "carbs": 20, "fat": 5, "confidence": "high"}\n```',
    'Sure! {"calories": 200, "protein": 10, "carbs": 20, "fat": 5, "confidence": "high"} Enjoy.',
    '{"calories": 200, "protein": 10, "carbs": 20, "fat": 5, "confidence": "high",}',
])
def test_json_is_recovered_from_wrapped_replies(content):
    outcome = parse_estimate(content)
    assert outcome.kind is OutcomeKind.VALID
    assert outcome.estimate.calories == 200


def test_prose_with_a_number_falls_back():
    outcome = parse_estimate("The apple contains approximately 95 calories")

    assert outcome.kind is OutcomeKind.FALLBACK
    estimate = outcome.estimate
    assert estimate.calories == 95
    assert (estimate.protein, estimate.carbs, estimate.fat) == (0, 0, 0)
    assert estimate.confidence == "low"
    assert estimate.reasoning == FALLBACK_REASONING


@pytest.mark.parametrize("content", [
    '{"calories": 300, "protein": 10, "carbs": 20, "fat": 5, "confidence": "very high"}',
    '{"calories": "300", "protein": 10, "carbs": 20, "fat": 5, "confidence": "high"}',
    '{"calories": 300, "protein": true, "carbs": 20, "fat": 5, "confidence": "high"}',
    '{"calories": 300, "carbs": 20, "fat": 5, "confidence": "high"}',
])
def test_invalid_objects_fall_back_to_first_number(content):
    outcome = parse_estimate(content)
    assert outcome.kind is OutcomeKind.FALLBACK
    assert outcome.estimate.calories == 300
    assert outcome.estimate.confidence == "low"


@pytest.mark.parametrize("content", ["I cannot estimate that.", "", None, "{}"])
def test_reply_without_numbers_fails(content):
    outcome = parse_estimate(content)
    assert outcome.kind is OutcomeKind.FAILED
    assert outcome.estimate is None


def test_prompt_embeds_description():
    prompt = build_prompt("2 eggs and toast")
    assert 'Food: "2 eggs and toast"' in prompt
    assert '"high", "medium", or "low"' in prompt


def test_model_catalogue():
    models = available_models()
    assert len(models) == 6
    assert models[0]["id"] == "deepseek/deepseek-chat-v3.1:free"
    assert all(set(m) == {"id", "name", "description"} for m in models)


@pytest_asyncio.fixture
async def gateway(provider):
    async with httpx.AsyncClient(transport=provider.transport()) as http_client:
        client = ChatCompletionClient(
            http_client,
            base_url="https://llm.test/api/v1",
            referer="http://localhost:3000",
            title="Calorie Tracker",
        )
        yield EstimationGateway(client, default_model="deepseek/deepseek-chat-v3.1:free")


@pytest.mark.asyncio
async def test_gateway_sends_one_chat_completion_request(provider, gateway):
    provider.respond_with_estimate(calories=95, protein=0.5, carbs=25.0, fat=0.3, confidence="high")

    estimate = await gateway.estimate("1 medium apple", api_key="sk-test")

    assert estimate.calories == 95
    assert len(provider.requests) == 1
    request = provider.requests[0]
    assert str(request.url) == "https://llm.test/api/v1/chat/completions"
    assert request.headers["authorization"] == "Bearer sk-test"
    assert request.headers["http-referer"] == "http://localhost:3000"
    assert request.headers["x-title"] == "Calorie Tracker"
    payload = provider.last_payload
    assert payload["model"] == "deepseek/deepseek-chat-v3.1:free"
    assert payload["response_format"] == {"type": "json_object"}
    assert payload["messages"][0]["role"] == "user"
    assert "1 medium apple" in payload["messages"][0]["content"]


@pytest.mark.asyncio
async def test_gateway_uses_requested_model(provider, gateway):
    provider.respond_with_estimate(calories=1, protein=0, carbs=0, fat=0, confidence="low")
    await gateway.estimate("water", api_key="sk-test", model="openai/gpt-4o")
    assert provider.last_payload["model"] == "openai/gpt-4o"


@pytest.mark.asyncio
async def test_gateway_returns_fallback_estimate(provider, gateway):
    provider.respond_with_content("The apple contains approximately 95 calories")
    estimate = await gateway.estimate("apple", api_key="sk-test")
    assert estimate.calories == 95
    assert estimate.reasoning == FALLBACK_REASONING


@pytest.mark.asyncio
async def test_gateway_raises_when_nothing_usable(provider, gateway):
    provider.respond_with_content("Sorry, no idea.")
    with pytest.raises(EstimationError):
        await gateway.estimate("mystery", api_key="sk-test")


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code, body, expected", [
    (401, {"error": {"message": "No auth credentials found"}}, UpstreamAuthError),
    (429, {"error": {"message": "Too many requests"}}, UpstreamRateLimitError),
    (400, {"error": {"message": "bad model"}}, UpstreamBadRequestError),
    (404, {"error": "no such model"}, UpstreamBadRequestError),
    (500, {"error": {"message": "internal"}}, UpstreamServiceError),
    (503, None, UpstreamServiceError),
])
async def test_upstream_status_mapping(provider, gateway, status_code, body, expected):
    provider.respond_with_status(status_code, body)
    with pytest.raises(expected):
        await gateway.estimate("apple", api_key="sk-test")


@pytest.mark.asyncio
async def test_rate_limit_keeps_retry_after(provider, gateway):
    provider.respond_with_status(429, {}, headers={"Retry-After": "30"})
    with pytest.raises(UpstreamRateLimitError) as excinfo:
        await gateway.estimate("apple", api_key="sk-test")
    assert excinfo.value.details["retry_after"] == "30"


@pytest.mark.asyncio
async def test_bad_request_carries_upstream_message(provider, gateway):
    provider.respond_with_status(400, {"error": {"message": "bad model"}})
    with pytest.raises(UpstreamBadRequestError) as excinfo:
        await gateway.estimate("apple", api_key="sk-test")
    assert excinfo.value.details == {"upstream_status": 400, "upstream_message": "bad model"}


@pytest.mark.asyncio
@pytest.mark.parametrize("error_cls, reason", [
    (httpx.ReadTimeout, "timeout"),
    (httpx.ConnectError, "network_error"),
])
async def test_transport_failures(provider, gateway, error_cls, reason):
    provider.fail_with(error_cls)
    with pytest.raises(UpstreamServiceError) as excinfo:
        await gateway.estimate("apple", api_key="sk-test")
    assert excinfo.value.details["reason"] == reason


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"choices": []},
    {"unexpected": True},
    {"choices": [{"message": None}]},
    {"choices": [{"message": {"content": [{"type": "text", "text": "95 calories"}]}}]},
    {"choices": [{"message": {"content": 95}}]},
])
async def test_malformed_envelope(provider, gateway, body):
    provider.respond_with_body(body)
    with pytest.raises(UpstreamServiceError) as excinfo:
        await gateway.estimate("apple", api_key="sk-test")
    assert excinfo.value.details["reason"] == "malformed_response"
