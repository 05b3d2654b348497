"""Shared fixtures: a temporary meal store, a fake upstream provider and an API client."""

import json

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from database.store import MealStore
from main import create_app


def chat_completion(content):
    """OpenAI-style chat completion envelope carrying `content`."""
    return {
        "id": "chatcmpl-test-123",
        "object": "chat.completion",
        "model": "deepseek/deepseek-chat-v3.1:free",
        "choices": [{
            "index": 0,
            "message": {"role": "assistant", "content": content},
            "finish_reason": "stop",
        }],
        "usage": {"prompt_tokens": 150, "completion_tokens": 50, "total_tokens": 200},
    }


class FakeProvider:
    """Stands in for the chat-completion API behind an `httpx.MockTransport`."""

    def __init__(self):
        self.requests = []
        self._reply = lambda request: httpx.Response(200, json=chat_completion("{}"))

    def respond_with_content(self, content):
        self._reply = lambda request: httpx.Response(200, json=chat_completion(content))

    def respond_with_estimate(self, **estimate):
        self.respond_with_content(json.dumps(estimate))

    def respond_with_status(self, status_code, body=None, headers=None):
        self._reply = lambda request: httpx.Response(status_code, json=body or {}, headers=headers)

    def respond_with_body(self, body):
        self._reply = lambda request: httpx.Response(200, json=body)

    def fail_with(self, error_cls, message="boom"):
        def _raise(request):
            raise error_cls(message, request=request)
        self._reply = _raise

    def handle(self, request):
        self.requests.append(request)
        return self._reply(request)

    @property
    def last_payload(self):
        return json.loads(self.requests[-1].content)

    def transport(self):
        return httpx.MockTransport(self.handle)


@pytest_asyncio.fixture
async def store(tmp_path):
    """An opened store backed by a fresh SQLite file."""
    meal_store = MealStore(f"sqlite+aiosqlite:///{tmp_path / 'meals.db'}")
    await meal_store.open()
    yield meal_store
    await meal_store.close()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(tmp_path, provider):
    """API client whose lifespan opens a temporary store and the fake provider."""
    app = create_app(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        llm_transport=provider.transport(),
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def meal_payload():
    return {
        "date": "2024-01-15",
        "name": "Breakfast burrito",
        "description": "Eggs, cheese, tortilla",
        "calories": 350,
        "protein": 20,
        "carbs": 30,
        "fat": 15,
    }
