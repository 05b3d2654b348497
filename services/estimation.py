"""Nutrition estimation from free-text food descriptions.

The upstream model is asked for a bare JSON object. Its reply is classified
by `parse_estimate` into one of three outcomes:

* VALID    -- a well-formed object; negative numbers are clamped to zero.
* FALLBACK -- not usable as JSON, but the text contains a number, which is
              taken as a calorie figure with zero macros and low confidence.
* FAILED   -- nothing usable at all.

Only FAILED becomes an error for the caller.
"""

import json
import math
import re
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from core.config import LLM_DEFAULT_MODEL
from core.exceptions import EstimationError
from core.logger import get_logger
from .llm_client import ChatCompletionClient

logger = get_logger("services.estimation")

CONFIDENCE_LEVELS = ("high", "medium", "low")
NUMERIC_FIELDS = ("calories", "protein", "carbs", "fat")
FALLBACK_REASONING = "Estimated from partial response - macronutrients unavailable"

AVAILABLE_MODELS: List[Dict[str, str]] = [
    {"id": "deepseek/deepseek-chat-v3.1:free", "name": "DeepSeek V3.1 (Free)", "description": "DeepSeek's latest chat model - Free tier"},
    {"id": "openai/gpt-3.5-turbo", "name": "GPT-3.5 Turbo", "description": "Fast and efficient OpenAI model"},
    {"id": "openai/gpt-4o", "name": "GPT-4o", "description": "Latest GPT-4 model"},
    {"id": "anthropic/claude-3-haiku", "name": "Claude 3 Haiku", "description": "Fast Anthropic model"},
    {"id": "anthropic/claude-3-sonnet", "name": "Claude 3 Sonnet", "description": "Balanced Anthropic model"},
    {"id": "google/gemini-pro", "name": "Gemini Pro", "description": "Google AI model"},
]

_FIRST_NUMBER = re.compile(r"[0-9]+")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


@dataclass(frozen=True)
class NutritionEstimate:
    calories: float
    protein: float
    carbs: float
    fat: float
    confidence: str
    reasoning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class OutcomeKind(str, Enum):
    VALID = "valid"
    FALLBACK = "fallback"
    FAILED = "failed"


@dataclass(frozen=True)
class EstimationOutcome:
    kind: OutcomeKind
    estimate: Optional[NutritionEstimate] = None


def build_prompt(description: str) -> str:
    """Prompt asking for a single JSON object describing `description`."""
    return f"""You are a nutrition expert. Analyze this food and provide nutritional estimates.

Food: "{description}"

IMPORTANT: You must respond with ONLY valid JSON. No other text before or after.

Required JSON format (use actual numbers, not placeholders):
{{
  "calories": 450,
  "protein": 35.5,
  "carbs": 42.0,
  "fat": 15.2,
  "confidence": "high",
  "reasoning": "Based on typical portions"
}}

Rules:
1. ALL numbers must be actual estimates (never 0 unless truly zero calories)
2. Protein, carbs, and fat are in grams
3. Confidence must be exactly "high", "medium", or "low"
4. For multiple items, sum all values
5. Estimate based on standard serving sizes
6. Return ONLY the JSON object, nothing else"""


def _extract_json_object(text: str) -> str:
    cleaned = text.strip()
    cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"\s*```$", "", cleaned)

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("Model output does not contain a JSON object")
    return _TRAILING_COMMA.sub(r"\1", cleaned[start:end + 1])


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _validated_estimate(data: Any) -> Optional[NutritionEstimate]:
    """Estimate from a parsed object, or None if any field is unusable."""
    if not isinstance(data, dict):
        return None
    if not all(_is_number(data.get(field)) for field in NUMERIC_FIELDS):
        return None
    if data.get("confidence") not in CONFIDENCE_LEVELS:
        return None

    values = {field: data[field] if data[field] >= 0 else 0 for field in NUMERIC_FIELDS}
    reasoning = data.get("reasoning")
    return NutritionEstimate(
        confidence=data["confidence"],
        reasoning=reasoning if isinstance(reasoning, str) else None,
        **values,
    )


def _fallback_estimate(text: str) -> Optional[NutritionEstimate]:
    match = _FIRST_NUMBER.search(text)
    if not match:
        return None
    return NutritionEstimate(
        calories=int(match.group(0)),
        protein=0,
        carbs=0,
        fat=0,
        confidence="low",
        reasoning=FALLBACK_REASONING,
    )


def parse_estimate(content: Optional[str]) -> EstimationOutcome:
    """Classify a raw model reply as VALID, FALLBACK or FAILED."""
    text = content or ""
    try:
        data = json.loads(_extract_json_object(text))
    except ValueError:
        data = None

    estimate = _validated_estimate(data)
    if estimate is not None:
        return EstimationOutcome(OutcomeKind.VALID, estimate)

    estimate = _fallback_estimate(text)
    if estimate is not None:
        return EstimationOutcome(OutcomeKind.FALLBACK, estimate)
    return EstimationOutcome(OutcomeKind.FAILED)


class EstimationGateway:
    """Turns food descriptions into nutrition estimates via the upstream model.

    Stateless: every call is an independent request with no caching of
    earlier answers.
    """

    def __init__(self, client: ChatCompletionClient, default_model: str = LLM_DEFAULT_MODEL):
        self.client = client
        self.default_model = default_model

    async def estimate(self, description: str, api_key: str, model: Optional[str] = None) -> NutritionEstimate:
        """Estimate nutrition for `description`.

        Raises:
            EstimationError: The reply held neither valid JSON nor a number.
            AppException: Upstream failures, see `ChatCompletionClient.complete`.
        """
        model = model or self.default_model
        logger.info("Estimating nutrition with %s (%s chars)", model, len(description))
        content = await self.client.complete(build_prompt(description), api_key=api_key, model=model)

        outcome = parse_estimate(content)
        if outcome.kind is OutcomeKind.FAILED:
            logger.error("Could not parse estimate from LLM response: %r", content)
            raise EstimationError()
        if outcome.kind is OutcomeKind.FALLBACK:
            logger.warning("Falling back to partial estimate; raw LLM response: %r", content)
        return outcome.estimate


def available_models() -> List[Dict[str, str]]:
    """Static catalogue of selectable upstream models."""
    return [dict(model) for model in AVAILABLE_MODELS]
