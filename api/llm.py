"""LLM API router: nutrition estimation and the model catalogue."""

from fastapi import APIRouter, Depends, Request
from typing import List

from core.logger import get_logger
from schemas import EstimateRequest, EstimateResponse, ModelInfo
from services.estimation import EstimationGateway, available_models

logger = get_logger("api.llm")
router = APIRouter(prefix="/api/llm", tags=["llm"])


def get_estimation_gateway(request: Request) -> EstimationGateway:
    """Return the gateway built at startup around the shared HTTP client."""
    return request.app.state.estimator


@router.post("/estimate-calories", response_model=EstimateResponse, response_model_exclude_none=True)
async def estimate_calories(
    payload: EstimateRequest,
    gateway: EstimationGateway = Depends(get_estimation_gateway),
):
    """Estimate calories and macros for a free-text food description.

    Upstream failures come back as 401 (bad key), 429 (throttled), 400
    (request refused) or 500; a reply with no usable number is a 500.
    """
    estimate = await gateway.estimate(payload.description, payload.api_key, payload.model)
    return EstimateResponse(**estimate.to_dict())


@router.get("/models", response_model=List[ModelInfo])
def list_models():
    """Selectable upstream models with display names."""
    return available_models()
