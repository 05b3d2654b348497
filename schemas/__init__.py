"""Pydantic schema package for request and response models."""

from .meal_schema import (
    MealCreate,
    MealUpdate,
    MealResponse,
    DailyTotal,
    DateRange,
    ExportDocument,
    validate_date,
)
from .estimate_schema import EstimateRequest, EstimateResponse, ModelInfo

__all__ = [
    "MealCreate",
    "MealUpdate",
    "MealResponse",
    "DailyTotal",
    "DateRange",
    "ExportDocument",
    "validate_date",
    "EstimateRequest",
    "EstimateResponse",
    "ModelInfo",
]
