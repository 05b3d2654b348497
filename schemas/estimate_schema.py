"""Schemas for the nutrition estimation endpoints."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Literal, Optional, Union


class EstimateRequest(BaseModel):
    """Free-text food description plus the caller's provider credential."""

    model_config = ConfigDict(populate_by_name=True)

    description: str = Field(..., examples=["2 eggs and a slice of toast"])
    api_key: str = Field(..., alias="apiKey", description="API key for the upstream provider")
    model: Optional[str] = Field(None, examples=["openai/gpt-4o"], description="Upstream model id")

    @field_validator("description")
    @classmethod
    def _description_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Description cannot be empty")
        return value

    @field_validator("api_key")
    @classmethod
    def _api_key_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("API key is required")
        return value

    @field_validator("model")
    @classmethod
    def _blank_model_means_default(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


class EstimateResponse(BaseModel):
    calories: Union[int, float]
    protein: Union[int, float]
    carbs: Union[int, float]
    fat: Union[int, float]
    confidence: Literal["high", "medium", "low"]
    reasoning: Optional[str] = None


class ModelInfo(BaseModel):
    """Selectable upstream model with display metadata."""

    id: str
    name: str
    description: str
