"""Schemas for meal requests, meal responses and daily totals.

`MealCreate` and `MealUpdate` are the single validation step for meal input:
handlers and the store only ever see values that already passed them.
"""

import math
import re
from datetime import datetime
from typing import Annotated, Any, List, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from core.exceptions import ValidationError

DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
DATE_FORMAT_MESSAGE = "Invalid date format. Use YYYY-MM-DD"

# Largest value SQLite can store in an INTEGER column; also bounds meal ids.
SQLITE_MAX_INTEGER = 2**63 - 1
SQLITE_MIN_INTEGER = -(2**63)


def is_valid_date(value: Any) -> bool:
    """True when `value` is a `YYYY-MM-DD` string."""
    return isinstance(value, str) and DATE_PATTERN.fullmatch(value) is not None


def validate_date(value: str, field: str = "date") -> str:
    """Check a path or query date before it reaches the store.

    Raises:
        ValidationError: If `value` is not a `YYYY-MM-DD` string.
    """
    if not is_valid_date(value):
        raise ValidationError(DATE_FORMAT_MESSAGE, field=field)
    return value


def _check_date(value: str) -> str:
    if not is_valid_date(value):
        raise ValueError(DATE_FORMAT_MESSAGE)
    return value


def _whole_calories(value: Any) -> Any:
    # Calories are stored as an integer column; accept any finite JSON number.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("Calories must be a positive number")
    if not math.isfinite(value) or value < 0:
        raise ValueError("Calories must be a positive number")
    return int(round(value))


MealDate = Annotated[str, AfterValidator(_check_date)]
Calories = Annotated[int, BeforeValidator(_whole_calories), Field(ge=0, le=SQLITE_MAX_INTEGER)]
Grams = Annotated[float, Field(ge=0, strict=True, allow_inf_nan=False)]


class MealCreate(BaseModel):
    """Payload for logging a new meal."""

    date: MealDate = Field(..., examples=["2024-01-15"], description="Calendar date, YYYY-MM-DD")
    name: str = Field(..., min_length=1, examples=["Chicken salad"])
    description: Optional[str] = Field(None, examples=["Grilled chicken, lettuce, olive oil"])
    calories: Calories = Field(..., examples=[350])
    protein: Grams = Field(0, examples=[20.0], description="Protein in grams")
    carbs: Grams = Field(0, examples=[30.0], description="Carbohydrates in grams")
    fat: Grams = Field(0, examples=[15.0], description="Fat in grams")


class MealUpdate(BaseModel):
    """Partial update: only the fields present in the request are applied."""

    date: Optional[MealDate] = None
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    calories: Optional[Calories] = None
    protein: Optional[Grams] = None
    carbs: Optional[Grams] = None
    fat: Optional[Grams] = None

    @model_validator(mode="after")
    def _reject_nulls(self):
        for field in ("date", "name", "calories", "protein", "carbs", "fat"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def changes(self) -> dict:
        """Fields explicitly sent by the client, including a null description."""
        return self.model_dump(exclude_unset=True)


class MealResponse(BaseModel):
    """A stored meal as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    date: str
    name: str
    description: Optional[str] = None
    calories: int
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    created_at: datetime
    updated_at: datetime


class DailyTotal(BaseModel):
    """Nutrition sums over every meal logged on one date."""

    date: str
    total_calories: int
    total_protein: float
    total_carbs: float
    total_fat: float
    meal_count: int


class DateRange(BaseModel):
    start: str
    end: str


class ExportDocument(BaseModel):
    """Full JSON export of meals and their daily totals."""

    model_config = ConfigDict(populate_by_name=True)

    meals: List[MealResponse]
    daily_totals: List[DailyTotal] = Field(..., alias="dailyTotals")
    export_date: str = Field(..., alias="exportDate")
    total_meals: int = Field(..., alias="totalMeals")
    total_days: int = Field(..., alias="totalDays")
    date_range: Optional[DateRange] = Field(None, alias="dateRange")
