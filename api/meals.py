"""Meals API router.

CRUD over logged meals plus the aggregate and export views. Route order
matters: the literal `/stats`, `/export` and `/totals/...` paths are
registered before `/{date}`, otherwise `"stats"` would be matched as a date.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Body, Depends, Path, Query, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SchemaValidationError
from typing import Annotated, Any, Dict, List, Optional

from core.exceptions import NotFoundError, ValidationError, describe_validation_errors
from core.logger import get_logger
from database.deps import get_store
from database.store import MealStore
from schemas import DailyTotal, MealCreate, MealResponse, MealUpdate, validate_date
from schemas.meal_schema import SQLITE_MAX_INTEGER, SQLITE_MIN_INTEGER
from services.export import EXPORT_FORMATS, collect_export, export_filename, render_csv

logger = get_logger("api.meals")
router = APIRouter(prefix="/api/meals", tags=["meals"])

# Ids outside the storable range are rejected as malformed (400).
MealId = Annotated[int, Path(ge=SQLITE_MIN_INTEGER, le=SQLITE_MAX_INTEGER)]


@router.get("/stats", response_model=List[DailyTotal])
async def get_stats(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    store: MealStore = Depends(get_store),
):
    """All-time daily totals, optionally bounded by `startDate` and/or `endDate`."""
    if start_date:
        validate_date(start_date, field="startDate")
    if end_date:
        validate_date(end_date, field="endDate")
    return await store.get_all_time_daily_totals(start_date or None, end_date or None)


@router.get("/export")
async def export_meals(
    export_format: str = Query("json", alias="format"),
    store: MealStore = Depends(get_store),
):
    """Download every meal and daily total as JSON or CSV."""
    if export_format not in EXPORT_FORMATS:
        raise ValidationError('Invalid format. Use "json" or "csv"', field="format")

    exported_at = datetime.now(timezone.utc)
    document = await collect_export(store, exported_at)
    filename = export_filename(exported_at, export_format)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    logger.info("Exporting %s meals over %s days as %s", document.total_meals, document.total_days, export_format)

    if export_format == "csv":
        return Response(content=render_csv(document), media_type="text/csv", headers=headers)
    return JSONResponse(content=document.model_dump(mode="json", by_alias=True), headers=headers)


@router.get("/totals/{start_date}/{end_date}", response_model=List[DailyTotal])
async def get_daily_totals(start_date: str, end_date: str, store: MealStore = Depends(get_store)):
    """Daily totals for the inclusive range, one entry per logged day."""
    validate_date(start_date, field="startDate")
    validate_date(end_date, field="endDate")
    return await store.get_daily_totals(start_date, end_date)


@router.get("/{date}", response_model=List[MealResponse])
async def get_meals_for_date(date: str, store: MealStore = Depends(get_store)):
    """Meals logged on `date`, oldest first."""
    validate_date(date)
    return await store.get_meals_by_date(date)


@router.post("", response_model=MealResponse, status_code=status.HTTP_201_CREATED)
async def create_meal(payload: MealCreate, store: MealStore = Depends(get_store)):
    """Log a meal and return it as stored."""
    meal_id = await store.add_meal(payload)
    return await store.get_meal_by_id(meal_id)


def _parse_update(payload: Dict[str, Any]) -> MealUpdate:
    try:
        return MealUpdate.model_validate(payload)
    except SchemaValidationError as exc:
        errors = describe_validation_errors(exc.errors(), location=("body",))
        raise ValidationError("Validation error", errors=errors) from exc


@router.put("/{meal_id}", response_model=MealResponse)
async def update_meal(
    meal_id: MealId,
    payload: Dict[str, Any] = Body(..., examples=[{"calories": 420}]),
    store: MealStore = Depends(get_store),
):
    """Apply a partial update to an existing meal.

    The id is checked first: an unknown id is a 404 even when the body is
    invalid. Field values are validated only once the meal is known to exist.
    """
    if await store.get_meal_by_id(meal_id) is None:
        raise NotFoundError("Meal", meal_id)
    await store.update_meal(meal_id, _parse_update(payload))
    return await store.get_meal_by_id(meal_id)


@router.delete("/{meal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meal(meal_id: MealId, store: MealStore = Depends(get_store)):
    """Delete an existing meal."""
    if await store.get_meal_by_id(meal_id) is None:
        raise NotFoundError("Meal", meal_id)
    await store.delete_meal(meal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
