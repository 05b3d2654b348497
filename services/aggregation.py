"""Daily nutrition totals.

Totals are summed from the `meals` table on every call; nothing is cached,
so a total always reflects the meals stored at the time of the query.
"""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from database.models import Meal
from schemas.meal_schema import DailyTotal

logger = get_logger("services.aggregation")


def _totals_statement(*criteria):
    return (
        select(
            Meal.date,
            func.sum(Meal.calories).label("total_calories"),
            func.sum(func.coalesce(Meal.protein, 0)).label("total_protein"),
            func.sum(func.coalesce(Meal.carbs, 0)).label("total_carbs"),
            func.sum(func.coalesce(Meal.fat, 0)).label("total_fat"),
            func.count(Meal.id).label("meal_count"),
        )
        .where(*criteria)
        .group_by(Meal.date)
        .order_by(Meal.date.asc())
    )


async def _aggregate(session: AsyncSession, *criteria) -> List[DailyTotal]:
    result = await session.execute(_totals_statement(*criteria))
    return [
        DailyTotal(
            date=row.date,
            total_calories=int(row.total_calories or 0),
            total_protein=float(row.total_protein or 0),
            total_carbs=float(row.total_carbs or 0),
            total_fat=float(row.total_fat or 0),
            meal_count=int(row.meal_count),
        )
        for row in result
    ]


async def daily_totals(session: AsyncSession, start_date: str, end_date: str) -> List[DailyTotal]:
    """Per-day totals for every date in the inclusive range, ascending."""
    totals = await _aggregate(session, Meal.date.between(start_date, end_date))
    logger.debug("Daily totals %s..%s: %s days", start_date, end_date, len(totals))
    return totals


async def all_time_daily_totals(
    session: AsyncSession,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> List[DailyTotal]:
    """Per-day totals over all history, optionally bounded on either side.

    Each bound is applied on its own: passing only `start_date` returns every
    day from that date onwards, passing neither returns every logged day.
    """
    criteria = []
    if start_date:
        criteria.append(Meal.date >= start_date)
    if end_date:
        criteria.append(Meal.date <= end_date)
    return await _aggregate(session, *criteria)
