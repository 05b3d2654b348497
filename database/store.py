"""Meal store: the single owner of the meals table.

`MealStore` holds the async engine for the lifetime of the application. It
is opened once by the application lifespan, shared by every request, and
closed on shutdown. Each operation runs in its own session and commits
before returning, so a meal created by one call is visible to the next.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from core.config import DATABASE_URL
from core.logger import get_logger
from core.repository import BaseRepository
from schemas.meal_schema import DailyTotal, MealCreate, MealUpdate
from services import aggregation
from .database import create_engine, create_session_factory, init_db
from .models import Meal, utcnow

logger = get_logger("database.store")


class MealRepository(BaseRepository[Meal]):
    """Session-scoped queries specific to meals."""

    def __init__(self, session: AsyncSession):
        super().__init__(Meal, session)

    async def by_date(self, date: str) -> List[Meal]:
        return await self.find(Meal.date == date, order_by=(Meal.created_at.asc(), Meal.id.asc()))

    async def everything(self) -> List[Meal]:
        return await self.find(order_by=(Meal.date.asc(), Meal.created_at.asc(), Meal.id.asc()))


class MealStore:
    """Durable CRUD and aggregation over meals.

    Args:
        database_url: SQLAlchemy async URL, e.g. ``sqlite+aiosqlite:///calorie_tracker.db``.
    """

    def __init__(self, database_url: str = DATABASE_URL):
        self.database_url = database_url
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def open(self) -> None:
        """Create the engine and make sure the schema exists."""
        if self._engine is not None:
            return
        engine = create_engine(self.database_url)
        try:
            await init_db(engine)
        except Exception:
            await engine.dispose()
            raise
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        logger.info("Meal store opened (%s)", self.database_url)

    async def close(self) -> None:
        """Dispose the engine; safe to call more than once."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("MealStore is not open")
        async with self._session_factory() as session:
            yield session

    async def add_meal(self, meal: MealCreate) -> int:
        """Insert a meal and return its new id.

        Missing macros default to 0. Both timestamps are set from the same
        clock reading, so a fresh meal has ``created_at == updated_at``.
        """
        now = utcnow()
        row = Meal(
            date=meal.date,
            name=meal.name,
            description=meal.description,
            calories=meal.calories,
            protein=meal.protein or 0,
            carbs=meal.carbs or 0,
            fat=meal.fat or 0,
            created_at=now,
            updated_at=now,
        )
        async with self.session() as session:
            row = await MealRepository(session).create(row)
        logger.info("Meal %s added for %s (%s kcal)", row.id, row.date, row.calories)
        return row.id

    async def get_meal_by_id(self, meal_id: int) -> Optional[Meal]:
        async with self.session() as session:
            return await MealRepository(session).get_by_id(meal_id)

    async def get_meals_by_date(self, date: str) -> List[Meal]:
        """Meals logged on `date`, in the order they were created."""
        async with self.session() as session:
            return await MealRepository(session).by_date(date)

    async def update_meal(self, meal_id: int, changes: MealUpdate) -> bool:
        """Apply the fields present in `changes` and refresh `updated_at`.

        Existence is the caller's concern: an unknown id simply updates no
        rows and returns False.
        """
        values = changes.changes()
        values["updated_at"] = utcnow()
        async with self.session() as session:
            affected = await MealRepository(session).update_by_id(meal_id, values)
        logger.info("Meal %s updated (%s)", meal_id, ", ".join(sorted(values)))
        return affected > 0

    async def delete_meal(self, meal_id: int) -> bool:
        """Hard delete; deleting an unknown id is a no-op."""
        async with self.session() as session:
            deleted = await MealRepository(session).delete_by_id(meal_id)
        if deleted:
            logger.info("Meal %s deleted", meal_id)
        return deleted

    async def get_all_meals(self) -> List[Meal]:
        """Every meal, ordered by date then creation time."""
        async with self.session() as session:
            return await MealRepository(session).everything()

    async def count_meals(self) -> int:
        async with self.session() as session:
            return await MealRepository(session).count()

    async def get_daily_totals(self, start_date: str, end_date: str) -> List[DailyTotal]:
        async with self.session() as session:
            return await aggregation.daily_totals(session, start_date, end_date)

    async def get_all_time_daily_totals(
        self, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> List[DailyTotal]:
        async with self.session() as session:
            return await aggregation.all_time_daily_totals(session, start_date, end_date)

    async def get_all_daily_totals(self) -> List[DailyTotal]:
        """Totals for every logged day; used by the export."""
        return await self.get_all_time_daily_totals()
