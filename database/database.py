"""Database helpers: async engine, session factory and schema initialization.

`init_db` creates the `meals` table when it is missing and adds the macro
columns to tables created before protein/carbs/fat were tracked.
"""

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from core.logger import get_logger
from .models import Base

logger = get_logger("database")

# Columns added after the first release; older databases get them on startup.
MACRO_COLUMNS = ("protein", "carbs", "fat")


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for `database_url` (e.g. sqlite+aiosqlite:///file.db)."""
    return create_async_engine(database_url, echo=echo)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory whose objects stay readable after commit."""
    return async_sessionmaker(bind=engine, expire_on_commit=False)


def _add_missing_macro_columns(sync_conn) -> None:
    existing = {column["name"] for column in inspect(sync_conn).get_columns("meals")}
    for column in MACRO_COLUMNS:
        if column not in existing:
            logger.info("Adding missing column meals.%s", column)
            sync_conn.execute(text(f"ALTER TABLE meals ADD COLUMN {column} REAL DEFAULT 0"))


async def init_db(engine: AsyncEngine) -> None:
    """Initialize the database schema.

    Creates all tables from the ORM metadata, then patches older `meals`
    tables with any missing macro columns.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.run_sync(_add_missing_macro_columns)
    logger.info("Meals table initialized successfully")
