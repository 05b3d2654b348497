"""SQLAlchemy ORM model for the calorie tracker.

The whole persisted state is a single `meals` table. Daily totals are never
stored; they are aggregated from this table on every read.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Text
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone

Base = declarative_base()


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (SQLite stores no tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Meal(Base):
    """A single logged food entry for a calendar date."""

    __tablename__ = "meals"
    # AUTOINCREMENT keeps deleted ids from being handed out again.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    date = Column(String(10), nullable=False, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    calories = Column(Integer, nullable=False)
    protein = Column(Float, default=0, server_default="0")
    carbs = Column(Float, default=0, server_default="0")
    fat = Column(Float, default=0, server_default="0")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Meal id={self.id} date={self.date} name={self.name!r} calories={self.calories}>"
