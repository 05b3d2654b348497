"""Database package: ORM model, engine helpers and the meal store."""

from . import models
from .database import (
    create_engine,
    create_session_factory,
    init_db,
)
from .store import MealStore, MealRepository

__all__ = [
    "models",
    "create_engine",
    "create_session_factory",
    "init_db",
    "MealStore",
    "MealRepository",
]
