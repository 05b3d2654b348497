"""Import meals from a CSV file into the meal store.

Accepts either the CSV produced by `GET /api/meals/export?format=csv` (only
its MEALS table is read) or a plain CSV with snake_case headers:

    date,name,description,calories,protein,carbs,fat

Rows with a malformed date, an empty name or an unusable calorie value are
skipped with a warning. By default a row is also skipped when a meal with the
same date, name and calories is already stored, so re-importing an export is
idempotent.

    python -m data.ingest_meals path/to/export.csv
"""
from __future__ import annotations

import asyncio
import io
import math
from typing import Dict, List, Optional

import pandas as pd
from pydantic import ValidationError as SchemaValidationError

from core.logger import get_logger
from database.store import MealStore
from schemas.meal_schema import MealCreate

logger = get_logger("data.ingest_meals")

MEALS_MARKER = "# MEALS DATA"
TOTALS_MARKER = "# DAILY TOTALS DATA"

# Export headers -> MealCreate fields
HEADER_ALIASES = {
    "date": "date",
    "name": "name",
    "description": "description",
    "calories": "calories",
    "protein (g)": "protein",
    "protein": "protein",
    "carbs (g)": "carbs",
    "carbs": "carbs",
    "fat (g)": "fat",
    "fat": "fat",
}


def _meals_section(text: str) -> str:
    """The CSV text of the meals table, without comment lines."""
    if MEALS_MARKER in text:
        text = text.split(MEALS_MARKER, 1)[1].split(TOTALS_MARKER, 1)[0]
    lines = [line for line in text.splitlines() if line.strip() and not line.startswith("#")]
    return "\n".join(lines)


def _number(raw: str) -> Optional[float]:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_meals_csv(csv_path: str) -> List[Dict]:
    """Parse the CSV and return a list of meal dictionaries ready for `MealCreate`.

    Args:
        csv_path: Path to an export CSV or a snake_case meals CSV.

    Returns:
        List of dictionaries with keys: date, name, description, calories,
        protein, carbs, fat.
    """
    logger.info("Parsing meals CSV: %s", csv_path)
    with open(csv_path, encoding="utf-8") as handle:
        section = _meals_section(handle.read())
    if not section or section.strip() == "No meals found":
        logger.info("No meals found in %s", csv_path)
        return []

    df = pd.read_csv(io.StringIO(section), dtype=str, keep_default_na=False)
    df = df.rename(columns=lambda s: HEADER_ALIASES.get(s.strip().lower(), s.strip().lower()))

    meals = []
    for index, row in df.iterrows():
        candidate = {
            "date": row.get("date", "").strip(),
            "name": row.get("name", "").strip(),
            "description": row.get("description", "").strip() or None,
            "calories": _number(row.get("calories", "")),
        }
        for macro in ("protein", "carbs", "fat"):
            value = _number(row.get(macro, ""))
            if value is not None:
                candidate[macro] = value
        try:
            meal = MealCreate.model_validate(candidate)
        except SchemaValidationError as exc:
            logger.warning("Skipping row %s: %s", index + 1, exc.errors()[0]["msg"])
            continue
        meals.append(meal.model_dump())

    logger.info("Parsed %s meals from CSV", len(meals))
    return meals


async def _already_stored(store: MealStore, meal: MealCreate) -> bool:
    existing = await store.get_meals_by_date(meal.date)
    return any(m.name == meal.name and m.calories == meal.calories for m in existing)


async def import_meals_from_csv(csv_path: str, store: MealStore, skip_duplicates: bool = True) -> int:
    """Add every parsed meal from `csv_path` to an open store.

    Args:
        csv_path: Path to the CSV file.
        store: An opened `MealStore`.
        skip_duplicates: Skip rows matching a stored meal's date, name and calories.

    Returns:
        Number of meals added.
    """
    added = 0
    for item in parse_meals_csv(csv_path):
        meal = MealCreate.model_validate(item)
        if skip_duplicates and await _already_stored(store, meal):
            continue
        await store.add_meal(meal)
        added += 1
    logger.info("Imported %s new meals into DB", added)
    return added


async def _run(csv_path: str, database_url: Optional[str]) -> int:
    store = MealStore(database_url) if database_url else MealStore()
    await store.open()
    try:
        return await import_meals_from_csv(csv_path, store)
    finally:
        await store.close()


if __name__ == "__main__":
    import argparse

    p = argparse.ArgumentParser("Import meals from CSV into the DB")
    p.add_argument("csv_path")
    p.add_argument("--database-url", default=None, help="Async SQLAlchemy URL (defaults to DATABASE_URL)")
    args = p.parse_args()
    count = asyncio.run(_run(args.csv_path, args.database_url))
    print(f"Imported {count} meals")
