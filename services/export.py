"""Full-data export of meals and daily totals.

Two renderings of the same `ExportDocument`:

* JSON -- the document itself, camelCase keys.
* CSV  -- a `#` comment header followed by two tables (meals, then daily
  totals). The free-text `Name` and `Description` cells are always wrapped
  in double quotes, with embedded quotes doubled and a missing description
  written as `""`. Other cells are written bare.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

import pandas as pd

from database.models import Meal
from schemas.meal_schema import DailyTotal, DateRange, ExportDocument, MealResponse

EXPORT_FORMATS = ("json", "csv")

MEAL_COLUMNS = {
    "id": "ID",
    "date": "Date",
    "name": "Name",
    "description": "Description",
    "calories": "Calories",
    "protein": "Protein (g)",
    "carbs": "Carbs (g)",
    "fat": "Fat (g)",
    "created_at": "Created At",
    "updated_at": "Updated At",
}

TOTAL_COLUMNS = {
    "date": "Date",
    "total_calories": "Total Calories",
    "total_protein": "Total Protein (g)",
    "total_carbs": "Total Carbs (g)",
    "total_fat": "Total Fat (g)",
    "meal_count": "Meal Count",
}

# Free-text columns, quoted unconditionally.
QUOTED_COLUMNS = ("name", "description")


def iso_timestamp(moment: datetime) -> str:
    """UTC timestamp in the `2024-01-15T10:30:00.000Z` form."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def export_filename(exported_at: datetime, fmt: str) -> str:
    return f"calorie-tracker-export-{exported_at.astimezone(timezone.utc).date().isoformat()}.{fmt}"


def build_export_document(
    meals: List[Meal],
    daily_totals: List[DailyTotal],
    exported_at: Optional[datetime] = None,
) -> ExportDocument:
    """Assemble the export from already-ordered meals and totals."""
    exported_at = exported_at or datetime.now(timezone.utc)
    date_range = None
    if daily_totals:
        date_range = DateRange(start=daily_totals[0].date, end=daily_totals[-1].date)
    return ExportDocument(
        meals=[MealResponse.model_validate(meal) for meal in meals],
        daily_totals=daily_totals,
        export_date=iso_timestamp(exported_at),
        total_meals=len(meals),
        total_days=len(daily_totals),
        date_range=date_range,
    )


def _quoted(values: pd.Series) -> pd.Series:
    return '"' + values.fillna("").astype(str).str.replace('"', '""', regex=False) + '"'


def _table(rows: List[dict], columns: dict, empty_message: str, quoted: Sequence[str] = ()) -> str:
    if not rows:
        return empty_message
    frame = pd.DataFrame(rows, columns=list(columns))
    for column in quoted:
        frame[column] = _quoted(frame[column])
    lines = [",".join(columns.values())]
    lines.extend(frame.astype(str).agg(",".join, axis=1))
    return "\n".join(lines)


def render_csv(document: ExportDocument) -> str:
    """Render the export as the two-table CSV document."""
    meal_rows = [meal.model_dump(mode="json") for meal in document.meals]
    total_rows = [total.model_dump() for total in document.daily_totals]
    start = document.date_range.start if document.date_range else "N/A"
    end = document.date_range.end if document.date_range else "N/A"

    return "\n".join([
        f"# Calorie Tracker Export - {document.export_date}",
        f"# Total Meals: {document.total_meals}",
        f"# Total Days: {document.total_days}",
        f"# Date Range: {start} to {end}",
        "",
        "# MEALS DATA",
        _table(meal_rows, MEAL_COLUMNS, "No meals found", quoted=QUOTED_COLUMNS),
        "",
        "# DAILY TOTALS DATA",
        _table(total_rows, TOTAL_COLUMNS, "No daily totals found"),
    ])


async def collect_export(store, exported_at: Optional[datetime] = None) -> ExportDocument:
    """Read every meal and daily total from `store` into an export document."""
    meals = await store.get_all_meals()
    daily_totals = await store.get_all_daily_totals()
    return build_export_document(meals, daily_totals, exported_at)
