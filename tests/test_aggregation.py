"""Tests for daily totals computed from stored meals."""

import pytest

from schemas.meal_schema import MealCreate, MealUpdate


async def log(store, date, name, calories, **macros):
    return await store.add_meal(MealCreate(date=date, name=name, calories=calories, **macros))


@pytest.mark.asyncio
async def test_totals_sum_every_meal_of_the_day(store):
    await log(store, "2024-01-15", "Breakfast", 350, protein=20, carbs=30, fat=15)
    await log(store, "2024-01-15", "Lunch", 500, protein=25, carbs=45, fat=20)

    totals = await store.get_daily_totals("2024-01-15", "2024-01-15")

    assert len(totals) == 1
    day = totals[0]
    assert day.date == "2024-01-15"
    assert day.total_calories == 850
    assert day.total_protein == 45
    assert day.total_carbs == 75
    assert day.total_fat == 35
    assert day.meal_count == 2


@pytest.mark.asyncio
async def test_range_is_inclusive_ascending_and_skips_empty_days(store):
    await log(store, "2024-01-20", "Dinner", 700)
    await log(store, "2024-01-14", "Before range", 100)
    await log(store, "2024-01-15", "Breakfast", 300)
    await log(store, "2024-01-21", "After range", 100)

    totals = await store.get_daily_totals("2024-01-15", "2024-01-20")

    assert [t.date for t in totals] == ["2024-01-15", "2024-01-20"]
    assert [t.total_calories for t in totals] == [300, 700]


@pytest.mark.asyncio
async def test_no_meals_in_range_gives_empty_list(store):
    await log(store, "2024-03-01", "Snack", 150)
    assert await store.get_daily_totals("2024-01-01", "2024-01-31") == []


@pytest.mark.asyncio
async def test_totals_follow_updates_and_deletes(store):
    keep = await log(store, "2024-01-15", "Breakfast", 350, protein=20)
    drop = await log(store, "2024-01-15", "Snack", 200, protein=5)

    await store.update_meal(keep, MealUpdate(calories=400))
    await store.delete_meal(drop)
    totals = await store.get_daily_totals("2024-01-15", "2024-01-15")

    assert totals[0].total_calories == 400
    assert totals[0].total_protein == 20
    assert totals[0].meal_count == 1


@pytest.mark.asyncio
async def test_all_time_totals_apply_each_bound_independently(store):
    for date in ("2024-01-01", "2024-02-01", "2024-03-01"):
        await log(store, date, "Meal", 500)

    everything = await store.get_all_time_daily_totals()
    from_feb = await store.get_all_time_daily_totals(start_date="2024-02-01")
    until_feb = await store.get_all_time_daily_totals(end_date="2024-02-01")
    only_feb = await store.get_all_time_daily_totals("2024-02-01", "2024-02-01")

    assert [t.date for t in everything] == ["2024-01-01", "2024-02-01", "2024-03-01"]
    assert [t.date for t in from_feb] == ["2024-02-01", "2024-03-01"]
    assert [t.date for t in until_feb] == ["2024-01-01", "2024-02-01"]
    assert [t.date for t in only_feb] == ["2024-02-01"]


@pytest.mark.asyncio
async def test_totals_of_empty_store(store):
    assert await store.get_all_time_daily_totals() == []
    assert await store.get_all_daily_totals() == []
