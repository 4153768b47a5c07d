"""Tests for batch-cook / leftover chronology across week rotations."""

import pytest

from app.services.planner.attendance import build_servings_map
from app.services.planner.batch_cook import BatchCookValidator
from app.services.planner.domain import PlanSettings, ViolationKind
from app.services.planner.week import WeekSchedule
from factories import FRIDAY, MONDAY, WEEK_STARTS, attendance, meal, recipe

SOUP = recipe("1", name="Lentil Soup", ingredients=("lentils", "carrot"), yields_multiple_meals=True)
SALMON = recipe("2", name="Salmon Bake", ingredients=("salmon", "potato"), yields_multiple_meals=True)
RECIPES = {r.id: r for r in (SOUP, SALMON)}


def _kinds(violations):
    return [v.kind for v in violations]


def _validator(week_start, settings=None, servings=None):
    return BatchCookValidator(WeekSchedule.starting(week_start), RECIPES, settings or PlanSettings(), servings)


def test_friday_start_leftover_on_monday_is_valid():
    meals = [meal("Friday", "1", servings=7), meal("Monday", "1", servings=3, leftover=True, source="Friday")]
    assert _validator(FRIDAY).validate(meals) == []


def test_friday_start_swapped_days_is_before_source():
    meals = [meal("Monday", "1", servings=7), meal("Friday", "1", servings=3, leftover=True, source="Monday")]
    assert _kinds(_validator(FRIDAY).validate(meals)) == [ViolationKind.LEFTOVER_BEFORE_SOURCE]


@pytest.mark.parametrize("week_start", WEEK_STARTS)
def test_source_must_be_earlier_for_every_week_start(week_start):
    days = WeekSchedule.starting(week_start).days
    valid = [meal(days[1], "1", servings=5), meal(days[3], "1", servings=2, leftover=True, source=days[1])]
    assert _validator(week_start).validate(valid) == []

    backwards = [meal(days[1], "1", servings=5), meal(days[0], "1", servings=2, leftover=True, source=days[1])]
    assert _kinds(_validator(week_start).validate(backwards)) == [ViolationKind.LEFTOVER_BEFORE_SOURCE]

    same_day = [meal(days[2], "1", servings=5), meal(days[2], "1", meal_type="lunch", servings=2, leftover=True, source=days[2])]
    assert _kinds(_validator(week_start).validate(same_day)) == [ViolationKind.LEFTOVER_BEFORE_SOURCE]


def test_source_meal_must_exist():
    meals = [meal("Tuesday", "1", servings=2, leftover=True, source="Monday")]
    assert _kinds(_validator(MONDAY).validate(meals)) == [ViolationKind.LEFTOVER_SOURCE_MISSING]


def test_source_day_is_required():
    meals = [meal("Monday", "1", servings=4), meal("Tuesday", "1", servings=2, leftover=True, source=None)]
    assert _kinds(_validator(MONDAY).validate(meals)) == [ViolationKind.LEFTOVER_SOURCE_MISSING]


def test_source_must_not_itself_be_a_leftover():
    meals = [
        meal("Monday", "1", servings=2, leftover=True, source="Sunday"),
        meal("Tuesday", "1", servings=2, leftover=True, source="Monday"),
    ]
    violations = _validator(MONDAY).validate(meals)
    assert _kinds(violations) == [ViolationKind.LEFTOVER_BEFORE_SOURCE, ViolationKind.LEFTOVER_SOURCE_MISSING]


def test_batch_total_reconciles_with_attendance():
    servings = build_servings_map(
        [
            attendance("a", days=("Friday", "Monday")),
            attendance("b", days=("Friday", "Monday")),
            attendance("c", days=("Friday", "Monday")),
            attendance("d", days=("Friday",)),
        ]
    )
    ok = [meal("Friday", "1", servings=7), meal("Monday", "1", servings=3, leftover=True, source="Friday")]
    assert _validator(FRIDAY, servings=servings).validate(ok) == []

    short = [meal("Friday", "1", servings=4), meal("Monday", "1", servings=3, leftover=True, source="Friday")]
    violations = _validator(FRIDAY, servings=servings).validate(short)
    assert _kinds(violations) == [ViolationKind.BATCH_SERVINGS_MISMATCH]
    assert violations[0].day == "Friday"
    assert "expected 7" in violations[0].message


def test_without_attendance_cook_day_must_cover_leftovers():
    meals = [
        meal("Monday", "1", servings=4),
        meal("Tuesday", "1", servings=2, leftover=True, source="Monday"),
        meal("Wednesday", "1", servings=2, leftover=True, source="Monday"),
    ]
    assert _kinds(_validator(MONDAY).validate(meals)) == [ViolationKind.BATCH_SERVINGS_MISMATCH]


def test_fish_keeps_two_days():
    meals = [meal("Monday", "2", servings=6), meal("Thursday", "2", servings=2, leftover=True, source="Monday")]
    assert _kinds(_validator(MONDAY).validate(meals)) == [ViolationKind.LEFTOVER_EXCEEDS_SHELF_LIFE]


def test_shelf_life_table_and_cap():
    validator = _validator(MONDAY, settings=PlanSettings(max_leftover_days=2))
    assert validator.shelf_life_for(SOUP) == 2
    uncapped = _validator(MONDAY)
    assert uncapped.shelf_life_for(SOUP) == 4  # soup 4, legumes 5
    assert uncapped.shelf_life_for(SALMON) == 2
    assert uncapped.shelf_life_for(recipe("9", name="Plain Toast")) == 3
    assert uncapped.shelf_life_for(recipe("9", name="Mystery", shelf_life_category="grains")) == 4


def test_leftovers_rejected_when_batch_cooking_is_off():
    meals = [meal("Monday", "1", servings=4), meal("Tuesday", "1", servings=2, leftover=True, source="Monday")]
    violations = _validator(MONDAY, settings=PlanSettings(batch_cooking_enabled=False)).validate(meals)
    assert _kinds(violations) == [ViolationKind.BATCH_COOKING_DISABLED]
