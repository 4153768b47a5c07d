"""Small builders for planner domain objects used across the tests."""

from datetime import date

from app.services.planner.controller import OracleResponse
from app.services.planner.domain import (
    CandidateMeal,
    Macros,
    PlanSettings,
    Profile,
    ProfileAttendance,
    Recipe,
)

MONDAY = date(2026, 10, 12)
FRIDAY = date(2026, 10, 16)
WEEK_STARTS = [date(2026, 10, 12 + i) for i in range(7)]  # Monday .. Sunday

ALL_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def recipe(
    id: str,
    name: str | None = None,
    meal_types=("dinner",),
    cuisine: str | None = "Italian",
    calories: float | None = None,
    protein: float | None = None,
    ingredients=(),
    **kwargs,
) -> Recipe:
    return Recipe(
        id=id,
        name=name or f"Recipe {id}",
        meal_types=tuple(meal_types),
        cuisine=cuisine,
        macros=Macros(calories=calories, protein=protein),
        ingredients=tuple(ingredients),
        **kwargs,
    )


def meal(
    day: str,
    recipe_id: str | None = "1",
    meal_type: str = "dinner",
    servings: int = 2,
    leftover: bool = False,
    source: str | None = None,
) -> CandidateMeal:
    return CandidateMeal(
        day=day,
        meal_type=meal_type,
        recipe_id=recipe_id,
        servings=servings,
        is_leftover=leftover,
        batch_cook_source_day=source,
    )


def attendance(profile_id: str, days=ALL_DAYS, meals=("dinner",), included: bool = True) -> ProfileAttendance:
    return ProfileAttendance(
        profile_id=profile_id,
        grid={day: {m: True for m in meals} for day in days},
        included=included,
    )


def tracked_profile(daily_calories: float = 2000, **kwargs) -> Profile:
    return Profile(id="p1", name="Sam", macro_tracking_enabled=True, daily_calories=daily_calories, **kwargs)


def relaxed_settings(**kwargs) -> PlanSettings:
    """Defaults with variety off, so tests only see the rule they exercise."""
    kwargs.setdefault("variety_enabled", False)
    return PlanSettings(**kwargs)


class ScriptedOracle:
    """Plays back a fixed list of meal lists (or exceptions to raise), one per propose() call."""

    def __init__(self, *script, on_call=None):
        self.script = list(script)
        self.requests = []
        self.on_call = on_call

    def propose(self, request):
        self.requests.append(request)
        if self.on_call:
            self.on_call(len(self.requests))
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return OracleResponse(meals=list(step), summary=f"plan {len(self.requests)}")
