"""
Per-meal-type calorie/macro budgets and the macro tolerance check.

Canonical split of the daily target: breakfast 25%, lunch 35%, dinner 40%.
When a snack/dessert bucket is served, the three main meals are scaled by 0.80 and the
snack bucket takes 20%, so B20 + L28 + D32 + S20 = 100.
A meal type only gets a budget when it is served on at least 4 of the 7 days.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from app.services.planner.attendance import ServingsMap, days_served
from app.services.planner.domain import CandidateMeal, MacroMode, Profile, Recipe, Violation, ViolationKind
from app.services.planner.meal_types import BREAKFAST, CANONICAL_MEAL_TYPES, DINNER, LUNCH, SNACK, canonical_meal_type
from app.services.planner.week import WeekSchedule, normalize_day

MAIN_SPLITS = {BREAKFAST: 25.0, LUNCH: 35.0, DINNER: 40.0}
SNACK_SPLIT = 20.0
SNACK_SCALE = 0.80
PRESENCE_MIN_DAYS = 4

CALORIE_BANKING_WEEKDAY = 0.85
CALORIE_BANKING_WEEKEND = 1.30

# Below this share of meals with calorie data the macro check is skipped
MIN_NUTRITION_COVERAGE = 0.5

_NUTRIENT_UNITS = {"calories": "cal", "protein": "g", "carbs": "g", "fat": "g"}


@dataclass(frozen=True)
class MealBudget:
    meal_type: str
    percent: float
    calories: int
    protein: Optional[int] = None
    carbs: Optional[int] = None
    fat: Optional[int] = None


@dataclass(frozen=True)
class MacroBudget:
    profile_id: str
    profile_name: str
    daily_calories: float
    meals: dict[str, Optional[MealBudget]]
    total_plan_percent: int
    expected_daily_calories: int
    explanation: str
    expected_daily: dict[str, Optional[int]] = field(default_factory=dict)

    @property
    def present(self) -> tuple[str, ...]:
        return tuple(mt for mt in CANONICAL_MEAL_TYPES if self.meals.get(mt) is not None)

    def calories_for(self, meal_type: str) -> Optional[int]:
        budget = self.meals.get(canonical_meal_type(meal_type) or "")
        return budget.calories if budget else None


def present_meal_types(servings: ServingsMap) -> set[str]:
    """Meal types served on a majority of the week. No attendance data means the full no-snack day."""
    if not servings or not any(servings.values()):
        return set(MAIN_SPLITS)
    return {mt for mt in CANONICAL_MEAL_TYPES if days_served(servings, mt) >= PRESENCE_MIN_DAYS}


def meal_splits(present: Iterable[str]) -> dict[str, float]:
    present = set(present)
    has_snack = SNACK in present
    scale = SNACK_SCALE if has_snack else 1.0
    splits = {mt: round(pct * scale, 2) for mt, pct in MAIN_SPLITS.items() if mt in present}
    if has_snack:
        splits[SNACK] = SNACK_SPLIT
    return splits


def _scaled(target: Optional[float], percent: float) -> Optional[int]:
    if not target:
        return None
    return int(round(target * percent / 100))


def compute_macro_budget(profile: Optional[Profile], servings: ServingsMap) -> Optional[MacroBudget]:
    if profile is None or not profile.daily_calories:
        return None
    splits = meal_splits(present_meal_types(servings))
    meals: dict[str, Optional[MealBudget]] = {mt: None for mt in CANONICAL_MEAL_TYPES}
    for mt, pct in splits.items():
        meals[mt] = MealBudget(
            meal_type=mt,
            percent=pct,
            calories=int(round(profile.daily_calories * pct / 100)),
            protein=_scaled(profile.daily_protein, pct),
            carbs=_scaled(profile.daily_carbs, pct),
            fat=_scaled(profile.daily_fat, pct),
        )
    total_percent = int(round(sum(splits.values())))
    expected = sum(b.calories for b in meals.values() if b is not None)
    expected_daily = {
        "calories": expected,
        "protein": _scaled(profile.daily_protein, total_percent),
        "carbs": _scaled(profile.daily_carbs, total_percent),
        "fat": _scaled(profile.daily_fat, total_percent),
    }
    return MacroBudget(
        profile_id=profile.id,
        profile_name=profile.name,
        daily_calories=profile.daily_calories,
        meals=meals,
        total_plan_percent=total_percent,
        expected_daily_calories=expected,
        explanation=_explain(splits, meals, total_percent),
        expected_daily=expected_daily,
    )


def _explain(splits: dict[str, float], meals: dict[str, Optional[MealBudget]], total_percent: int) -> str:
    if not splits:
        return "No meal type is served on most days of the week; no calorie budget applies."
    parts = [
        f"{mt} {splits[mt]:g}% ({meals[mt].calories} cal)"
        for mt in CANONICAL_MEAL_TYPES
        if mt in splits and meals[mt] is not None
    ]
    return f"Plan covers {total_percent}% of daily calories: " + ", ".join(parts)


def tolerance_for(mode: MacroMode, day: Optional[str] = None) -> float:
    if mode == MacroMode.STRICT:
        return 0.05
    if mode == MacroMode.WEEKDAY_DISCIPLINE:
        return 0.25 if day and WeekSchedule.is_weekend(day) else 0.05
    return 0.10


def daily_calorie_multiplier(mode: MacroMode, day: str) -> float:
    if mode != MacroMode.CALORIE_BANKING:
        return 1.0
    return CALORIE_BANKING_WEEKEND if WeekSchedule.is_weekend(day) else CALORIE_BANKING_WEEKDAY


@dataclass
class _DayIntake:
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    complete: bool = True


def _intake_by_day(
    meals: Iterable[CandidateMeal],
    recipes: dict[str, Recipe],
    budget: MacroBudget,
    attended: Optional[set[tuple[str, str]]],
) -> tuple[dict[str, _DayIntake], int, int]:
    present = set(budget.present)
    intake: dict[str, _DayIntake] = {}
    evaluated = with_data = 0
    for meal in meals:
        day = normalize_day(meal.day)
        meal_type = canonical_meal_type(meal.meal_type)
        recipe = recipes.get(meal.recipe_id or "")
        if day is None or meal_type not in present or recipe is None:
            continue
        if attended is not None and (day, meal_type) not in attended:
            continue
        evaluated += 1
        day_intake = intake.setdefault(day, _DayIntake())
        if recipe.macros.calories is None:
            day_intake.complete = False
            continue
        with_data += 1
        day_intake.calories += recipe.macros.calories
        day_intake.protein += recipe.macros.protein or 0
        day_intake.carbs += recipe.macros.carbs or 0
        day_intake.fat += recipe.macros.fat or 0
    return intake, evaluated, with_data


def _deviation_violation(
    nutrient: str,
    actual: float,
    target: float,
    tolerance: float,
    mode: MacroMode,
    scope: str,
    coverage: int,
    day: Optional[str] = None,
) -> Optional[Violation]:
    low, high = target * (1 - tolerance), target * (1 + tolerance)
    if low <= actual <= high:
        return None
    unit = _NUTRIENT_UNITS[nutrient]
    deviation = round((actual - target) / target * 100)
    kind = ViolationKind.MACRO_BELOW_TARGET if actual < low else ViolationKind.MACRO_ABOVE_TARGET
    coverage_note = f" (plan covers {coverage}% of daily calories)" if coverage < 100 else ""
    message = (
        f"{nutrient.capitalize()} {'below' if actual < low else 'above'} target {scope}: "
        f"{round(actual)} {unit} planned vs {round(target)} {unit} expected ({deviation:+d}%){coverage_note}. "
        f"Allowed range with {mode.value} mode: {round(low)}-{round(high)} {unit}."
    )
    return Violation(kind=kind, message=message, day=day, nutrient=nutrient)


def check_macros(
    meals: list[CandidateMeal],
    recipes: dict[str, Recipe],
    budget: Optional[MacroBudget],
    mode: MacroMode,
    week: WeekSchedule,
    attended: Optional[set[tuple[str, str]]] = None,
) -> list[Violation]:
    """
    Compare each day's planned intake for the tracked profile against the expected daily
    total from the present meal budgets. One serving per attended meal, leftovers included.
    Days with any meal lacking calorie data are skipped.
    """
    if budget is None or budget.expected_daily_calories <= 0:
        return []
    intake, evaluated, with_data = _intake_by_day(meals, recipes, budget, attended)
    if evaluated == 0:
        return []
    if with_data / evaluated < MIN_NUTRITION_COVERAGE:
        return [
            Violation(
                kind=ViolationKind.MACRO_DATA_INSUFFICIENT,
                message=(
                    f"Only {round(with_data / evaluated * 100)}% of planned meals have calorie data; "
                    "macro targets were not checked."
                ),
                fatal=False,
            )
        ]

    expected = budget.expected_daily_calories
    coverage = budget.total_plan_percent
    checked = [day for day in week.days if day in intake and intake[day].complete]
    violations: list[Violation] = []

    if mode == MacroMode.CALORIE_BANKING:
        if checked:
            actual = sum(intake[day].calories for day in checked)
            target = sum(expected * daily_calorie_multiplier(mode, day) for day in checked)
            v = _deviation_violation(
                "calories", actual, target, tolerance_for(mode), mode, f"for the week ({len(checked)} days)", coverage
            )
            if v:
                violations.append(v)
    else:
        for day in checked:
            v = _deviation_violation(
                "calories", intake[day].calories, expected, tolerance_for(mode, day), mode, f"on {day}", coverage, day
            )
            if v:
                violations.append(v)

    # protein/carbs/fat are judged on the weekly average and never block a plan
    for nutrient in ("protein", "carbs", "fat"):
        target = budget.expected_daily.get(nutrient)
        if not target or not checked:
            continue
        average = sum(getattr(intake[day], nutrient) for day in checked) / len(checked)
        v = _deviation_violation(nutrient, average, target, tolerance_for(mode), mode, "(daily average)", coverage)
        if v:
            violations.append(
                Violation(kind=v.kind, message=v.message, fatal=False, nutrient=nutrient)
            )
    return violations
