"""
Plan validation. Runs every check in a fixed order and always completes the full pass,
collecting Violations instead of raising, so the feedback covers every problem at once.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from typing import Iterable, Optional

from app.logging import get_logger
from app.services.planner.attendance import ServingsMap, scheduled_slots, servings_for
from app.services.planner.batch_cook import BatchCookValidator
from app.services.planner.domain import (
    CandidateMeal,
    PlanSettings,
    Recipe,
    ValidationResult,
    Violation,
    ViolationKind,
)
from app.services.planner.history import RecipeHistory, cooldown_for_recipe
from app.services.planner.macros import MacroBudget, check_macros
from app.services.planner.meal_types import SNACK, canonical_meal_type, normalize_meal_type, recipe_fits_slot
from app.services.planner.priority import PriorityResolution, resolve_priorities
from app.services.planner.week import WeekSchedule, normalize_day

logger = get_logger(__name__)


class PlanValidator:
    def __init__(
        self,
        week: WeekSchedule,
        recipes: dict[str, Recipe],
        settings: PlanSettings,
        servings: Optional[ServingsMap] = None,
        history: Optional[dict[str, RecipeHistory]] = None,
        budget: Optional[MacroBudget] = None,
        priorities: Optional[PriorityResolution] = None,
        mandatory_recipe_ids: Iterable[str] = (),
        attended: Optional[set[tuple[str, str]]] = None,
    ) -> None:
        self.week = week
        self.recipes = recipes
        self.settings = settings
        self.servings = servings or {}
        self.history = history or {}
        self.budget = budget
        self.priorities = priorities or resolve_priorities(settings.priority_order)
        self.mandatory_recipe_ids = tuple(mandatory_recipe_ids)
        self.attended = attended
        self._repeat_allowed = {
            canonical_meal_type(t) or normalize_meal_type(t) for t in settings.repeat_allowed_meal_types
        }
        self.batch_cook = BatchCookValidator(week, recipes, settings, self.servings)

    def validate(self, meals: list[CandidateMeal]) -> ValidationResult:
        violations = self.check_schema(meals)
        usable = [m for m in meals if normalize_day(m.day) and m.recipe_id in self.recipes]
        violations += self.batch_cook.validate(usable)
        violations += self.check_cooldowns(usable)
        if self.settings.variety_enabled:
            violations += self.check_variety(usable)
        violations += check_macros(
            usable, self.recipes, self.budget, self.settings.macro_mode, self.week, self.attended
        )
        result = ValidationResult(violations=[self._with_severity(v) for v in violations])
        logger.info(
            "planner.validation passed=%s fatal=%s advisory=%s",
            result.passed,
            len(result.fatal),
            len(result.advisory),
        )
        return result

    def _with_severity(self, violation: Violation) -> Violation:
        fatal = violation.fatal and self.priorities.is_fatal(violation.category)
        return violation if fatal == violation.fatal else replace(violation, fatal=fatal)

    def _is_repeat_exempt(self, meal: CandidateMeal, recipe: Recipe) -> bool:
        if recipe.is_product:
            return True
        slot = canonical_meal_type(meal.meal_type) or normalize_meal_type(meal.meal_type)
        return slot in self._repeat_allowed

    def check_schema(self, meals: list[CandidateMeal]) -> list[Violation]:
        violations: list[Violation] = []
        filled: set[tuple[str, str]] = set()
        seen: set[tuple[str, str]] = set()
        for meal in meals:
            day = normalize_day(meal.day)
            if day is None:
                violations.append(
                    Violation(
                        kind=ViolationKind.UNKNOWN_DAY,
                        message=f"'{meal.day}' is not a day of the week.",
                        meal_type=meal.meal_type,
                        recipe_id=meal.recipe_id,
                    )
                )
                continue
            slot = canonical_meal_type(meal.meal_type) or normalize_meal_type(meal.meal_type)
            filled.add((day, slot))
            violations += self._check_slot(meal, day, slot, seen)
            if not meal.recipe_id:
                violations.append(
                    Violation(
                        kind=ViolationKind.MISSING_RECIPE_ID,
                        message=f"{day} {meal.meal_type}: no recipeId given"
                        + (f" for '{meal.recipe_name}'" if meal.recipe_name else "")
                        + ". Use an id from the available recipe list.",
                        day=day,
                        meal_type=meal.meal_type,
                    )
                )
                continue
            recipe = self.recipes.get(meal.recipe_id)
            if recipe is None:
                violations.append(
                    Violation(
                        kind=ViolationKind.UNKNOWN_RECIPE,
                        message=f"{day} {meal.meal_type}: recipeId {meal.recipe_id} is not in the recipe catalog.",
                        day=day,
                        meal_type=meal.meal_type,
                        recipe_id=meal.recipe_id,
                    )
                )
                continue
            if not recipe_fits_slot(recipe.meal_types, meal.meal_type, self.settings.allow_dinner_for_lunch):
                tags = ", ".join(recipe.meal_types) or "none"
                violations.append(
                    Violation(
                        kind=ViolationKind.MEAL_TYPE_MISMATCH,
                        message=f"{day} {meal.meal_type}: '{recipe.name}' is tagged [{tags}] and cannot fill a "
                        f"{meal.meal_type} slot.",
                        day=day,
                        meal_type=meal.meal_type,
                        recipe_id=meal.recipe_id,
                    )
                )

        for day, meal_type, count in scheduled_slots(self.servings, self.week):
            if (day, meal_type) not in filled:
                violations.append(
                    Violation(
                        kind=ViolationKind.MISSING_SLOT,
                        message=f"{day} {meal_type}: {count} people are eating but no meal was planned.",
                        day=day,
                        meal_type=meal_type,
                    )
                )

        planned = {m.recipe_id for m in meals if m.recipe_id}
        for recipe_id in self.mandatory_recipe_ids:
            if recipe_id not in planned:
                name = self.recipes[recipe_id].name if recipe_id in self.recipes else recipe_id
                violations.append(
                    Violation(
                        kind=ViolationKind.MANDATORY_RECIPE_MISSING,
                        message=f"'{name}' (id {recipe_id}) must appear at least once this week.",
                        recipe_id=recipe_id,
                    )
                )
        return violations

    def _check_slot(self, meal: CandidateMeal, day: str, slot: str, seen: set[tuple[str, str]]) -> list[Violation]:
        violations = []
        # a morning snack and a dessert share the snack bucket but are separate meals
        key = (day, normalize_meal_type(meal.meal_type) if slot == SNACK else slot)
        if key in seen:
            violations.append(
                Violation(
                    kind=ViolationKind.DUPLICATE_SLOT,
                    message=f"{day} {meal.meal_type}: more than one meal is planned for this slot.",
                    day=day,
                    meal_type=meal.meal_type,
                    recipe_id=meal.recipe_id,
                )
            )
        seen.add(key)
        if self.servings and servings_for(self.servings, day, meal.meal_type) == 0:
            violations.append(
                Violation(
                    kind=ViolationKind.UNSCHEDULED_SLOT,
                    message=f"{day} {meal.meal_type}: nobody is eating this meal, so it should not be planned.",
                    day=day,
                    meal_type=meal.meal_type,
                    recipe_id=meal.recipe_id,
                )
            )
        return violations

    def check_cooldowns(self, meals: list[CandidateMeal]) -> list[Violation]:
        violations: list[Violation] = []
        uses: dict[str, list[tuple[int, CandidateMeal]]] = {}
        for meal in meals:
            if self.batch_cook.leftover_source(meal, meals) is not None:
                # reuse of an earlier batch in the same week is never subject to cooldown
                continue
            recipe = self.recipes[meal.recipe_id]
            if self._is_repeat_exempt(meal, recipe):
                continue
            position = self.week.position(meal.day)
            uses.setdefault(recipe.id, []).append((position, meal))
            history = self.history.get(recipe.id)
            if history is not None and not history.eligible_at(position):
                violations.append(
                    Violation(
                        kind=ViolationKind.COOLDOWN_ACTIVE,
                        message=f"{normalize_day(meal.day)} {meal.meal_type}: '{recipe.name}' was last made "
                        f"{history.days_since_used} days before the week starts and has a {history.cooldown_days}-day "
                        f"cooldown; it is available from day {history.cooldown_remaining + 1} of the week.",
                        day=normalize_day(meal.day),
                        meal_type=meal.meal_type,
                        recipe_id=recipe.id,
                    )
                )

        for recipe_id, entries in uses.items():
            if len(entries) < 2:
                continue
            recipe = self.recipes[recipe_id]
            history = self.history.get(recipe_id)
            cooldown = history.cooldown_days if history else cooldown_for_recipe(recipe, self.settings)
            entries.sort(key=lambda e: e[0])
            for (prev_pos, prev), (pos, meal) in zip(entries, entries[1:]):
                gap = pos - prev_pos
                if gap < cooldown:
                    violations.append(
                        Violation(
                            kind=ViolationKind.COOLDOWN_REPEAT,
                            message=f"{normalize_day(meal.day)} {meal.meal_type}: '{recipe.name}' is cooked again "
                            f"{gap} day(s) after {normalize_day(prev.day)}; cooldown is {cooldown} days. "
                            "Mark it as a leftover of the earlier cook or pick another recipe.",
                            day=normalize_day(meal.day),
                            meal_type=meal.meal_type,
                            recipe_id=recipe_id,
                        )
                    )
        return violations

    def check_variety(self, meals: list[CandidateMeal]) -> list[Violation]:
        counts: Counter[str] = Counter()
        display: dict[str, str] = {}
        for meal in meals:
            recipe = self.recipes[meal.recipe_id]
            if meal.is_leftover or not recipe.cuisine or self._is_repeat_exempt(meal, recipe):
                continue
            key = recipe.cuisine.strip().lower()
            counts[key] += 1
            display.setdefault(key, recipe.cuisine.strip())

        violations: list[Violation] = []
        total = sum(counts.values())
        if total >= self.settings.min_cuisines and len(counts) < self.settings.min_cuisines:
            used = ", ".join(sorted(display.values())) or "none"
            violations.append(
                Violation(
                    kind=ViolationKind.TOO_FEW_CUISINES,
                    message=f"Only {len(counts)} cuisine(s) this week ({used}); at least "
                    f"{self.settings.min_cuisines} are required.",
                )
            )
        for key, count in sorted(counts.items()):
            if count > self.settings.max_same_cuisine:
                violations.append(
                    Violation(
                        kind=ViolationKind.CUISINE_OVERUSED,
                        message=f"{display[key]} is used {count} times; the limit is "
                        f"{self.settings.max_same_cuisine}.",
                    )
                )
        return violations
