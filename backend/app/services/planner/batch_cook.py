"""
Chronological validation of batch-cook / leftover relationships.

"Earlier" is always measured in the plan's week rotation: with a Friday start, Monday is
three days after Friday, so a Friday cook may feed a Monday leftover but not the reverse.
"""

from __future__ import annotations

import re
from typing import Optional

from app.logging import get_logger
from app.services.planner.attendance import ServingsMap, servings_for
from app.services.planner.domain import CandidateMeal, PlanSettings, Recipe, Violation, ViolationKind
from app.services.planner.reference_data import SHELF_LIFE_DAYS, SHELF_LIFE_KEYWORDS
from app.services.planner.week import WeekSchedule, normalize_day

logger = get_logger(__name__)


class BatchCookValidator:
    def __init__(
        self,
        week: WeekSchedule,
        recipes: dict[str, Recipe],
        settings: PlanSettings,
        servings: Optional[ServingsMap] = None,
        shelf_life_days: dict[str, int] = SHELF_LIFE_DAYS,
        shelf_life_keywords: dict[str, str] = SHELF_LIFE_KEYWORDS,
    ) -> None:
        self.week = week
        self.recipes = recipes
        self.settings = settings
        self.servings = servings or {}
        self.shelf_life_days = shelf_life_days
        self._keyword_patterns = [
            (re.compile(rf"\b{re.escape(keyword)}", re.IGNORECASE), category)
            for keyword, category in shelf_life_keywords.items()
        ]

    def shelf_life_for(self, recipe: Recipe) -> int:
        """Shortest shelf life of any food category the recipe contains, capped by maxLeftoverDays."""
        default = self.shelf_life_days.get("default", 3)
        if recipe.shelf_life_category in self.shelf_life_days:
            days = self.shelf_life_days[recipe.shelf_life_category]
        else:
            text = " ".join((recipe.name,) + tuple(recipe.ingredients))
            matched = [
                self.shelf_life_days[category]
                for pattern, category in self._keyword_patterns
                if category in self.shelf_life_days and pattern.search(text)
            ]
            days = min(matched) if matched else default
        return min(days, self.settings.max_leftover_days)

    def _need(self, meal: CandidateMeal) -> int:
        if self.servings:
            return servings_for(self.servings, meal.day, meal.meal_type)
        return meal.servings

    def _find_source(self, meals: list[CandidateMeal], recipe_id: str, day: str) -> Optional[CandidateMeal]:
        for meal in meals:
            if meal.recipe_id == recipe_id and not meal.is_leftover and normalize_day(meal.day) == day:
                return meal
        return None

    def leftover_source(self, meal: CandidateMeal, meals: list[CandidateMeal]) -> Optional[CandidateMeal]:
        """The earlier fresh cook a leftover draws from, or None when the relation does not hold."""
        if not meal.is_leftover or not self.settings.batch_cooking_enabled:
            return None
        day = normalize_day(meal.day)
        source_day = normalize_day(meal.batch_cook_source_day)
        if day is None or source_day is None or not self.week.is_earlier(source_day, day):
            return None
        return self._find_source(meals, meal.recipe_id, source_day)

    def validate(self, meals: list[CandidateMeal]) -> list[Violation]:
        violations: list[Violation] = []
        batches: dict[int, tuple[CandidateMeal, list[CandidateMeal]]] = {}

        for meal in meals:
            if not meal.is_leftover or meal.recipe_id is None:
                continue
            recipe = self.recipes.get(meal.recipe_id)
            if recipe is None or recipe.is_product:
                continue
            day = normalize_day(meal.day)
            if day is None:
                continue
            label = recipe.name
            if not self.settings.batch_cooking_enabled:
                violations.append(
                    Violation(
                        kind=ViolationKind.BATCH_COOKING_DISABLED,
                        message=f"{day} {meal.meal_type}: '{label}' is marked as a leftover but batch cooking is turned off.",
                        day=day,
                        meal_type=meal.meal_type,
                        recipe_id=meal.recipe_id,
                    )
                )
                continue

            source_day = normalize_day(meal.batch_cook_source_day)
            if source_day is None:
                violations.append(
                    Violation(
                        kind=ViolationKind.LEFTOVER_SOURCE_MISSING,
                        message=f"{day} {meal.meal_type}: leftover '{label}' has no valid batchCookSourceDay "
                        f"(got {meal.batch_cook_source_day!r}).",
                        day=day,
                        meal_type=meal.meal_type,
                        recipe_id=meal.recipe_id,
                    )
                )
                continue
            if not self.week.is_earlier(source_day, day):
                violations.append(
                    Violation(
                        kind=ViolationKind.LEFTOVER_BEFORE_SOURCE,
                        message=f"{day} {meal.meal_type}: leftover '{label}' points at {source_day}, which is not "
                        f"earlier in a week starting {self.week.days[0]}. Leftovers can only come from an earlier day.",
                        day=day,
                        meal_type=meal.meal_type,
                        recipe_id=meal.recipe_id,
                    )
                )
                continue

            source = self._find_source(meals, meal.recipe_id, source_day)
            if source is None:
                violations.append(
                    Violation(
                        kind=ViolationKind.LEFTOVER_SOURCE_MISSING,
                        message=f"{day} {meal.meal_type}: leftover '{label}' expects a batch cook on {source_day}, "
                        f"but no non-leftover '{label}' is planned that day.",
                        day=day,
                        meal_type=meal.meal_type,
                        recipe_id=meal.recipe_id,
                    )
                )
                continue

            gap = self.week.gap(source_day, day)
            shelf_life = self.shelf_life_for(recipe)
            if gap is not None and gap > shelf_life:
                violations.append(
                    Violation(
                        kind=ViolationKind.LEFTOVER_EXCEEDS_SHELF_LIFE,
                        message=f"{day} {meal.meal_type}: '{label}' would be eaten {gap} days after cooking on "
                        f"{source_day}; it keeps for {shelf_life} days.",
                        day=day,
                        meal_type=meal.meal_type,
                        recipe_id=meal.recipe_id,
                    )
                )
            batches.setdefault(id(source), (source, []))[1].append(meal)

        for source, leftovers in batches.values():
            violation = self._check_batch_total(source, leftovers)
            if violation is not None:
                violations.append(violation)

        if violations:
            logger.debug("batch_cook.violations count=%s", len(violations))
        return violations

    def _check_batch_total(self, source: CandidateMeal, leftovers: list[CandidateMeal]) -> Optional[Violation]:
        leftover_need = sum(self._need(m) for m in leftovers)
        day = normalize_day(source.day)
        label = self.recipes[source.recipe_id].name
        if self.servings:
            expected = self._need(source) + leftover_need
            if source.servings == expected:
                return None
            detail = f"expected {expected} ({self._need(source)} for {day} + {leftover_need} for leftovers)"
        else:
            # no attendance to reconcile against; the cook day must at least cover every leftover
            if source.servings > leftover_need:
                return None
            detail = f"expected more than the {leftover_need} leftover servings it feeds"
        return Violation(
            kind=ViolationKind.BATCH_SERVINGS_MISMATCH,
            message=f"{day} {source.meal_type}: batch cook of '{label}' has servings={source.servings}; {detail}.",
            day=day,
            meal_type=source.meal_type,
            recipe_id=source.recipe_id,
        )
