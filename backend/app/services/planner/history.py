"""Cooldown and manual-selection enrichment of the recipe catalog from usage history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from app.services.planner.domain import PlanSettings, Recipe, UsageRecord
from app.services.planner.meal_types import BREAKFAST, LUNCH, SNACK, canonical_meal_type
from app.services.planner.reference_data import MANUAL_SELECTION_BONUS


def cooldown_for_meal_type(meal_type: str, settings: PlanSettings) -> int:
    canonical = canonical_meal_type(meal_type)
    if canonical == LUNCH:
        return settings.lunch_cooldown
    if canonical == BREAKFAST:
        return settings.breakfast_cooldown
    if canonical == SNACK:
        return settings.snack_cooldown
    # dinner and anything unrecognised (main-course, side, ...)
    return settings.dinner_cooldown


def cooldown_for_recipe(recipe: Recipe, settings: PlanSettings) -> int:
    """The strictest (largest) cooldown across every meal type the recipe is tagged with."""
    return max((cooldown_for_meal_type(t, settings) for t in recipe.meal_types), default=0)


@dataclass(frozen=True)
class RecipeHistory:
    recipe_id: str
    cooldown_days: int
    last_used: Optional[date] = None
    days_since_used: Optional[int] = None
    cooldown_remaining: int = 0
    was_manual: bool = False

    @property
    def bonus(self) -> float:
        return MANUAL_SELECTION_BONUS if self.was_manual else 0.0

    def eligible_at(self, position: int) -> bool:
        """Is the recipe off cooldown on the day ``position`` days into the week?"""
        return position >= self.cooldown_remaining


def enrich_recipe(
    recipe: Recipe, records: Iterable[UsageRecord], settings: PlanSettings, week_start: date
) -> RecipeHistory:
    cooldown = cooldown_for_recipe(recipe, settings)
    records = list(records)
    prior = [r for r in records if r.used_date < week_start]
    if not prior:
        return RecipeHistory(recipe_id=recipe.id, cooldown_days=cooldown)
    last_used = max(r.used_date for r in prior)
    days_since = (week_start - last_used).days
    return RecipeHistory(
        recipe_id=recipe.id,
        cooldown_days=cooldown,
        last_used=last_used,
        days_since_used=days_since,
        cooldown_remaining=max(0, cooldown - days_since),
        was_manual=any(r.was_manual for r in records),
    )


def build_history_table(
    recipes: Iterable[Recipe], history: Iterable[UsageRecord], settings: PlanSettings, week_start: date
) -> dict[str, RecipeHistory]:
    by_recipe: dict[str, list[UsageRecord]] = {}
    for record in history:
        by_recipe.setdefault(record.recipe_id, []).append(record)
    return {
        recipe.id: enrich_recipe(recipe, by_recipe.get(recipe.id, ()), settings, week_start)
        for recipe in recipes
    }
