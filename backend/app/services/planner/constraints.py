"""
Constraint bundle construction: everything computed once per planning run, before the
first oracle call, plus the typed request handed to the oracle on each attempt.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional

from app.logging import get_logger
from app.services.planner.attendance import ServingsMap, build_servings_map, scheduled_slots
from app.services.planner.domain import (
    CandidateMeal,
    ExpiryPriority,
    InventoryItem,
    PlanSettings,
    Profile,
    ProfileAttendance,
    QuickOptions,
    Recipe,
    ShoppingMode,
    UsageRecord,
    Violation,
)
from app.services.planner.history import RecipeHistory, build_history_table
from app.services.planner.macros import MacroBudget, compute_macro_budget
from app.services.planner.meal_types import canonical_meal_type
from app.services.planner.priority import PriorityResolution, resolve_priorities
from app.services.planner.reference_data import PANTRY_STAPLES
from app.services.planner.scoring import (
    ExpiryPriorityScorer,
    RecipeHint,
    ShoppingEfficiencyScorer,
    build_recipe_hints,
)
from app.services.planner.validator import PlanValidator
from app.services.planner.week import WeekSchedule, normalize_day

logger = get_logger(__name__)


def apply_quick_options(settings: PlanSettings, quick: Optional[QuickOptions]) -> PlanSettings:
    if quick is None:
        return settings
    changes: dict = {}
    if quick.prioritize_shopping:
        changes["shopping_mode"] = ShoppingMode.AGGRESSIVE
    if quick.use_expiring:
        changes["expiry_priority"] = ExpiryPriority.STRONG
    if quick.maximize_batch is not None:
        changes["batch_cooking_enabled"] = quick.maximize_batch
    return replace(settings, **changes) if changes else settings


@dataclass
class PlanningContext:
    """Raw inputs for one planning run, read fresh from the stores per request."""

    week_start: date
    profiles: list[Profile]
    recipes: list[Recipe]
    attendance: list[ProfileAttendance] = field(default_factory=list)
    usage_history: list[UsageRecord] = field(default_factory=list)
    inventory: list[InventoryItem] = field(default_factory=list)
    settings: PlanSettings = field(default_factory=PlanSettings)
    quick_options: Optional[QuickOptions] = None
    mandatory_recipe_ids: list[str] = field(default_factory=list)
    locked_meals: list[CandidateMeal] = field(default_factory=list)
    today: Optional[date] = None


@dataclass(frozen=True)
class ConstraintBundle:
    week: WeekSchedule
    settings: PlanSettings
    recipes: dict[str, Recipe]
    servings: ServingsMap
    budget: Optional[MacroBudget]
    tracked_profile: Optional[Profile]
    history: dict[str, RecipeHistory]
    hints: dict[str, RecipeHint]
    priorities: PriorityResolution
    expiring_items: tuple[InventoryItem, ...] = ()
    mandatory_recipe_ids: tuple[str, ...] = ()
    locked_meals: tuple[CandidateMeal, ...] = ()
    attended: Optional[frozenset[tuple[str, str]]] = None
    pantry_staples: tuple[str, ...] = PANTRY_STAPLES

    @property
    def slots(self) -> list[tuple[str, str, int]]:
        return scheduled_slots(self.servings, self.week)

    def validator(self) -> PlanValidator:
        return PlanValidator(
            week=self.week,
            recipes=self.recipes,
            settings=self.settings,
            servings=self.servings,
            history=self.history,
            budget=self.budget,
            priorities=self.priorities,
            mandatory_recipe_ids=self.mandatory_recipe_ids,
            attended=set(self.attended) if self.attended is not None else None,
        )


@dataclass(frozen=True)
class OracleRequest:
    bundle: ConstraintBundle
    attempt: int
    max_attempts: int
    feedback: tuple[Violation, ...] = ()
    feedback_text: str = ""


def _tracked_profile(profiles: list[Profile]) -> Optional[Profile]:
    for profile in profiles:
        if profile.macro_tracking_enabled and profile.daily_calories:
            return profile
    return None


def _attended_slots(profile: Optional[Profile], attendance: list[ProfileAttendance]) -> Optional[frozenset]:
    if profile is None:
        return None
    for entry in attendance:
        if entry.profile_id != profile.id or not entry.included:
            continue
        slots = set()
        for raw_day, meals in (entry.grid or {}).items():
            day = normalize_day(raw_day)
            if day is None:
                continue
            eating = [m for m, on in meals.items() if on] if isinstance(meals, dict) else list(meals)
            for meal in eating:
                meal_type = canonical_meal_type(meal)
                if meal_type:
                    slots.add((day, meal_type))
        return frozenset(slots)
    return None


def build_constraints(ctx: PlanningContext) -> ConstraintBundle:
    settings = apply_quick_options(ctx.settings, ctx.quick_options)
    week = WeekSchedule.starting(ctx.week_start)
    recipes = {r.id: r for r in ctx.recipes}
    servings = build_servings_map(ctx.attendance)
    tracked = _tracked_profile(ctx.profiles)
    budget = compute_macro_budget(tracked, servings)
    history = build_history_table(ctx.recipes, ctx.usage_history, settings, ctx.week_start)

    shopping = ShoppingEfficiencyScorer(settings.shopping_mode)
    for meal in ctx.locked_meals:
        if meal.recipe_id in recipes:
            shopping.commit(recipes[meal.recipe_id])
    expiry = ExpiryPriorityScorer(
        ctx.inventory,
        settings.expiry_priority,
        settings.expiry_window_days,
        settings.use_it_up_items,
        today=ctx.today,
    )
    hints = build_recipe_hints(ctx.recipes, shopping, expiry, {rid: h.bonus for rid, h in history.items()})

    bundle = ConstraintBundle(
        week=week,
        settings=settings,
        recipes=recipes,
        servings=servings,
        budget=budget,
        tracked_profile=tracked,
        history=history,
        hints=hints,
        priorities=resolve_priorities(settings.priority_order),
        expiring_items=tuple(expiry.expiring),
        mandatory_recipe_ids=tuple(ctx.mandatory_recipe_ids),
        locked_meals=tuple(ctx.locked_meals),
        attended=_attended_slots(tracked, ctx.attendance),
    )
    logger.info(
        "planner.constraints week_start=%s recipes=%s slots=%s budget=%s on_cooldown=%s",
        ctx.week_start,
        len(recipes),
        len(bundle.slots),
        budget.total_plan_percent if budget else None,
        sum(1 for h in history.values() if h.cooldown_remaining > 0),
    )
    return bundle
