"""
Meal-plan generation glue: request schemas + stores -> PlanningContext -> planner -> stored MealPlan.
Shared by the HTTP routes and the Celery task.
"""

from __future__ import annotations

import threading
from dataclasses import asdict, replace
from datetime import timedelta
from typing import Iterable, Optional

from sqlmodel import Session

from app.config import settings
from app.logging import get_logger
from app.schemas.plan import (
    AttendanceIn,
    BudgetOut,
    GeneratePlanRequest,
    MealIn,
    MealOut,
    PlanResponse,
    PlanSettingsIn,
    QuickOptionsIn,
    ViolationOut,
)
from app.services.planner import GeneratedPlan, PlanningContext, PlanOracle, generate_plan
from app.services.planner.domain import (
    CandidateMeal,
    ExpiryPriority,
    FeedbackDetail,
    MacroMode,
    PlanSettings,
    ProfileAttendance,
    QuickOptions,
    ShoppingMode,
    Violation,
)
from app.services.planner.errors import PlanGenerationError, PlanningCancelled, PlanRequestError
from app.services.planner.macros import MacroBudget
from app.services.planner.priority import resolve_priorities
from app.storage.models import MealPlan
from app.storage.repositories import (
    get_household,
    get_locked_meals,
    get_planned_meals,
    load_inventory,
    load_plan_settings,
    load_profiles,
    load_recipes,
    load_usage_history,
    mark_plan_status,
    save_plan_outcome,
)

logger = get_logger(__name__)

_ENUM_FIELDS = {
    "macro_mode": MacroMode,
    "shopping_mode": ShoppingMode,
    "expiry_priority": ExpiryPriority,
    "feedback_detail": FeedbackDetail,
}


def default_oracle() -> PlanOracle:
    from app.services.llm.plan_oracle import DspyPlanOracle

    return DspyPlanOracle()


def apply_settings_override(base: PlanSettings, override: Optional[PlanSettingsIn]) -> PlanSettings:
    if override is None:
        return base
    changes = override.model_dump(exclude_none=True)
    try:
        for name, enum_cls in _ENUM_FIELDS.items():
            if name in changes:
                changes[name] = enum_cls(changes[name])
    except ValueError as exc:
        raise PlanRequestError(f"invalid setting: {exc}") from exc
    if "priority_order" in changes:
        changes["priority_order"] = resolve_priorities(changes["priority_order"]).order
    for name in ("use_it_up_items", "repeat_allowed_meal_types"):
        if name in changes:
            changes[name] = tuple(str(v) for v in changes[name])
    return replace(base, **changes)


def attendance_from_request(items: Iterable[AttendanceIn]) -> list[ProfileAttendance]:
    out = []
    for item in items:
        grid = {
            day: meals if isinstance(meals, dict) else {m: True for m in meals}
            for day, meals in item.grid.items()
        }
        out.append(ProfileAttendance(profile_id=str(item.profile_id), grid=grid, included=item.included))
    return out


def meal_from_request(meal: MealIn) -> CandidateMeal:
    return CandidateMeal(
        day=meal.day_of_week,
        meal_type=meal.meal_type,
        recipe_id=str(meal.recipe_id) if meal.recipe_id is not None else None,
        servings=meal.servings,
        is_leftover=meal.is_leftover,
        batch_cook_source_day=meal.batch_cook_source_day,
        note=meal.notes,
        recipe_name=meal.recipe_name,
        is_locked=meal.is_locked,
    )


def _quick_options(options: Optional[QuickOptionsIn]) -> Optional[QuickOptions]:
    if options is None:
        return None
    return QuickOptions(**options.model_dump())


def build_context(
    session: Session,
    household_id: int,
    week_start,
    attendance: Iterable[AttendanceIn] = (),
    settings_override: Optional[PlanSettingsIn] = None,
    quick_options: Optional[QuickOptionsIn] = None,
    mandatory_recipe_ids: Iterable[int] = (),
    locked_meals: Iterable[CandidateMeal] = (),
) -> PlanningContext:
    """Read every input fresh from the stores for this run."""
    if get_household(session, household_id) is None:
        raise PlanRequestError(f"household {household_id} not found")
    recipes = load_recipes(session, household_id)
    if not recipes:
        raise PlanRequestError(f"household {household_id} has no recipes to plan with")
    since = week_start - timedelta(weeks=settings.usage_history_weeks)
    return PlanningContext(
        week_start=week_start,
        profiles=load_profiles(session, household_id),
        recipes=recipes,
        attendance=attendance_from_request(attendance),
        usage_history=load_usage_history(session, household_id, since),
        inventory=load_inventory(session, household_id),
        settings=apply_settings_override(load_plan_settings(session, household_id), settings_override),
        quick_options=_quick_options(quick_options),
        mandatory_recipe_ids=[str(r) for r in mandatory_recipe_ids],
        locked_meals=list(locked_meals),
    )


def violation_payload(violation: Violation) -> dict:
    return {
        "kind": violation.kind.value,
        "category": violation.category.value,
        "error_class": violation.error_class.value,
        "fatal": violation.fatal,
        "message": violation.message,
        "day": violation.day,
        "meal_type": violation.meal_type,
        "recipe_id": violation.recipe_id,
        "nutrient": violation.nutrient,
    }


def budget_payload(budget: Optional[MacroBudget]) -> Optional[dict]:
    if budget is None:
        return None
    return {
        "profile_id": budget.profile_id,
        "profile_name": budget.profile_name,
        "daily_calories": budget.daily_calories,
        "total_plan_percent": budget.total_plan_percent,
        "expected_daily_calories": budget.expected_daily_calories,
        "explanation": budget.explanation,
        "meals": {mt: asdict(b) if b else None for mt, b in budget.meals.items()},
    }


def run_generation(
    session: Session,
    plan: MealPlan,
    oracle: Optional[PlanOracle] = None,
    cancel_event: Optional[threading.Event] = None,
) -> GeneratedPlan:
    """Generate (or regenerate) a stored plan from its saved request. Locked meals already on the plan win."""
    request = GeneratePlanRequest.model_validate(plan.request_payload or {})
    locked = get_locked_meals(session, plan.id) or [
        replace(meal_from_request(m), is_locked=True) for m in request.locked_meals
    ]
    try:
        ctx = build_context(
            session,
            plan.household_id,
            plan.week_start_date,
            attendance=request.attendance,
            settings_override=request.settings,
            quick_options=request.quick_options,
            mandatory_recipe_ids=request.mandatory_recipe_ids,
            locked_meals=locked,
        )
        generated = generate_plan(ctx, oracle or default_oracle(), cancel_event=cancel_event)
    except PlanningCancelled as exc:
        mark_plan_status(session, plan, "Cancelled", error=str(exc))
        raise
    except (PlanGenerationError, PlanRequestError) as exc:
        mark_plan_status(session, plan, "Failed", error=str(exc))
        raise
    except Exception as exc:
        logger.exception("meal_plan.generation.crash id=%s", plan.id)
        session.rollback()
        mark_plan_status(session, plan, "Failed", error=f"{type(exc).__name__}: {exc}")
        raise

    names = {r.id: r.name for r in ctx.recipes}
    meals = [replace(m, recipe_name=names.get(m.recipe_id or "", m.recipe_name)) for m in generated.plan]
    save_plan_outcome(
        session,
        plan,
        meals,
        accepted=generated.accepted,
        summary=generated.summary,
        attempts=generated.attempts,
        violations=[violation_payload(v) for v in generated.violations],
        caveats=generated.caveats,
        budget=budget_payload(generated.budget),
    )
    return generated


def plan_response(session: Session, plan: MealPlan) -> PlanResponse:
    meals = get_planned_meals(session, plan.id)
    return PlanResponse(
        meal_plan_id=plan.id,
        status=plan.status,
        accepted=plan.accepted,
        plan=[
            MealOut(
                day_of_week=m.day_of_week,
                meal_type=m.meal_type,
                recipe_id=m.recipe_id,
                unresolved_recipe_id=m.unresolved_recipe_id,
                recipe_name=m.recipe_name,
                servings=m.servings,
                is_leftover=m.is_leftover,
                batch_cook_source_day=m.batch_cook_source_day,
                notes=m.notes,
                is_locked=m.is_locked,
            )
            for m in meals
        ],
        violations=[ViolationOut(**v) for v in plan.violations or []],
        summary=plan.summary,
        caveats=plan.caveats or [],
        attempts=plan.attempts,
        budget=BudgetOut(**plan.budget) if plan.budget else None,
        error=plan.error,
    )
