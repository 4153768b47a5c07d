from datetime import date, datetime
from typing import Iterable, Optional

from sqlmodel import Session, select

from app.logging import get_logger
from app.services.planner import domain
from app.services.planner.priority import resolve_priorities
from app.storage.models import (
    FamilyProfile,
    Household,
    InventoryItem,
    LLMCallLog,
    MealPlan,
    MealPlanSettingsRecord,
    PlannedMeal,
    Recipe,
    RecipeIngredient,
    RecipeUsageHistory,
)

logger = get_logger(__name__)


def _id(value: Optional[int]) -> Optional[str]:
    return str(value) if value is not None else None


def _int_id(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def get_household(session: Session, household_id: int) -> Household | None:
    return session.get(Household, household_id)


def load_profiles(session: Session, household_id: int) -> list[domain.Profile]:
    rows = session.exec(select(FamilyProfile).where(FamilyProfile.household_id == household_id))
    return [
        domain.Profile(
            id=_id(p.id),
            name=p.name,
            age=p.age,
            macro_tracking_enabled=p.macro_tracking_enabled,
            daily_calories=p.daily_calories,
            daily_protein=p.daily_protein,
            daily_carbs=p.daily_carbs,
            daily_fat=p.daily_fat,
            daily_fiber=p.daily_fiber,
            allergies=tuple(p.allergies or ()),
            likes=tuple(p.likes or ()),
            dislikes=tuple(p.dislikes or ()),
        )
        for p in rows
    ]


def load_recipes(session: Session, household_id: int) -> list[domain.Recipe]:
    rows = list(session.exec(select(Recipe).where(Recipe.household_id == household_id)))
    ingredients: dict[int, list[str]] = {}
    if rows:
        links = session.exec(select(RecipeIngredient).where(RecipeIngredient.recipe_id.in_([r.id for r in rows])))
        for link in links:
            ingredients.setdefault(link.recipe_id, []).append(link.name)
    return [
        domain.Recipe(
            id=_id(r.id),
            name=r.name,
            meal_types=tuple(r.meal_types or ()),
            cuisine=r.cuisine,
            macros=domain.Macros(calories=r.calories, protein=r.protein, carbs=r.carbs, fat=r.fat),
            dietary_flags=tuple(r.dietary_flags or ()),
            ingredients=tuple(ingredients.get(r.id, ())),
            yields_multiple_meals=r.yields_multiple_meals,
            meals_yielded=r.meals_yielded,
            family_rating=r.family_rating,
            total_time_minutes=r.total_time_minutes,
            is_product=r.is_product,
            shelf_life_category=r.shelf_life_category,
        )
        for r in rows
    ]


def load_usage_history(session: Session, household_id: int, since: date) -> list[domain.UsageRecord]:
    rows = session.exec(
        select(RecipeUsageHistory).where(
            RecipeUsageHistory.household_id == household_id, RecipeUsageHistory.used_date >= since
        )
    )
    return [
        domain.UsageRecord(
            recipe_id=_id(u.recipe_id), used_date=u.used_date, was_manual=u.was_manual, meal_type=u.meal_type
        )
        for u in rows
    ]


def load_inventory(session: Session, household_id: int) -> list[domain.InventoryItem]:
    rows = session.exec(select(InventoryItem).where(InventoryItem.household_id == household_id))
    return [
        domain.InventoryItem(id=_id(i.id), name=i.name, quantity=i.quantity, unit=i.unit, expiry_date=i.expiry_date)
        for i in rows
    ]


def settings_from_record(record: Optional[MealPlanSettingsRecord]) -> domain.PlanSettings:
    if record is None:
        return domain.PlanSettings()
    return domain.PlanSettings(
        macro_mode=domain.MacroMode(record.macro_mode),
        variety_enabled=record.variety_enabled,
        dinner_cooldown=record.dinner_cooldown,
        lunch_cooldown=record.lunch_cooldown,
        breakfast_cooldown=record.breakfast_cooldown,
        snack_cooldown=record.snack_cooldown,
        min_cuisines=record.min_cuisines,
        max_same_cuisine=record.max_same_cuisine,
        shopping_mode=domain.ShoppingMode(record.shopping_mode),
        expiry_priority=domain.ExpiryPriority(record.expiry_priority),
        expiry_window_days=record.expiry_window_days,
        use_it_up_items=tuple(str(i) for i in record.use_it_up_items or ()),
        batch_cooking_enabled=record.batch_cooking_enabled,
        max_leftover_days=record.max_leftover_days,
        priority_order=resolve_priorities(record.priority_order).order,
        feedback_detail=domain.FeedbackDetail(record.feedback_detail),
        allow_dinner_for_lunch=record.allow_dinner_for_lunch,
        repeat_allowed_meal_types=tuple(record.repeat_allowed_meal_types or ()),
    )


def load_plan_settings(session: Session, household_id: int) -> domain.PlanSettings:
    record = session.exec(
        select(MealPlanSettingsRecord).where(MealPlanSettingsRecord.household_id == household_id)
    ).first()
    return settings_from_record(record)


def create_meal_plan(
    session: Session, household_id: int, week_start: date, request_payload: dict, status: str = "Generating"
) -> MealPlan:
    plan = MealPlan(
        household_id=household_id,
        week_start_date=week_start,
        status=status,
        request_payload=request_payload,
    )
    session.add(plan)
    session.commit()
    session.refresh(plan)
    logger.info("meal_plan.created id=%s household_id=%s week_start=%s", plan.id, household_id, week_start)
    return plan


def get_meal_plan(session: Session, meal_plan_id: int) -> MealPlan | None:
    return session.get(MealPlan, meal_plan_id)


def get_planned_meals(session: Session, meal_plan_id: int) -> list[PlannedMeal]:
    return list(
        session.exec(select(PlannedMeal).where(PlannedMeal.meal_plan_id == meal_plan_id).order_by(PlannedMeal.id))
    )


def planned_meal_to_candidate(meal: PlannedMeal) -> domain.CandidateMeal:
    return domain.CandidateMeal(
        day=meal.day_of_week,
        meal_type=meal.meal_type,
        recipe_id=_id(meal.recipe_id) or meal.unresolved_recipe_id,
        servings=meal.servings,
        is_leftover=meal.is_leftover,
        batch_cook_source_day=meal.batch_cook_source_day,
        note=meal.notes,
        recipe_name=meal.recipe_name,
        is_locked=meal.is_locked,
    )


def get_locked_meals(session: Session, meal_plan_id: int) -> list[domain.CandidateMeal]:
    return [planned_meal_to_candidate(m) for m in get_planned_meals(session, meal_plan_id) if m.is_locked]


def save_plan_outcome(
    session: Session,
    plan: MealPlan,
    meals: Iterable[domain.CandidateMeal],
    *,
    accepted: bool,
    summary: str,
    attempts: int,
    violations: list[dict],
    caveats: list[str],
    budget: Optional[dict],
) -> MealPlan:
    """Replace the plan's meals with the outcome and mark it Draft."""
    for old in get_planned_meals(session, plan.id):
        session.delete(old)
    meals = list(meals)
    session.add_all(
        PlannedMeal(
            meal_plan_id=plan.id,
            day_of_week=m.day,
            meal_type=m.meal_type,
            recipe_id=_int_id(m.recipe_id),
            unresolved_recipe_id=m.recipe_id if _int_id(m.recipe_id) is None else None,
            recipe_name=m.recipe_name,
            servings=m.servings,
            is_leftover=m.is_leftover,
            batch_cook_source_day=m.batch_cook_source_day,
            notes=m.note,
            is_locked=m.is_locked,
        )
        for m in meals
    )
    plan.status = "Draft"
    plan.accepted = accepted
    plan.summary = summary
    plan.attempts = attempts
    plan.violations = violations
    plan.caveats = caveats
    plan.budget = budget
    plan.error = None
    plan.updated_at = datetime.utcnow()
    session.add(plan)
    session.commit()
    session.refresh(plan)
    logger.info(
        "meal_plan.saved id=%s meals=%s accepted=%s violations=%s", plan.id, len(meals), accepted, len(violations)
    )
    return plan


def mark_plan_status(session: Session, plan: MealPlan, status: str, error: Optional[str] = None) -> MealPlan:
    plan.status = status
    plan.error = error
    plan.updated_at = datetime.utcnow()
    session.add(plan)
    session.commit()
    session.refresh(plan)
    logger.info("meal_plan.status id=%s status=%s error=%s", plan.id, status, error)
    return plan


def log_llm_call(
    session: Session,
    prompt_name: str,
    prompt_version: str,
    model: str,
    input_payload: str,
    output_payload: str,
    latency_ms: int,
) -> None:
    session.add(
        LLMCallLog(
            prompt_name=prompt_name,
            prompt_version=prompt_version,
            model=model,
            input_payload=input_payload,
            output_payload=output_payload,
            latency_ms=latency_ms,
        )
    )
    session.commit()
