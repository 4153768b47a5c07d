"""
Serialise an OracleRequest into prompt text. This is the only place constraint
structures become strings; everything upstream stays typed.
"""

from __future__ import annotations

from app.config import settings
from app.services.llm.prompts import (
    BATCH_DISABLED_RULE,
    BATCH_ENABLED_RULE,
    MEAL_PLAN_TEMPLATE,
    SUMMARY_DETAIL,
)
from app.services.planner.constraints import ConstraintBundle, OracleRequest
from app.services.planner.domain import MacroMode, Recipe, ViolationCategory
from app.services.planner.macros import tolerance_for
from app.services.planner.meal_types import BREAKFAST, DINNER, LUNCH
from app.services.planner.priority import PRIORITY_LABELS


def _fmt(value) -> str:
    if value is None:
        return "?"
    return f"{value:g}" if isinstance(value, float) else str(value)


def render_template(bundle: ConstraintBundle) -> str:
    plan_settings = bundle.settings
    if plan_settings.batch_cooking_enabled:
        batch_rule = BATCH_ENABLED_RULE.format(max_leftover_days=plan_settings.max_leftover_days)
    else:
        batch_rule = BATCH_DISABLED_RULE
    priorities = "\n".join(f"{i}. {PRIORITY_LABELS[p]}" for i, p in enumerate(bundle.priorities.order, start=1))
    return MEAL_PLAN_TEMPLATE.format(
        batch_rule=batch_rule,
        priorities=priorities,
        summary_detail=SUMMARY_DETAIL[plan_settings.feedback_detail.value],
    )


def render_schedule(bundle: ConstraintBundle) -> str:
    lines = [f"Week order: {', '.join(bundle.week.days)} (starts {bundle.week.week_start.isoformat()})"]
    slots = bundle.slots
    if slots:
        lines += [f"- {day} {meal_type}: {count} people" for day, meal_type, count in slots]
    else:
        lines.append(f"- every day: {BREAKFAST}, {LUNCH}, {DINNER} for the whole household")
    if bundle.locked_meals:
        lines.append("Locked meals (already decided, keep exactly as is):")
        for meal in bundle.locked_meals:
            recipe = bundle.recipes.get(meal.recipe_id or "")
            name = recipe.name if recipe else meal.recipe_name
            lines.append(f"- {meal.day} {meal.meal_type}: {name} (recipeId {meal.recipe_id})")
    return "\n".join(lines)


def render_nutrition(bundle: ConstraintBundle) -> str:
    budget = bundle.budget
    if budget is None:
        return "No calorie targets are tracked for this household."
    mode = bundle.settings.macro_mode
    lines = [f"Targets for {budget.profile_name}: {budget.explanation}."]
    for meal_type in budget.present:
        meal = budget.meals[meal_type]
        macros = ", ".join(
            f"{label} {value}g" for label, value in (("protein", meal.protein), ("carbs", meal.carbs), ("fat", meal.fat)) if value
        )
        lines.append(f"- {meal_type}: ~{meal.calories} cal" + (f" ({macros})" if macros else ""))
    if mode == MacroMode.CALORIE_BANKING:
        lines.append(
            f"Calorie banking: weekdays ~85% and weekends ~130% of {budget.expected_daily_calories} cal; "
            "the weekly total must land within 10%."
        )
    elif mode == MacroMode.WEEKDAY_DISCIPLINE:
        lines.append(
            f"Daily planned total should be {budget.expected_daily_calories} cal: within 5% Mon-Fri, 25% on weekends."
        )
    else:
        pct = int(tolerance_for(mode) * 100)
        lines.append(f"Daily planned total should be {budget.expected_daily_calories} cal within {pct}%.")
    if bundle.priorities.macros_emphasized:
        lines.append("Hitting these numbers is a HIGH priority: a plan outside the range will be rejected.")
    else:
        lines.append("These numbers are a guideline only.")
    return "\n".join(lines)


def _recipe_line(recipe: Recipe, bundle: ConstraintBundle) -> str:
    hint = bundle.hints.get(recipe.id)
    history = bundle.history.get(recipe.id)
    parts = [
        f"recipeId {recipe.id}",
        recipe.name,
        f"mealTypes: {', '.join(recipe.meal_types) or 'none'}",
        f"cuisine: {recipe.cuisine or 'n/a'}",
        f"cal {_fmt(recipe.macros.calories)} / protein {_fmt(recipe.macros.protein)}g",
    ]
    if recipe.total_time_minutes:
        parts.append(f"{recipe.total_time_minutes} min")
    if recipe.yields_multiple_meals:
        parts.append(f"batch: yields {recipe.meals_yielded or 'several'} meals")
    if recipe.is_product:
        parts.append("ready-made product")
    if hint is not None:
        parts.append(f"rating {hint.effective_rating:g}")
        if hint.uses_items:
            parts.append(f"uses expiring: {', '.join(hint.uses_items)}")
    if history is not None and history.cooldown_remaining > 0:
        parts.append(f"cooldown: available from day {history.cooldown_remaining + 1}")
    return "- " + " | ".join(parts)


def select_recipes(bundle: ConstraintBundle, limit: int | None = None) -> list[Recipe]:
    """Highest effective rating first; required and locked recipes are always included."""
    limit = limit or settings.plan_recipe_limit
    pinned = set(bundle.mandatory_recipe_ids) | {m.recipe_id for m in bundle.locked_meals if m.recipe_id}

    def score(recipe: Recipe) -> float:
        hint = bundle.hints.get(recipe.id)
        return hint.effective_rating if hint else 0.0

    ordered = sorted(bundle.recipes.values(), key=lambda r: (r.id not in pinned, -score(r), r.name))
    return ordered[: max(limit, len(pinned))]


def render_recipes(bundle: ConstraintBundle) -> str:
    return "\n".join(_recipe_line(r, bundle) for r in select_recipes(bundle))


def render_rules(bundle: ConstraintBundle) -> str:
    plan_settings = bundle.settings
    lines = []
    if plan_settings.variety_enabled:
        strength = "required" if bundle.priorities.is_fatal(ViolationCategory.VARIETY) else "preferred"
        lines.append(
            f"Variety ({strength}): at least {plan_settings.min_cuisines} cuisines, "
            f"no cuisine more than {plan_settings.max_same_cuisine} times."
        )
    if plan_settings.repeat_allowed_meal_types:
        lines.append(f"Repeats are fine for: {', '.join(plan_settings.repeat_allowed_meal_types)}.")
    if bundle.mandatory_recipe_ids:
        names = [
            f"{bundle.recipes[rid].name} (recipeId {rid})" if rid in bundle.recipes else f"recipeId {rid}"
            for rid in bundle.mandatory_recipe_ids
        ]
        lines.append("REQUIRED RECIPES: " + "; ".join(names))
    if bundle.expiring_items:
        items = ", ".join(
            f"{i.name} (expires {i.expiry_date.isoformat()})" for i in bundle.expiring_items if i.expiry_date
        )
        lines.append(f"Use up soon: {items}.")
    return "\n".join(lines) or "No additional rules."


def render_request(request: OracleRequest) -> dict[str, str]:
    """Inputs for the dspy signature."""
    bundle = request.bundle
    feedback = request.feedback_text or "None: this is the first attempt."
    return {
        "prompt_template": render_template(bundle),
        "schedule": render_schedule(bundle),
        "nutrition": render_nutrition(bundle),
        "recipes": render_recipes(bundle),
        "rules": render_rules(bundle),
        "feedback": f"Attempt {request.attempt} of {request.max_attempts}. {feedback}",
    }
