"""Turn violations into the feedback block sent back to the oracle on a retry."""

from __future__ import annotations

from typing import Iterable

from app.services.planner.domain import Violation, ViolationCategory, ViolationKind

REMEDIATION_HINTS: dict[ViolationKind, str] = {
    ViolationKind.UNKNOWN_DAY: "use the exact day names from the schedule",
    ViolationKind.MISSING_RECIPE_ID: "every meal needs a recipeId copied from the available recipes",
    ViolationKind.UNKNOWN_RECIPE: "only use recipeIds from the available recipe list, never invent one",
    ViolationKind.MEAL_TYPE_MISMATCH: "pick a recipe whose meal types include the slot's meal type",
    ViolationKind.MISSING_SLOT: "plan exactly one meal for every scheduled day and meal type",
    ViolationKind.DUPLICATE_SLOT: "keep a single meal for this day and meal type and drop the others",
    ViolationKind.UNSCHEDULED_SLOT: "remove meals for days and meal types where nobody is eating",
    ViolationKind.MANDATORY_RECIPE_MISSING: "include every required recipe at least once",
    ViolationKind.LEFTOVER_BEFORE_SOURCE: "fix isLeftover/batchCookSourceDay: the cook day must come earlier in the week order",
    ViolationKind.LEFTOVER_SOURCE_MISSING: "fix isLeftover/batchCookSourceDay: plan the same recipe as a non-leftover on the source day",
    ViolationKind.BATCH_SERVINGS_MISMATCH: "set the cook day's servings to that day's people plus every leftover it feeds",
    ViolationKind.LEFTOVER_EXCEEDS_SHELF_LIFE: "move the leftover closer to the cook day or cook it fresh",
    ViolationKind.BATCH_COOKING_DISABLED: "batch cooking is off: set isLeftover=false and cook every meal fresh",
    ViolationKind.COOLDOWN_ACTIVE: "respect cooldown: choose a recipe that was not made recently",
    ViolationKind.COOLDOWN_REPEAT: "respect cooldown: do not cook the same recipe twice this close together",
    ViolationKind.TOO_FEW_CUISINES: "spread the week across more cuisines",
    ViolationKind.CUISINE_OVERUSED: "swap some meals of the overused cuisine for other cuisines",
    ViolationKind.MACRO_BELOW_TARGET: "select higher-calorie recipes",
    ViolationKind.MACRO_ABOVE_TARGET: "select lower-calorie recipes",
    ViolationKind.MACRO_DATA_INSUFFICIENT: "prefer recipes that have nutrition data",
}

_NUTRIENT_HINTS = {
    ("protein", ViolationKind.MACRO_BELOW_TARGET): "select higher-protein recipes",
    ("protein", ViolationKind.MACRO_ABOVE_TARGET): "select lower-protein recipes",
    ("carbs", ViolationKind.MACRO_BELOW_TARGET): "select recipes with more carbohydrates",
    ("carbs", ViolationKind.MACRO_ABOVE_TARGET): "select lower-carb recipes",
    ("fat", ViolationKind.MACRO_BELOW_TARGET): "select recipes with more fat",
    ("fat", ViolationKind.MACRO_ABOVE_TARGET): "select leaner recipes",
}

_CATEGORY_TITLES = {
    ViolationCategory.SCHEMA: "Invalid output",
    ViolationCategory.REQUIREMENT: "Missing required recipes",
    ViolationCategory.BATCH_COOK: "Batch cooking / leftovers",
    ViolationCategory.COOLDOWN: "Cooldown",
    ViolationCategory.VARIETY: "Variety",
    ViolationCategory.MACROS: "Nutrition targets",
}


def remediation_hint(violation: Violation) -> str:
    return _NUTRIENT_HINTS.get((violation.nutrient, violation.kind)) or REMEDIATION_HINTS[violation.kind]


def render_feedback(violations: Iterable[Violation], attempt: int) -> str:
    """Group violations by category; must-fix ones first, advisory ones after."""
    violations = list(violations)
    if not violations:
        return ""
    lines = [f"The previous plan (attempt {attempt}) was rejected. Fix ALL of the following:"]
    for fatal in (True, False):
        group = [v for v in violations if v.fatal is fatal]
        if not group:
            continue
        if not fatal:
            lines.append("")
            lines.append("Also try to improve (advisory):")
        for category in ViolationCategory:
            items = [v for v in group if v.category is category]
            if not items:
                continue
            lines.append(f"[{_CATEGORY_TITLES[category]}]")
            for v in items:
                lines.append(f"- {v.kind.value}: {v.message} -> {remediation_hint(v)}")
    return "\n".join(lines)
