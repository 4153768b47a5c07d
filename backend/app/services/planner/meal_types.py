"""Canonical meal-type mapping. Every cooldown/budget/validation lookup goes through here."""

import re
from typing import Optional

BREAKFAST = "breakfast"
LUNCH = "lunch"
DINNER = "dinner"
SNACK = "snack"  # merged snack/dessert bucket

CANONICAL_MEAL_TYPES = (BREAKFAST, LUNCH, DINNER, SNACK)

# Tags that fit more than one slot
_MAIN_COURSE_TAGS = {"main-course", "main", "supper"}


def normalize_meal_type(raw: str | None) -> str:
    """'Morning Snack' -> 'morning-snack'."""
    if not raw:
        return ""
    return re.sub(r"[\s_]+", "-", raw.strip().lower())


def canonical_meal_type(raw: str | None) -> Optional[str]:
    """Map any slot or tag spelling onto breakfast | lunch | dinner | snack, else None."""
    value = normalize_meal_type(raw)
    if not value:
        return None
    if "breakfast" in value or value == "brunch":
        return BREAKFAST
    if "lunch" in value:
        return LUNCH
    if "dinner" in value or value == "supper":
        return DINNER
    if "snack" in value or "dessert" in value:
        return SNACK
    return None


def slots_for_tag(tag: str, allow_dinner_for_lunch: bool = True) -> set[str]:
    """Canonical slot types a recipe tagged ``tag`` may fill."""
    value = normalize_meal_type(tag)
    if value in _MAIN_COURSE_TAGS:
        return {LUNCH, DINNER}
    canonical = canonical_meal_type(value)
    if canonical is None:
        return set()
    if canonical == DINNER and allow_dinner_for_lunch:
        return {DINNER, LUNCH}
    return {canonical}


def recipe_fits_slot(tags, slot_meal_type: str, allow_dinner_for_lunch: bool = True) -> bool:
    slot = canonical_meal_type(slot_meal_type)
    if slot is None:
        # unknown slot names can only match a literal tag
        wanted = normalize_meal_type(slot_meal_type)
        return any(normalize_meal_type(t) == wanted for t in tags)
    return any(slot in slots_for_tag(t, allow_dinner_for_lunch) for t in tags)
