"""Turn per-profile weekly attendance into required serving counts per day and meal type."""

from typing import Iterable, Mapping

from app.logging import get_logger
from app.services.planner.domain import ProfileAttendance
from app.services.planner.meal_types import CANONICAL_MEAL_TYPES, canonical_meal_type
from app.services.planner.week import WeekSchedule, normalize_day

logger = get_logger(__name__)

# day -> canonical meal type -> number of attending profiles
ServingsMap = dict[str, dict[str, int]]


def _eating_meal_types(day_entry: Mapping[str, bool] | Iterable[str] | None) -> set[str]:
    if not day_entry:
        return set()
    if isinstance(day_entry, Mapping):
        raw = [meal for meal, eating in day_entry.items() if eating]
    else:
        raw = list(day_entry)
    out = set()
    for meal in raw:
        canonical = canonical_meal_type(meal)
        if canonical is not None:
            out.add(canonical)
    return out


def build_servings_map(attendance: Iterable[ProfileAttendance]) -> ServingsMap:
    """
    Sum one serving per attending profile for each day and canonical meal type.
    A profile eating both a morning snack and a dessert counts once in the snack bucket.
    Zero totals are left out of the map.
    """
    servings: ServingsMap = {}
    for entry in attendance:
        if not entry.included:
            continue
        for raw_day, meals in (entry.grid or {}).items():
            day = normalize_day(raw_day)
            if day is None:
                logger.warning("attendance.unknown_day profile=%s day=%s", entry.profile_id, raw_day)
                continue
            for meal_type in _eating_meal_types(meals):
                day_map = servings.setdefault(day, {})
                day_map[meal_type] = day_map.get(meal_type, 0) + 1
    return servings


def servings_for(servings: ServingsMap, day: str, meal_type: str) -> int:
    canonical_day = normalize_day(day)
    canonical_meal = canonical_meal_type(meal_type)
    if canonical_day is None or canonical_meal is None:
        return 0
    return servings.get(canonical_day, {}).get(canonical_meal, 0)


def days_served(servings: ServingsMap, meal_type: str) -> int:
    return sum(1 for day_map in servings.values() if day_map.get(meal_type, 0) > 0)


def scheduled_slots(servings: ServingsMap, week: WeekSchedule) -> list[tuple[str, str, int]]:
    """(day, meal_type, servings) for every non-empty slot, in rotation order."""
    slots = []
    for day in week.days:
        day_map = servings.get(day, {})
        for meal_type in CANONICAL_MEAL_TYPES:
            count = day_map.get(meal_type, 0)
            if count > 0:
                slots.append((day, meal_type, count))
    return slots
