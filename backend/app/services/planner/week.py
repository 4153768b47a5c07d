"""Week rotation: the seven day names in order, starting from the plan's week start."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
WEEKEND = {"Saturday", "Sunday"}


def normalize_day(name: str | None) -> Optional[str]:
    """'monday' / 'MON' / 'Monday ' -> 'Monday'; None when it is not a weekday name."""
    if not name or not isinstance(name, str):
        return None
    value = name.strip().lower()
    for day in DAY_NAMES:
        if value == day.lower() or (len(value) >= 3 and day.lower().startswith(value)):
            return day
    return None


@dataclass(frozen=True)
class WeekSchedule:
    week_start: date
    days: tuple[str, ...]

    @classmethod
    def starting(cls, week_start: date) -> "WeekSchedule":
        first = week_start.weekday()
        return cls(week_start=week_start, days=DAY_NAMES[first:] + DAY_NAMES[:first])

    def position(self, day: str | None) -> Optional[int]:
        """0-based rotation position; 'earlier' always means a smaller position."""
        canonical = normalize_day(day)
        if canonical is None:
            return None
        return self.days.index(canonical)

    def date_of(self, day: str) -> Optional[date]:
        pos = self.position(day)
        if pos is None:
            return None
        return self.week_start + timedelta(days=pos)

    def is_earlier(self, first: str, second: str) -> bool:
        a, b = self.position(first), self.position(second)
        return a is not None and b is not None and a < b

    def gap(self, first: str, second: str) -> Optional[int]:
        a, b = self.position(first), self.position(second)
        if a is None or b is None:
            return None
        return b - a

    @staticmethod
    def is_weekend(day: str) -> bool:
        return normalize_day(day) in WEEKEND
