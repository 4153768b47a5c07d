"""Priority ordering of planning concerns and which violation categories it makes fatal."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from app.services.planner.domain import (
    DEFAULT_PRIORITY_ORDER,
    Priority,
    Violation,
    ViolationCategory,
)

TOP_N = 3

PRIORITY_LABELS = {
    Priority.MACROS: "Hitting macro/calorie targets",
    Priority.RATINGS: "Family favourites (ratings)",
    Priority.VARIETY: "Cuisine variety",
    Priority.SHOPPING: "Shopping efficiency",
    Priority.PREP: "Batch cooking / prep",
    Priority.TIME: "Quick weeknight meals",
}

# Categories that are hard rules no matter how the household orders its priorities
_ALWAYS_FATAL = {
    ViolationCategory.SCHEMA,
    ViolationCategory.REQUIREMENT,
    ViolationCategory.BATCH_COOK,
    ViolationCategory.COOLDOWN,
}

_CATEGORY_PRIORITY = {
    ViolationCategory.VARIETY: Priority.VARIETY,
    ViolationCategory.MACROS: Priority.MACROS,
}


@dataclass(frozen=True)
class PriorityResolution:
    order: tuple[Priority, ...]

    def rank(self, priority: Priority) -> int:
        """1-based position in the household's ordering."""
        return self.order.index(Priority(priority)) + 1

    def is_top(self, priority: Priority, n: int = TOP_N) -> bool:
        return self.rank(priority) <= n

    @property
    def macros_emphasized(self) -> bool:
        return self.is_top(Priority.MACROS)

    def is_fatal(self, category: ViolationCategory) -> bool:
        if category in _ALWAYS_FATAL:
            return True
        return self.is_top(_CATEGORY_PRIORITY[category])

    def labels(self) -> list[str]:
        return [f"{i}. {PRIORITY_LABELS[p]}" for i, p in enumerate(self.order, start=1)]

    def explain_relaxed(self, violations: Iterable[Violation]) -> list[str]:
        """One caveat line per violation category left in a plan that was not accepted outright."""
        by_category: dict[ViolationCategory, list[Violation]] = {}
        for v in violations:
            by_category.setdefault(v.category, []).append(v)
        caveats = []
        for category, items in by_category.items():
            priority = _CATEGORY_PRIORITY.get(category)
            if priority is None:
                caveats.append(
                    f"{category.value}: {len(items)} unresolved issue(s) after all attempts "
                    f"(e.g. {items[0].message})"
                )
                continue
            rank = self.rank(priority)
            outranked = [PRIORITY_LABELS[p].lower() for p in self.order[: rank - 1]]
            reason = f"ranked #{rank} of {len(self.order)}"
            if outranked:
                reason += ", after " + ", ".join(outranked)
            caveats.append(f"{PRIORITY_LABELS[priority]} relaxed ({reason}): {len(items)} issue(s)")
        return caveats


def resolve_priorities(order: Iterable[Priority | str] | None) -> PriorityResolution:
    """Dedupe the stored ordering, drop unknown names and append any missing concerns in default order."""
    resolved: list[Priority] = []
    for raw in order or ():
        try:
            priority = Priority(str(getattr(raw, "value", raw)).strip().lower())
        except ValueError:
            continue
        if priority not in resolved:
            resolved.append(priority)
    for priority in DEFAULT_PRIORITY_ORDER:
        if priority not in resolved:
            resolved.append(priority)
    return PriorityResolution(order=tuple(resolved))
