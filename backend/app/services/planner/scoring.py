"""
Advisory rating boosts: shopping efficiency (ingredient overlap) and expiry priority
(using up inventory). Neither ever vetoes a recipe; they feed the oracle's selection hints.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from app.services.planner.domain import ExpiryPriority, InventoryItem, Recipe, ShoppingMode
from app.services.planner.reference_data import EXPIRY_BOOST, PANTRY_STAPLES, SHOPPING_BOOST

# Two recipes whose family ratings differ by no more than this are "similarly rated"
SIMILAR_RATING_DELTA = 1.0


def _norm(name: str) -> str:
    return " ".join((name or "").lower().split())


def _names_match(a: str, b: str) -> bool:
    a, b = _norm(a), _norm(b)
    return bool(a and b) and (a == b or a in b or b in a)


class ShoppingEfficiencyScorer:
    """Tracks the unique non-staple ingredients committed to the plan so far."""

    def __init__(
        self,
        mode: ShoppingMode,
        pantry_staples: Iterable[str] = PANTRY_STAPLES,
        boosts: dict[str, float] = SHOPPING_BOOST,
    ) -> None:
        self.mode = ShoppingMode(mode)
        self.max_boost = boosts[self.mode.value]
        self._staples = tuple(_norm(s) for s in pantry_staples)
        self.committed: set[str] = set()

    def is_staple(self, ingredient: str) -> bool:
        return any(_names_match(ingredient, staple) for staple in self._staples)

    def shopping_ingredients(self, recipe: Recipe) -> set[str]:
        return {_norm(i) for i in recipe.ingredients if i and not self.is_staple(i)}

    def overlap_ratio(self, recipe: Recipe) -> float:
        needed = self.shopping_ingredients(recipe)
        if not needed:
            return 0.0
        return len(needed & self.committed) / len(needed)

    def boost(self, recipe: Recipe) -> float:
        return round(self.max_boost * self.overlap_ratio(recipe), 3)

    def commit(self, recipe: Recipe) -> None:
        self.committed |= self.shopping_ingredients(recipe)

    def effective_rating(self, recipe: Recipe, bonus: float = 0.0) -> float:
        return (recipe.family_rating or 0.0) + bonus + self.boost(recipe)

    def prefer(self, a: Recipe, b: Recipe) -> Recipe:
        """Pick between two candidates for one slot; overlap only breaks near-ties."""
        rating_a, rating_b = a.family_rating or 0.0, b.family_rating or 0.0
        if abs(rating_a - rating_b) > SIMILAR_RATING_DELTA:
            return a if rating_a > rating_b else b
        return a if self.effective_rating(a) >= self.effective_rating(b) else b

    @property
    def unique_ingredient_count(self) -> int:
        return len(self.committed)


class ExpiryPriorityScorer:
    def __init__(
        self,
        inventory: Iterable[InventoryItem],
        priority: ExpiryPriority,
        window_days: int,
        use_it_up_ids: Iterable[str] = (),
        today: Optional[date] = None,
        boosts: dict[str, float] = EXPIRY_BOOST,
    ) -> None:
        self.priority = ExpiryPriority(priority)
        self.max_boost = boosts[self.priority.value]
        self.today = today or date.today()
        self.cutoff = self.today + timedelta(days=window_days)
        inventory = list(inventory)
        pinned_ids = set(use_it_up_ids)
        self.expiring = [i for i in inventory if i.expiry_date is not None and i.expiry_date <= self.cutoff]
        self.pinned = [i for i in inventory if i.id in pinned_ids]

    def days_until_expiry(self, item: InventoryItem) -> Optional[int]:
        if item.expiry_date is None:
            return None
        return (item.expiry_date - self.today).days

    def matching_items(self, recipe: Recipe) -> list[InventoryItem]:
        seen: dict[str, InventoryItem] = {}
        for item in self.expiring + self.pinned:
            if any(_names_match(ingredient, item.name) for ingredient in recipe.ingredients):
                seen.setdefault(item.id, item)
        return list(seen.values())

    def boost(self, recipe: Recipe) -> float:
        return self.max_boost if self.matching_items(recipe) else 0.0


@dataclass(frozen=True)
class RecipeHint:
    recipe_id: str
    family_rating: Optional[float]
    manual_bonus: float
    shopping_boost: float
    expiry_boost: float
    uses_items: tuple[str, ...] = ()

    @property
    def effective_rating(self) -> float:
        return round(
            (self.family_rating or 0.0) + self.manual_bonus + self.shopping_boost + self.expiry_boost, 3
        )


def build_recipe_hints(
    recipes: Iterable[Recipe],
    shopping: ShoppingEfficiencyScorer,
    expiry: ExpiryPriorityScorer,
    bonuses: dict[str, float],
) -> dict[str, RecipeHint]:
    hints = {}
    for recipe in recipes:
        hints[recipe.id] = RecipeHint(
            recipe_id=recipe.id,
            family_rating=recipe.family_rating,
            manual_bonus=bonuses.get(recipe.id, 0.0),
            shopping_boost=shopping.boost(recipe),
            expiry_boost=expiry.boost(recipe),
            uses_items=tuple(i.name for i in expiry.matching_items(recipe)),
        )
    return hints
