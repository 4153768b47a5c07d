"""Tests for the shopping-efficiency and expiry-priority boosts."""

from datetime import date, timedelta

from app.services.planner.domain import ExpiryPriority, InventoryItem, ShoppingMode
from app.services.planner.scoring import ExpiryPriorityScorer, ShoppingEfficiencyScorer, build_recipe_hints
from factories import recipe

TODAY = date(2026, 10, 18)


def test_pantry_staples_are_not_shopping():
    scorer = ShoppingEfficiencyScorer(ShoppingMode.MODERATE)
    stir_fry = recipe("1", ingredients=("Chicken breast", "broccoli", "salt", "olive oil", "garlic"))
    assert scorer.shopping_ingredients(stir_fry) == {"chicken breast", "broccoli"}


def test_overlap_boost_scales_with_mode():
    first = recipe("1", ingredients=("chicken breast", "broccoli"))
    second = recipe("2", ingredients=("chicken breast", "rice", "salt"))
    for mode, expected in ((ShoppingMode.MILD, 0.15), (ShoppingMode.MODERATE, 0.25), (ShoppingMode.AGGRESSIVE, 0.4)):
        scorer = ShoppingEfficiencyScorer(mode)
        assert scorer.boost(second) == 0.0
        scorer.commit(first)
        assert scorer.overlap_ratio(second) == 0.5
        assert scorer.boost(second) == expected
    assert scorer.unique_ingredient_count == 2


def test_overlap_only_breaks_near_ties():
    scorer = ShoppingEfficiencyScorer(ShoppingMode.AGGRESSIVE)
    scorer.commit(recipe("0", ingredients=("ground beef", "tortillas")))
    shared = recipe("1", ingredients=("ground beef", "tortillas"), family_rating=4.0)
    fresh = recipe("2", ingredients=("salmon", "asparagus"), family_rating=4.5)
    favourite = recipe("3", ingredients=("lamb",), family_rating=5.5)
    assert scorer.prefer(shared, fresh) is shared
    assert scorer.prefer(shared, favourite) is favourite


def test_expiring_items_within_window():
    inventory = [
        InventoryItem(id="1", name="spinach", expiry_date=TODAY + timedelta(days=2)),
        InventoryItem(id="2", name="yogurt", expiry_date=TODAY + timedelta(days=10)),
        InventoryItem(id="3", name="rice"),
    ]
    scorer = ExpiryPriorityScorer(inventory, ExpiryPriority.STRONG, window_days=5, today=TODAY)
    assert [i.name for i in scorer.expiring] == ["spinach"]
    assert scorer.boost(recipe("1", ingredients=("baby spinach", "feta"))) == 1.0
    assert scorer.boost(recipe("2", ingredients=("yogurt",))) == 0.0
    assert scorer.days_until_expiry(inventory[0]) == 2


def test_pinned_use_it_up_items_boost():
    inventory = [InventoryItem(id="7", name="butternut squash")]
    scorer = ExpiryPriorityScorer(inventory, ExpiryPriority.SOFT, window_days=5, use_it_up_ids=["7"], today=TODAY)
    assert scorer.boost(recipe("1", ingredients=("butternut squash", "sage"))) == 0.3


def test_recipe_hints_combine_boosts():
    shopping = ShoppingEfficiencyScorer(ShoppingMode.MODERATE)
    expiry = ExpiryPriorityScorer(
        [InventoryItem(id="1", name="spinach", expiry_date=TODAY)], ExpiryPriority.MODERATE, 5, today=TODAY
    )
    hints = build_recipe_hints(
        [recipe("1", ingredients=("spinach",), family_rating=4.0)], shopping, expiry, {"1": 1.5}
    )
    assert hints["1"].effective_rating == 6.0
    assert hints["1"].uses_items == ("spinach",)
