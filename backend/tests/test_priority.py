from app.services.planner.domain import Priority, Violation, ViolationCategory, ViolationKind
from app.services.planner.priority import resolve_priorities


def test_default_order():
    resolution = resolve_priorities(None)
    assert resolution.order[0] is Priority.MACROS
    assert resolution.macros_emphasized
    assert resolution.rank(Priority.VARIETY) == 3
    assert resolution.is_fatal(ViolationCategory.VARIETY)
    assert resolution.is_fatal(ViolationCategory.MACROS)


def test_low_macro_priority_makes_macros_advisory():
    resolution = resolve_priorities(["time", "prep", "shopping", "ratings", "variety", "macros"])
    assert not resolution.macros_emphasized
    assert not resolution.is_fatal(ViolationCategory.MACROS)
    assert not resolution.is_fatal(ViolationCategory.VARIETY)


def test_hard_rules_are_always_fatal():
    resolution = resolve_priorities(["time", "prep", "shopping", "ratings", "variety", "macros"])
    for category in (
        ViolationCategory.SCHEMA,
        ViolationCategory.REQUIREMENT,
        ViolationCategory.BATCH_COOK,
        ViolationCategory.COOLDOWN,
    ):
        assert resolution.is_fatal(category)


def test_partial_and_messy_orders_are_completed():
    resolution = resolve_priorities(["Variety", "variety", "bogus", Priority.SHOPPING])
    assert resolution.order == (
        Priority.VARIETY,
        Priority.SHOPPING,
        Priority.MACROS,
        Priority.RATINGS,
        Priority.PREP,
        Priority.TIME,
    )
    assert len(resolution.labels()) == 6
    assert resolution.labels()[0].startswith("1. ")


def test_relaxed_explanation_names_the_rank():
    resolution = resolve_priorities(["ratings", "shopping", "prep", "macros", "variety", "time"])
    caveats = resolution.explain_relaxed(
        [
            Violation(kind=ViolationKind.CUISINE_OVERUSED, message="Italian is used 4 times", fatal=False),
            Violation(kind=ViolationKind.MACRO_BELOW_TARGET, message="Calories below", fatal=False),
        ]
    )
    assert len(caveats) == 2
    assert "ranked #5 of 6" in caveats[0]
    assert "ranked #4 of 6" in caveats[1]
    assert "family favourites" in caveats[1]
