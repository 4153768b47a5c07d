"""Domain types for the meal-plan constraint engine.

Everything here is loaded once per planning run and treated as immutable, except
CandidateMeal / ValidationResult which are produced per oracle attempt.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class MacroMode(str, Enum):
    BALANCED = "balanced"
    STRICT = "strict"
    WEEKDAY_DISCIPLINE = "weekday_discipline"
    CALORIE_BANKING = "calorie_banking"


class ShoppingMode(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class ExpiryPriority(str, Enum):
    SOFT = "soft"
    MODERATE = "moderate"
    STRONG = "strong"


class FeedbackDetail(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    DETAILED = "detailed"


class Priority(str, Enum):
    MACROS = "macros"
    RATINGS = "ratings"
    VARIETY = "variety"
    SHOPPING = "shopping"
    PREP = "prep"
    TIME = "time"


DEFAULT_PRIORITY_ORDER: tuple[Priority, ...] = (
    Priority.MACROS,
    Priority.RATINGS,
    Priority.VARIETY,
    Priority.SHOPPING,
    Priority.PREP,
    Priority.TIME,
)


@dataclass(frozen=True)
class Profile:
    id: str
    name: str
    age: Optional[int] = None
    macro_tracking_enabled: bool = False
    daily_calories: Optional[float] = None
    daily_protein: Optional[float] = None
    daily_carbs: Optional[float] = None
    daily_fat: Optional[float] = None
    daily_fiber: Optional[float] = None
    allergies: tuple[str, ...] = ()
    likes: tuple[str, ...] = ()
    dislikes: tuple[str, ...] = ()


@dataclass(frozen=True)
class Macros:
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None


@dataclass(frozen=True)
class Recipe:
    id: str
    name: str
    meal_types: tuple[str, ...] = ()
    cuisine: Optional[str] = None
    macros: Macros = field(default_factory=Macros)
    dietary_flags: tuple[str, ...] = ()
    ingredients: tuple[str, ...] = ()
    yields_multiple_meals: bool = False
    meals_yielded: Optional[int] = None
    family_rating: Optional[float] = None
    total_time_minutes: Optional[int] = None
    is_product: bool = False
    shelf_life_category: Optional[str] = None


@dataclass(frozen=True)
class UsageRecord:
    recipe_id: str
    used_date: date
    was_manual: bool = False
    meal_type: Optional[str] = None


@dataclass(frozen=True)
class InventoryItem:
    id: str
    name: str
    quantity: float = 0.0
    unit: str = ""
    expiry_date: Optional[date] = None


@dataclass(frozen=True)
class ProfileAttendance:
    """Weekly attendance grid for one profile: day -> mealType -> is eating."""

    profile_id: str
    grid: dict[str, dict[str, bool]]
    included: bool = True


@dataclass(frozen=True)
class PlanSettings:
    macro_mode: MacroMode = MacroMode.BALANCED
    variety_enabled: bool = True
    dinner_cooldown: int = 14
    lunch_cooldown: int = 7
    breakfast_cooldown: int = 3
    snack_cooldown: int = 2
    min_cuisines: int = 3
    max_same_cuisine: int = 2
    shopping_mode: ShoppingMode = ShoppingMode.MODERATE
    expiry_priority: ExpiryPriority = ExpiryPriority.MODERATE
    expiry_window_days: int = 5
    use_it_up_items: tuple[str, ...] = ()
    batch_cooking_enabled: bool = True
    max_leftover_days: int = 4
    priority_order: tuple[Priority, ...] = DEFAULT_PRIORITY_ORDER
    feedback_detail: FeedbackDetail = FeedbackDetail.MEDIUM
    allow_dinner_for_lunch: bool = True
    repeat_allowed_meal_types: tuple[str, ...] = ()


@dataclass(frozen=True)
class QuickOptions:
    """Temporary per-request overrides on top of the stored settings."""

    prioritize_shopping: bool = False
    use_expiring: bool = False
    maximize_batch: Optional[bool] = None


@dataclass
class CandidateMeal:
    day: str
    meal_type: str
    recipe_id: Optional[str]
    servings: int = 0
    is_leftover: bool = False
    batch_cook_source_day: Optional[str] = None
    note: str = ""
    recipe_name: Optional[str] = None
    is_locked: bool = False


class ViolationCategory(str, Enum):
    SCHEMA = "schema"
    REQUIREMENT = "requirement"
    BATCH_COOK = "batch_cook"
    COOLDOWN = "cooldown"
    VARIETY = "variety"
    MACROS = "macros"


class ViolationKind(str, Enum):
    UNKNOWN_DAY = "UNKNOWN_DAY"
    MISSING_RECIPE_ID = "MISSING_RECIPE_ID"
    UNKNOWN_RECIPE = "UNKNOWN_RECIPE"
    MEAL_TYPE_MISMATCH = "MEAL_TYPE_MISMATCH"
    MISSING_SLOT = "MISSING_SLOT"
    DUPLICATE_SLOT = "DUPLICATE_SLOT"
    UNSCHEDULED_SLOT = "UNSCHEDULED_SLOT"
    MANDATORY_RECIPE_MISSING = "MANDATORY_RECIPE_MISSING"
    LEFTOVER_BEFORE_SOURCE = "LEFTOVER_BEFORE_SOURCE"
    LEFTOVER_SOURCE_MISSING = "LEFTOVER_SOURCE_MISSING"
    BATCH_SERVINGS_MISMATCH = "BATCH_SERVINGS_MISMATCH"
    LEFTOVER_EXCEEDS_SHELF_LIFE = "LEFTOVER_EXCEEDS_SHELF_LIFE"
    BATCH_COOKING_DISABLED = "BATCH_COOKING_DISABLED"
    COOLDOWN_ACTIVE = "COOLDOWN_ACTIVE"
    COOLDOWN_REPEAT = "COOLDOWN_REPEAT"
    TOO_FEW_CUISINES = "TOO_FEW_CUISINES"
    CUISINE_OVERUSED = "CUISINE_OVERUSED"
    MACRO_BELOW_TARGET = "MACRO_BELOW_TARGET"
    MACRO_ABOVE_TARGET = "MACRO_ABOVE_TARGET"
    MACRO_DATA_INSUFFICIENT = "MACRO_DATA_INSUFFICIENT"


KIND_CATEGORY: dict[ViolationKind, ViolationCategory] = {
    ViolationKind.UNKNOWN_DAY: ViolationCategory.SCHEMA,
    ViolationKind.MISSING_RECIPE_ID: ViolationCategory.SCHEMA,
    ViolationKind.UNKNOWN_RECIPE: ViolationCategory.SCHEMA,
    ViolationKind.MEAL_TYPE_MISMATCH: ViolationCategory.SCHEMA,
    ViolationKind.MISSING_SLOT: ViolationCategory.SCHEMA,
    ViolationKind.DUPLICATE_SLOT: ViolationCategory.SCHEMA,
    ViolationKind.UNSCHEDULED_SLOT: ViolationCategory.SCHEMA,
    ViolationKind.MANDATORY_RECIPE_MISSING: ViolationCategory.REQUIREMENT,
    ViolationKind.LEFTOVER_BEFORE_SOURCE: ViolationCategory.BATCH_COOK,
    ViolationKind.LEFTOVER_SOURCE_MISSING: ViolationCategory.BATCH_COOK,
    ViolationKind.BATCH_SERVINGS_MISMATCH: ViolationCategory.BATCH_COOK,
    ViolationKind.LEFTOVER_EXCEEDS_SHELF_LIFE: ViolationCategory.BATCH_COOK,
    ViolationKind.BATCH_COOKING_DISABLED: ViolationCategory.BATCH_COOK,
    ViolationKind.COOLDOWN_ACTIVE: ViolationCategory.COOLDOWN,
    ViolationKind.COOLDOWN_REPEAT: ViolationCategory.COOLDOWN,
    ViolationKind.TOO_FEW_CUISINES: ViolationCategory.VARIETY,
    ViolationKind.CUISINE_OVERUSED: ViolationCategory.VARIETY,
    ViolationKind.MACRO_BELOW_TARGET: ViolationCategory.MACROS,
    ViolationKind.MACRO_ABOVE_TARGET: ViolationCategory.MACROS,
    ViolationKind.MACRO_DATA_INSUFFICIENT: ViolationCategory.MACROS,
}


class ViolationClass(str, Enum):
    """Error taxonomy: schema problems mean the oracle misbehaved, the rest are retryable."""

    SCHEMA = "SchemaViolation"
    CONSTRAINT = "ConstraintViolation"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    message: str
    day: Optional[str] = None
    meal_type: Optional[str] = None
    recipe_id: Optional[str] = None
    fatal: bool = True
    # which macro a MACRO_* violation is about; None for calories-or-n/a
    nutrient: Optional[str] = None

    @property
    def category(self) -> ViolationCategory:
        return KIND_CATEGORY[self.kind]

    @property
    def error_class(self) -> ViolationClass:
        if self.category is ViolationCategory.SCHEMA:
            return ViolationClass.SCHEMA
        return ViolationClass.CONSTRAINT


@dataclass
class ValidationResult:
    violations: list[Violation] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.fatal

    @property
    def fatal(self) -> list[Violation]:
        return [v for v in self.violations if v.fatal]

    @property
    def advisory(self) -> list[Violation]:
        return [v for v in self.violations if not v.fatal]

    def badness(self) -> tuple[int, int, int]:
        """Sort key for picking the least-bad candidate (lower is better)."""
        schema = sum(1 for v in self.fatal if v.error_class is ViolationClass.SCHEMA)
        return (schema, len(self.fatal), len(self.violations))
