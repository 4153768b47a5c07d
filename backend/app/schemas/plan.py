from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class AttendanceIn(BaseModel):
    profile_id: int
    included: bool = True
    # day -> {mealType: eating}; a plain list of mealTypes is also accepted per day
    grid: dict[str, dict[str, bool] | list[str]] = {}


class PlanSettingsIn(BaseModel):
    """Per-request override of the household's stored planning settings; unset fields keep the stored value."""

    macro_mode: Optional[str] = None  # balanced | strict | weekday_discipline | calorie_banking
    variety_enabled: Optional[bool] = None
    dinner_cooldown: Optional[int] = Field(default=None, ge=0)
    lunch_cooldown: Optional[int] = Field(default=None, ge=0)
    breakfast_cooldown: Optional[int] = Field(default=None, ge=0)
    snack_cooldown: Optional[int] = Field(default=None, ge=0)
    min_cuisines: Optional[int] = Field(default=None, ge=0)
    max_same_cuisine: Optional[int] = Field(default=None, ge=1)
    shopping_mode: Optional[str] = None
    expiry_priority: Optional[str] = None
    expiry_window_days: Optional[int] = Field(default=None, ge=0)
    use_it_up_items: Optional[list[int]] = None
    batch_cooking_enabled: Optional[bool] = None
    max_leftover_days: Optional[int] = Field(default=None, ge=0)
    priority_order: Optional[list[str]] = None
    feedback_detail: Optional[str] = None
    allow_dinner_for_lunch: Optional[bool] = None
    repeat_allowed_meal_types: Optional[list[str]] = None


class QuickOptionsIn(BaseModel):
    prioritize_shopping: bool = False
    use_expiring: bool = False
    maximize_batch: Optional[bool] = None


class MealIn(BaseModel):
    day_of_week: str
    meal_type: str
    recipe_id: Optional[int] = None
    recipe_name: Optional[str] = None
    servings: int = 0
    is_leftover: bool = False
    batch_cook_source_day: Optional[str] = None
    notes: str = ""
    is_locked: bool = False


class MealOut(MealIn):
    unresolved_recipe_id: Optional[str] = None


class GeneratePlanRequest(BaseModel):
    household_id: int
    week_start_date: date
    attendance: list[AttendanceIn] = []
    settings: Optional[PlanSettingsIn] = None
    quick_options: Optional[QuickOptionsIn] = None
    mandatory_recipe_ids: list[int] = []
    locked_meals: list[MealIn] = []
    background: bool = False  # enqueue on Celery instead of generating inline


class RegeneratePlanRequest(BaseModel):
    settings: Optional[PlanSettingsIn] = None
    quick_options: Optional[QuickOptionsIn] = None
    background: bool = False


class ValidatePlanRequest(BaseModel):
    household_id: int
    week_start_date: date
    attendance: list[AttendanceIn] = []
    settings: Optional[PlanSettingsIn] = None
    mandatory_recipe_ids: list[int] = []
    meals: list[MealIn]


class ViolationOut(BaseModel):
    kind: str
    category: str
    error_class: str
    fatal: bool
    message: str
    day: Optional[str] = None
    meal_type: Optional[str] = None
    recipe_id: Optional[str] = None
    nutrient: Optional[str] = None


class MealBudgetOut(BaseModel):
    meal_type: str
    percent: float
    calories: int
    protein: Optional[int] = None
    carbs: Optional[int] = None
    fat: Optional[int] = None


class BudgetOut(BaseModel):
    profile_id: str
    profile_name: str
    daily_calories: float
    total_plan_percent: int
    expected_daily_calories: int
    explanation: str
    meals: dict[str, Optional[MealBudgetOut]]


class PlanResponse(BaseModel):
    meal_plan_id: int
    status: str  # Generating | Draft | Failed
    accepted: Optional[bool] = None
    plan: list[MealOut] = []
    violations: list[ViolationOut] = []
    summary: str = ""
    caveats: list[str] = []
    attempts: int = 0
    budget: Optional[BudgetOut] = None
    error: Optional[str] = None


class ValidatePlanResponse(BaseModel):
    passed: bool
    violations: list[ViolationOut] = []
    budget: Optional[BudgetOut] = None
