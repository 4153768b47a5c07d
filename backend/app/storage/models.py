from datetime import date, datetime
from typing import Optional

from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel


PLAN_STATUSES = ("Generating", "Draft", "Failed", "Cancelled")


class Household(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class FamilyProfile(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    household_id: int = Field(foreign_key="household.id", index=True)
    name: str
    age: Optional[int] = None
    macro_tracking_enabled: bool = False
    daily_calories: Optional[float] = None
    daily_protein: Optional[float] = None
    daily_carbs: Optional[float] = None
    daily_fat: Optional[float] = None
    daily_fiber: Optional[float] = None
    allergies: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))
    likes: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))
    dislikes: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))


class Recipe(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    household_id: int = Field(foreign_key="household.id", index=True)
    name: str
    meal_types: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))  # ["dinner", "lunch"]
    cuisine: Optional[str] = None
    calories: Optional[float] = None  # per serving
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    dietary_flags: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))
    yields_multiple_meals: bool = False
    meals_yielded: Optional[int] = None
    family_rating: Optional[float] = None
    total_time_minutes: Optional[int] = None
    is_product: bool = False
    shelf_life_category: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class RecipeIngredient(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    recipe_id: int = Field(foreign_key="recipe.id", index=True)
    name: str
    quantity: Optional[float] = None
    unit: Optional[str] = None
    original_text: str = ""


class InventoryItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    household_id: int = Field(foreign_key="household.id", index=True)
    name: str
    quantity: float = 0.0
    unit: str = ""
    expiry_date: Optional[date] = None


class RecipeUsageHistory(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    household_id: int = Field(foreign_key="household.id", index=True)
    recipe_id: int = Field(foreign_key="recipe.id", index=True)
    used_date: date
    meal_type: Optional[str] = None
    was_manual: bool = False


class MealPlanSettingsRecord(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    household_id: int = Field(foreign_key="household.id", unique=True)
    macro_mode: str = "balanced"
    variety_enabled: bool = True
    dinner_cooldown: int = 14
    lunch_cooldown: int = 7
    breakfast_cooldown: int = 3
    snack_cooldown: int = 2
    min_cuisines: int = 3
    max_same_cuisine: int = 2
    shopping_mode: str = "moderate"
    expiry_priority: str = "moderate"
    expiry_window_days: int = 5
    use_it_up_items: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))
    batch_cooking_enabled: bool = True
    max_leftover_days: int = 4
    priority_order: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))
    feedback_detail: str = "medium"
    allow_dinner_for_lunch: bool = True
    repeat_allowed_meal_types: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))


class MealPlan(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    household_id: int = Field(foreign_key="household.id", index=True)
    week_start_date: date
    status: str = "Generating"  # Generating | Draft | Failed
    accepted: Optional[bool] = None
    summary: str = ""
    attempts: int = 0
    violations: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))
    caveats: Optional[list] = Field(default=None, sa_column=Column(JSON, default=None))
    budget: Optional[dict] = Field(default=None, sa_column=Column(JSON, default=None))
    request_payload: Optional[dict] = Field(default=None, sa_column=Column(JSON, default=None))
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class PlannedMeal(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    meal_plan_id: int = Field(foreign_key="mealplan.id", index=True)
    day_of_week: str
    meal_type: str
    recipe_id: Optional[int] = None
    # oracle recipeId that is not a catalog key, kept as given
    unresolved_recipe_id: Optional[str] = None
    recipe_name: Optional[str] = None
    servings: int = 0
    is_leftover: bool = False
    batch_cook_source_day: Optional[str] = None
    notes: str = ""
    is_locked: bool = False


class LLMCallLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    prompt_name: str
    prompt_version: str
    model: str
    input_payload: str
    output_payload: str
    latency_ms: int
    created_at: datetime = Field(default_factory=datetime.utcnow)
