"""
Static reference data injected into the scorers and the batch-cook validator.
Kept as plain constants; constructors take them as arguments so tests can pass their own.
"""

# Low-cost, always-on-hand ingredients excluded from shopping-efficiency counting
PANTRY_STAPLES: tuple[str, ...] = (
    "salt", "pepper", "black pepper", "white pepper",
    "olive oil", "vegetable oil", "canola oil", "cooking oil",
    "butter", "flour", "all-purpose flour",
    "sugar", "white sugar", "brown sugar",
    "garlic", "garlic powder", "onion", "onion powder",
    "baking powder", "baking soda", "vanilla extract", "soy sauce",
    "vinegar", "white vinegar", "apple cider vinegar",
    "lemon juice", "lime juice", "cornstarch", "cooking spray", "water",
    "milk", "eggs", "breadcrumbs",
    "parsley", "oregano", "basil", "thyme", "cumin", "paprika",
    "chili powder", "cinnamon", "ginger", "nutmeg",
)

# Leftover shelf life by food category, in days
SHELF_LIFE_DAYS: dict[str, int] = {
    "poultry": 3,
    "red_meat": 4,
    "fish": 2,
    "salad": 2,
    "cooked_vegetables": 4,
    "grains": 5,
    "legumes": 5,
    "dairy": 3,
    "eggs": 3,
    "soup_stew": 4,
    "casserole": 3,
    "default": 3,
}

# keyword -> category; matched against recipe name and ingredient names
SHELF_LIFE_KEYWORDS: dict[str, str] = {
    "chicken": "poultry",
    "turkey": "poultry",
    "duck": "poultry",
    "beef": "red_meat",
    "pork": "red_meat",
    "lamb": "red_meat",
    "steak": "red_meat",
    "mince": "red_meat",
    "fish": "fish",
    "salmon": "fish",
    "tuna": "fish",
    "cod": "fish",
    "seafood": "fish",
    "shrimp": "fish",
    "prawn": "fish",
    "shellfish": "fish",
    "salad": "salad",
    "lettuce": "salad",
    "rice": "grains",
    "pasta": "grains",
    "quinoa": "grains",
    "couscous": "grains",
    "bean": "legumes",
    "lentil": "legumes",
    "chickpea": "legumes",
    "soup": "soup_stew",
    "stew": "soup_stew",
    "chili": "soup_stew",
    "curry": "soup_stew",
    "casserole": "casserole",
    "cheese": "dairy",
    "cream": "dairy",
    "egg": "eggs",
    "roasted vegetables": "cooked_vegetables",
    "vegetable": "cooked_vegetables",
}

SHOPPING_BOOST = {"mild": 0.3, "moderate": 0.5, "aggressive": 0.8}
EXPIRY_BOOST = {"soft": 0.3, "moderate": 0.5, "strong": 1.0}
MANUAL_SELECTION_BONUS = 1.5
