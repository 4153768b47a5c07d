MEAL_PLAN_PROMPT_VERSION = "v2"

MEAL_PLAN_TEMPLATE = """You are planning one week of household meals.
Choose a recipe for every scheduled slot listed under SCHEDULE. Only use recipes from AVAILABLE RECIPES,
and copy each recipeId exactly as given. Never invent a recipe or leave recipeId empty.

Hard rules:
1) Exactly one meal per scheduled (day, mealType). Do not plan unscheduled slots.
2) A recipe may only fill a slot whose meal type appears in its mealTypes.
3) Recipes marked "cooldown: available from day N" must not be cooked before day N of the week.
4) Do not cook the same recipe twice within its cooldown. Reuse it as a leftover instead.
5) Leftovers: set isLeftover=true and batchCookSourceDay to an EARLIER day in the week order below
   (the week order is the schedule order, not calendar Monday-first). The source day must cook the same
   recipe with isLeftover=false, and its servings must equal that day's people plus every leftover it feeds.
6) Every recipe under REQUIRED RECIPES must appear at least once.
{batch_rule}
Preferences, in the household's priority order:
{priorities}

Use the rating hints to choose between similar options: higher effective rating wins.

Return ONLY a JSON object, no prose, shaped as:
{{"meals": [{{"dayOfWeek": "Monday", "mealType": "dinner", "recipeId": "12", "recipeName": "...",
  "servings": 4, "isLeftover": false, "batchCookSourceDay": null, "notes": "..."}}],
 "summary": "..."}}
Summary length: {summary_detail}
"""

BATCH_DISABLED_RULE = "7) Batch cooking is OFF: every meal must have isLeftover=false.\n"
BATCH_ENABLED_RULE = (
    "7) Batch cooking is ON: prefer recipes that yield multiple meals and reuse them as leftovers "
    "within their shelf life (max {max_leftover_days} days).\n"
)

SUMMARY_DETAIL = {
    "light": "one sentence.",
    "medium": "two or three sentences covering variety, nutrition and leftovers.",
    "detailed": "a short paragraph per concern (nutrition, variety, shopping, leftovers, expiring items).",
}
