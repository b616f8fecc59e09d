"""
Prompt builders for the generation collaborator.

Plain string assembly. Household context is rendered the same way for
every task so the model sees one consistent profile.
"""

from dinner.models.entities import (
    CATEGORY_DESCRIPTIONS,
    ChatMessage,
    Household,
    Meal,
    MealCategory,
    MealRequest,
)

SKILL_LABELS = {1: "beginner", 2: "intermediate", 3: "confident"}

MEAL_SYSTEM_PROMPT = """You are a meal planning assistant for busy families.
You suggest practical dinners that fit the household's preferences, skill
level and kitchen equipment.

Meal categories:
{categories}

Rules:
- Every meal has a name, a one or two sentence description, one category,
  prep time in minutes, servings, a full ingredient list with quantities,
  and clear numbered-style instruction steps.
- Ingredients are single strings that combine quantity and name,
  e.g. "1.5 lbs chicken breast, sliced".
- Give 2-3 short rationales explaining why the meal suits this household.
- Never repeat a meal the household already has this week."""

GROCERY_SYSTEM_PROMPT = """You turn a set of meals into a grocery list grouped
by store department (Produce, Dairy, Meat & Seafood, Bakery, Frozen,
Canned Goods, Dry Goods, Condiments, Beverages, Other).

Rules:
- Combine identical ingredients across meals and total the quantities.
- Every item carries the mealId of the meal it is for. When an item is
  shared, use the first meal that needs it.
- Treat every meal separately even when two meals look alike."""

CHAT_SYSTEM_PROMPT = """You are Dinner, Decided, a friendly meal planning
assistant. Keep replies short and practical. You know this household:

{household}"""


def category_block() -> str:
    return "\n".join(f"- {description}" for description in CATEGORY_DESCRIPTIONS.values())


def household_context(household: Household | None) -> str:
    if household is None:
        return "No household profile yet."

    lines = [f"Household: {household.name}"]
    if household.members:
        members = []
        for member in household.members:
            detail = member.name
            if member.age:
                detail += f" ({member.age})"
            if member.dietary_restrictions:
                detail += f" - avoids {', '.join(member.dietary_restrictions)}"
            members.append(detail)
        lines.append(f"Members: {'; '.join(members)}")
    lines.append(f"Cooking skill: {SKILL_LABELS.get(household.cooking_skill, 'beginner')}")
    if household.preferences:
        lines.append(f"Preferences: {household.preferences}")
    if household.challenges:
        lines.append(f"Challenges: {household.challenges}")
    if household.appliances:
        lines.append(f"Appliances: {', '.join(a.value for a in household.appliances)}")
    if household.location:
        lines.append(f"Location: {household.location}")
    return "\n".join(lines)


def meal_system_prompt() -> str:
    return MEAL_SYSTEM_PROMPT.format(categories=category_block())


def meal_plan_prompt(household: Household | None, request: MealRequest) -> str:
    parts = [household_context(household), ""]

    if request.meals_by_day:
        parts.append("Plan one dinner for each of these days, in the given category:")
        for day, category in request.meals_by_day.items():
            parsed = MealCategory.parse(category)
            parts.append(f"- {day}: {parsed.value if parsed else category}")
    else:
        parts.append(f"Plan {request.count} dinners.")
        if request.meal_type:
            parsed = MealCategory.parse(request.meal_type)
            parts.append(f"All of them in the category: {parsed.value if parsed else request.meal_type}")

    if request.week_start_date and request.week_end_date:
        parts.append(f"The plan covers {request.week_start_date} to {request.week_end_date}.")
    if request.special_notes:
        parts.append(f"Notes for this week: {request.special_notes}")
    if request.exclude_names:
        parts.append(f"Already planned (do not repeat): {', '.join(request.exclude_names)}")

    return "\n".join(parts)


def replace_prompt(meal: Meal, household: Household | None) -> str:
    category = meal.category or "any"
    return "\n".join(
        [
            household_context(household),
            "",
            f'Suggest one new dinner to replace "{meal.name}".',
            f"It must be in the same category: {category}.",
            "It must be a clearly different dish.",
        ]
    )


def modify_prompt(meal: Meal, change_request: str) -> str:
    ingredients = "\n".join(f"- {i}" for i in meal.ingredients) or "- (none listed)"
    return "\n".join(
        [
            f"Meal: {meal.name}",
            f"Description: {meal.description}",
            f"Category: {meal.category or 'unspecified'}",
            "Ingredients:",
            ingredients,
            "",
            f"Requested change: {change_request}",
            "",
            "Return the full updated meal. Rename it if the dish changes.",
        ]
    )


def grocery_prompt(meals: list[Meal]) -> str:
    blocks = []
    for meal in meals:
        block = [f"Meal {meal.name} (mealId: {meal.id})"]
        if meal.replaced_from:
            block.append("  (new replacement meal - use these ingredients)")
        if meal.modification_request:
            block.append(f"  (modified: {meal.modification_request})")
        block.extend(f"  - {ingredient}" for ingredient in meal.ingredients)
        blocks.append("\n".join(block))
    return "Build a grocery list for these meals:\n\n" + "\n\n".join(blocks)


def chat_system_prompt(household: Household | None) -> str:
    return CHAT_SYSTEM_PROMPT.format(household=household_context(household))


def chat_transcript(messages: list[ChatMessage], limit: int = 20) -> str:
    recent = messages[-limit:]
    return "\n".join(f"{m.role}: {m.content}" for m in recent)
