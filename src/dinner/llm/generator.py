"""
Dinner, Decided - Generation collaborator.

`MealGenerator` is everything the core needs from a language model. Two
implementations:

- OpenAIMealGenerator: Instructor structured outputs via dinner.llm.client
- DemoMealGenerator: deterministic and offline, used when no API key is
  configured (and in tests)

Both return meals through normalize_meal, so the core only ever sees the
canonical shape. Ids are not assigned here.
"""

import itertools
import logging
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from dinner.core.departments import organize_by_department
from dinner.core.errors import InvalidMealData
from dinner.llm import prompts
from dinner.llm.client import call_llm
from dinner.models.entities import (
    ChatMessage,
    GroceryItem,
    GrocerySection,
    Household,
    Meal,
    MealCategory,
    MealRequest,
)
from dinner.models.normalize import normalize_meal, split_quantity

logger = logging.getLogger(__name__)


@runtime_checkable
class MealGenerator(Protocol):
    async def generate_meals(self, household: Household | None, request: MealRequest) -> list[Meal]: ...

    async def generate_grocery_sections(self, meals: list[Meal]) -> list[GrocerySection]: ...

    async def modify_meal(self, meal: Meal, change_request: str) -> Meal: ...

    async def replace_meal(self, meal: Meal, household: Household | None = None) -> Meal: ...

    async def chat_reply(self, messages: list[ChatMessage], household: Household | None) -> str: ...


# =============================================================================
# Structured output schemas
# =============================================================================


class MealDraft(BaseModel):
    name: str
    description: str = ""
    category: str = ""
    prep_time: int | None = None
    servings: int | None = None
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    rationales: list[str] = Field(default_factory=list)
    day: str | None = None


class MealPlanDraft(BaseModel):
    meals: list[MealDraft]


class GroceryItemDraft(BaseModel):
    name: str
    quantity: str | None = None
    meal_id: str | None = None


class GrocerySectionDraft(BaseModel):
    name: str
    items: list[GroceryItemDraft] = Field(default_factory=list)


class GroceryListDraft(BaseModel):
    sections: list[GrocerySectionDraft]


class ChatReply(BaseModel):
    reply: str


# =============================================================================
# OpenAI
# =============================================================================


class OpenAIMealGenerator:
    """Generation collaborator backed by OpenAI."""

    async def generate_meals(self, household: Household | None, request: MealRequest) -> list[Meal]:
        draft = await call_llm(
            response_model=MealPlanDraft,
            system_prompt=prompts.meal_system_prompt(),
            user_prompt=prompts.meal_plan_prompt(household, request),
            task="meal_plan",
        )
        meals = [normalize_meal(m.model_dump()) for m in draft.meals]
        if not meals:
            raise InvalidMealData("The meal generator returned no meals.")
        logger.info(f"Generated {len(meals)} meal(s)")
        return meals

    async def generate_grocery_sections(self, meals: list[Meal]) -> list[GrocerySection]:
        draft = await call_llm(
            response_model=GroceryListDraft,
            system_prompt=prompts.GROCERY_SYSTEM_PROMPT,
            user_prompt=prompts.grocery_prompt(meals),
            task="grocery",
        )
        known_ids = {meal.id for meal in meals}
        sections = []
        for section in draft.sections:
            items = [
                GroceryItem(
                    id="",
                    name=item.name,
                    quantity=item.quantity,
                    # Drop back-references to meals that are not in the plan
                    meal_id=item.meal_id if item.meal_id in known_ids else None,
                )
                for item in section.items
            ]
            sections.append(GrocerySection(name=section.name, items=items))
        return sections

    async def modify_meal(self, meal: Meal, change_request: str) -> Meal:
        draft = await call_llm(
            response_model=MealDraft,
            system_prompt=prompts.meal_system_prompt(),
            user_prompt=prompts.modify_prompt(meal, change_request),
            task="modify",
        )
        return normalize_meal(draft.model_dump())

    async def replace_meal(self, meal: Meal, household: Household | None = None) -> Meal:
        draft = await call_llm(
            response_model=MealDraft,
            system_prompt=prompts.meal_system_prompt(),
            user_prompt=prompts.replace_prompt(meal, household),
            task="replace",
        )
        return normalize_meal(draft.model_dump())

    async def chat_reply(self, messages: list[ChatMessage], household: Household | None) -> str:
        reply = await call_llm(
            response_model=ChatReply,
            system_prompt=prompts.chat_system_prompt(household),
            user_prompt=prompts.chat_transcript(messages),
            task="chat",
        )
        return reply.reply


# =============================================================================
# Demo (offline)
# =============================================================================

DEMO_LIBRARY: dict[MealCategory, list[dict]] = {
    MealCategory.QUICK: [
        {
            "name": "Rotisserie Chicken Quesadillas",
            "description": "Shredded store-bought chicken and cheese crisped in tortillas.",
            "prepTime": 15,
            "servings": 4,
            "ingredients": ["1 rotisserie chicken", "8 flour tortillas", "2 cups shredded cheddar cheese", "1 cup salsa"],
        },
        {
            "name": "Pesto Tortellini",
            "description": "Fresh tortellini tossed with pesto and cherry tomatoes.",
            "prepTime": 12,
            "servings": 4,
            "ingredients": ["20 oz cheese tortellini", "1 cup basil pesto", "1 pint cherry tomatoes", "1/2 cup parmesan cheese"],
        },
        {
            "name": "Black Bean Tacos",
            "description": "Seasoned black beans with quick toppings.",
            "prepTime": 15,
            "servings": 4,
            "ingredients": ["2 cans black beans", "8 corn tortillas", "1 avocado", "1 lime", "1 packet taco seasoning"],
        },
    ],
    MealCategory.WEEKNIGHT: [
        {
            "name": "Turkey Meatball Spaghetti",
            "description": "Baked turkey meatballs over spaghetti with marinara.",
            "prepTime": 30,
            "servings": 4,
            "ingredients": ["1 lb ground turkey", "1 lb spaghetti", "24 oz marinara sauce", "1 egg", "1/2 cup breadcrumbs"],
        },
        {
            "name": "Honey Garlic Salmon",
            "description": "Pan-seared salmon with a honey garlic glaze and rice.",
            "prepTime": 25,
            "servings": 4,
            "ingredients": ["4 salmon fillets", "3 tbsp honey", "4 cloves garlic", "2 cups rice", "1 head broccoli"],
        },
        {
            "name": "Chicken Stir Fry",
            "description": "Chicken and vegetables in a simple soy ginger sauce.",
            "prepTime": 30,
            "servings": 4,
            "ingredients": ["1.5 lbs chicken thighs", "2 bell peppers", "1 tbsp ginger", "1/4 cup soy sauce", "2 cups rice"],
        },
    ],
    MealCategory.BATCH: [
        {
            "name": "Slow Cooker Chili",
            "description": "A big pot of mild beef chili that reheats well.",
            "prepTime": 20,
            "servings": 8,
            "ingredients": ["2 lbs ground beef", "2 cans kidney beans", "28 oz crushed tomatoes", "1 onion", "2 tbsp chili powder"],
        },
        {
            "name": "Baked Ziti",
            "description": "Two pans of cheesy baked pasta, one for the freezer.",
            "prepTime": 40,
            "servings": 10,
            "ingredients": ["2 lbs ziti pasta", "32 oz ricotta cheese", "4 cups mozzarella cheese", "48 oz marinara sauce"],
        },
        {
            "name": "Pulled Pork",
            "description": "Slow-cooked pork shoulder for sandwiches and bowls all week.",
            "prepTime": 20,
            "servings": 10,
            "ingredients": ["4 lbs pork shoulder", "1 cup barbecue sauce", "1 onion", "12 hamburger buns"],
        },
    ],
    MealCategory.SPLIT: [
        {
            "name": "Overnight-Marinated Chicken Kebabs",
            "description": "Marinate in the morning, skewer and grill at dinner.",
            "prepTime": 25,
            "servings": 4,
            "ingredients": ["2 lbs chicken breast", "1 cup greek yogurt", "2 lemons", "1 red onion", "2 zucchini"],
        },
        {
            "name": "Make-Ahead Enchiladas",
            "description": "Assemble the night before, bake when you get home.",
            "prepTime": 35,
            "servings": 6,
            "ingredients": ["1 lb ground beef", "10 flour tortillas", "20 oz enchilada sauce", "2 cups cheddar cheese"],
        },
        {
            "name": "Prepped Veggie Curry",
            "description": "Chop vegetables ahead; the curry comes together in 20 minutes.",
            "prepTime": 30,
            "servings": 6,
            "ingredients": ["1 can coconut milk", "2 sweet potatoes", "1 can chickpeas", "2 tbsp curry paste", "2 cups rice"],
        },
    ],
}


class DemoMealGenerator:
    """Deterministic collaborator used without an OpenAI key."""

    def __init__(self) -> None:
        self._rotation = itertools.count()

    def _pick(self, category: MealCategory, avoid: set[str]) -> Meal:
        options = DEMO_LIBRARY[category]
        start = next(self._rotation)
        for offset in range(len(options)):
            raw = options[(start + offset) % len(options)]
            if raw["name"].lower() not in avoid:
                break
        meal = normalize_meal({**raw, "categories": [category.value]})
        avoid.add(meal.name.lower())
        return meal

    async def generate_meals(self, household: Household | None, request: MealRequest) -> list[Meal]:
        avoid = {name.lower() for name in request.exclude_names}

        if request.meals_by_day:
            meals = []
            for day, category in request.meals_by_day.items():
                meal = self._pick(MealCategory.parse(category) or MealCategory.WEEKNIGHT, avoid)
                meals.append(meal.model_copy(update={"day": day}))
            return meals

        fixed = MealCategory.parse(request.meal_type)
        categories = itertools.cycle([fixed] if fixed else list(MealCategory))
        return [self._pick(next(categories), avoid) for _ in range(request.count)]

    async def generate_grocery_sections(self, meals: list[Meal]) -> list[GrocerySection]:
        items = []
        for meal in meals:
            for index, ingredient in enumerate(meal.ingredients):
                name, quantity = split_quantity(ingredient)
                items.append(GroceryItem(id=f"demo-{meal.id}-{index}", name=name, quantity=quantity, meal_id=meal.id))
        return organize_by_department(items)

    async def modify_meal(self, meal: Meal, change_request: str) -> Meal:
        description = f"{meal.description} Adjusted: {change_request}".strip()
        return meal.model_copy(update={"id": "", "description": description}, deep=True)

    async def replace_meal(self, meal: Meal, household: Household | None = None) -> Meal:
        category = MealCategory.parse(meal.category) or MealCategory.WEEKNIGHT
        return self._pick(category, {meal.name.lower()})

    async def chat_reply(self, messages: list[ChatMessage], household: Household | None) -> str:
        name = household.name if household else "your household"
        return (
            f"I'm running in demo mode, so I can't chat freely yet. I can still plan "
            f"dinners for {name}: open the meal plan page to generate a week of meals."
        )
