"""
Demo data.

Loaded into an empty store at startup when SEED_DEMO_DATA is set, so a
fresh install has a household, a welcome message, a starter plan and its
grocery list to click around in.
"""

import logging

from dinner.db.adapter import EntityStore
from dinner.models.entities import ChatMessage
from dinner.models.normalize import normalize_meals

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Welcome to Dinner, Decided! I'm your personal meal planning assistant. "
    "I'll help you create a flexible, personalized weekly dinner plan tailored "
    "to your family's needs.\n\nLet's get started with a few questions about "
    "your household. How many people are you cooking for?"
)

DEMO_HOUSEHOLD = {
    "name": "Demo Family",
    "members": [
        {"id": "1", "name": "Parent 1", "age": "35"},
        {"id": "2", "name": "Parent 2", "age": "33"},
        {"id": "3", "name": "Child", "age": "8"},
    ],
    "cooking_skill": 3,
    "preferences": (
        "We try to have 2 vegetarian meals each week. Kids don't like spicy food. "
        "Everyone loves pasta and Mexican dishes."
    ),
    "appliances": ["slowCooker", "instantPot", "ovenStovetop"],
    "onboarding_complete": True,
}

DEMO_MEALS = [
    {
        "id": "meal1",
        "name": "Sheet Pan Chicken Fajitas",
        "description": (
            "Perfect for a busy weeknight. Mexican-inspired, as your family enjoys, "
            "and can be prepared quickly on a sheet pan."
        ),
        "categories": ["quick"],
        "prepTime": 25,
        "servings": 4,
        "ingredients": [
            "1.5 lbs chicken breast, sliced",
            "2 bell peppers (red and green), sliced",
            "1 large onion, sliced",
            "2 tbsp olive oil",
            "1 packet fajita seasoning",
            "8 flour tortillas",
            "Toppings: sour cream, avocado, salsa",
        ],
    },
    {
        "id": "meal2",
        "name": "Creamy Vegetable Pasta",
        "description": (
            "A vegetarian pasta dish that satisfies your family's love for pasta "
            "while incorporating seasonal vegetables."
        ),
        "categories": ["weeknight"],
        "prepTime": 30,
        "servings": 4,
        "ingredients": [
            "1 lb pasta (penne or fusilli)",
            "2 cups mixed vegetables (broccoli, carrots, peas)",
            "1 cup heavy cream",
            "1/2 cup grated parmesan cheese",
            "2 cloves garlic, minced",
            "2 tbsp olive oil",
            "Salt and pepper to taste",
        ],
    },
    {
        "id": "meal3",
        "name": "Instant Pot Beef Stew",
        "description": "Perfect for a busy day - quick to prepare in the Instant Pot. Mild flavor for the kids.",
        "categories": ["batch"],
        "prepTime": 45,
        "servings": 6,
        "ingredients": [
            "1.5 lbs beef stew meat",
            "4 carrots, chopped",
            "2 potatoes, diced",
            "1 onion, diced",
            "2 cloves garlic, minced",
            "2 cups beef broth",
            "2 tbsp tomato paste",
            "1 tsp thyme",
            "Salt and pepper to taste",
        ],
    },
]

DEMO_SECTIONS = [
    {
        "name": "Produce",
        "items": [
            {"id": "item1", "name": "Bell peppers (red and green)", "quantity": "4", "mealId": "meal1"},
            {"id": "item2", "name": "Onions, yellow", "quantity": "3"},
            {"id": "item3", "name": "Carrots", "quantity": "1 lb"},
            {"id": "item4", "name": "Broccoli", "quantity": "1 head", "mealId": "meal2"},
            {"id": "item5", "name": "Potatoes", "quantity": "2 large", "mealId": "meal3"},
            {"id": "item6", "name": "Garlic", "quantity": "1 head"},
        ],
    },
    {
        "name": "Meat & Seafood",
        "items": [
            {"id": "item7", "name": "Chicken breast", "quantity": "1.5 lbs", "mealId": "meal1"},
            {"id": "item8", "name": "Beef stew meat", "quantity": "1.5 lbs", "mealId": "meal3"},
        ],
    },
    {
        "name": "Dairy",
        "items": [
            {"id": "item9", "name": "Heavy cream", "quantity": "1 cup", "mealId": "meal2"},
            {"id": "item10", "name": "Parmesan cheese", "quantity": "8 oz", "mealId": "meal2"},
            {"id": "item11", "name": "Sour cream", "quantity": "8 oz", "mealId": "meal1"},
        ],
    },
    {
        "name": "Dry Goods",
        "items": [
            {"id": "item12", "name": "Pasta (penne or fusilli)", "quantity": "1 lb", "mealId": "meal2"},
            {"id": "item13", "name": "Olive oil", "quantity": "1 bottle"},
            {"id": "item14", "name": "Fajita seasoning", "quantity": "1 packet", "mealId": "meal1"},
            {"id": "item15", "name": "Beef broth", "quantity": "2 cups", "mealId": "meal3"},
            {"id": "item16", "name": "Tomato paste", "quantity": "1 small can", "mealId": "meal3"},
        ],
    },
    {
        "name": "Bakery",
        "items": [
            {"id": "item17", "name": "Flour tortillas", "quantity": "1 package", "mealId": "meal1"},
        ],
    },
]


async def seed_demo_data(store: EntityStore) -> bool:
    """
    Load the demo records into `store` if it holds no household yet.

    Returns True when data was written.
    """
    if await store.get_household() is not None:
        logger.debug("Store already has a household, skipping demo seed")
        return False

    household = await store.create_household(DEMO_HOUSEHOLD)
    await store.save_message(ChatMessage(id="welcome", role="assistant", content=WELCOME_MESSAGE))

    plan = await store.create_meal_plan(
        {
            "name": "Weekly Meal Plan",
            "household_id": household.id,
            "is_active": True,
            "meals": normalize_meals(DEMO_MEALS),
        }
    )
    await store.create_grocery_list(
        {
            "meal_plan_id": plan.id,
            "household_id": household.id,
            "sections": DEMO_SECTIONS,
        }
    )

    logger.info(f"Seeded demo household {household.id} with meal plan {plan.id}")
    return True
