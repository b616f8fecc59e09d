"""
Pytest configuration and fixtures for Dinner, Decided tests.
"""

import asyncio
import os
from collections import defaultdict

import pytest

# Set test environment before importing dinner modules
os.environ["DINNER_ENV"] = "development"
os.environ["STORE_BACKEND"] = "memory"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["OPENAI_API_KEY"] = ""
os.environ["DINNER_LOG_PROMPTS"] = "0"

from dinner.core.departments import organize_by_department  # noqa: E402
from dinner.db.memory import MemoryStore  # noqa: E402
from dinner.models.entities import GroceryItem, GrocerySection, Meal, MealRequest  # noqa: E402
from dinner.models.normalize import split_quantity  # noqa: E402
from dinner.services import build_services  # noqa: E402


def run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


class FakeGenerator:
    """
    Scripted MealGenerator.

    Queue responses with `meals`, `replacements`, `modifications` and
    `sections` (combined grocery breakdowns); make any method raise by
    putting an exception in `fail`.
    """

    def __init__(self):
        self.meals: list[list[Meal]] = []
        self.replacements: list[Meal] = []
        self.modifications: list[Meal] = []
        self.sections: list[list[GrocerySection]] = []
        self.fail: dict[str, Exception] = {}
        self.calls: dict[str, int] = defaultdict(int)
        self.grocery_inputs: list[list[Meal]] = []
        self.delay = 0.0
        self._counter = 0

    async def _enter(self, name: str):
        self.calls[name] += 1
        # Yield to the loop so concurrent callers interleave
        await asyncio.sleep(self.delay)
        if name in self.fail:
            raise self.fail[name]

    async def generate_meals(self, household, request: MealRequest) -> list[Meal]:
        await self._enter("generate_meals")
        if self.meals:
            return [m.model_copy(deep=True) for m in self.meals.pop(0)]
        meals = []
        for _ in range(request.count):
            self._counter += 1
            meals.append(
                Meal(
                    name=f"Generated Meal {self._counter}",
                    categories=["Weeknight Meals"],
                    ingredients=[f"1 lb ingredient {self._counter}"],
                )
            )
        return meals

    async def generate_grocery_sections(self, meals):
        await self._enter("generate_grocery_sections")
        self.grocery_inputs.append([m.model_copy() for m in meals])
        if self.sections:
            return self.sections.pop(0)
        items = []
        for meal in meals:
            for index, ingredient in enumerate(meal.ingredients):
                name, quantity = split_quantity(ingredient)
                items.append(GroceryItem(id=f"gen-{meal.id}-{index}", name=name, quantity=quantity, meal_id=meal.id))
        return organize_by_department(items)

    async def modify_meal(self, meal, change_request):
        await self._enter("modify_meal")
        if self.modifications:
            return self.modifications.pop(0)
        return meal.model_copy(update={"id": "", "description": change_request})

    async def replace_meal(self, meal, household=None):
        await self._enter("replace_meal")
        if self.replacements:
            return self.replacements.pop(0)
        return Meal(name=f"Instead of {meal.name}", ingredients=["2 cups rice"])

    async def chat_reply(self, messages, household):
        await self._enter("chat_reply")
        return f"You said: {messages[-1].content}"


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def services(store, generator):
    return build_services(store=store, generator=generator)


@pytest.fixture
def household(store):
    return run(store.create_household({"name": "Test Family", "cooking_skill": 2}))


@pytest.fixture
def sample_meals():
    """Three meals with ids and ingredients."""
    return [
        Meal(id="m1", name="Tacos", categories=["Quick & Easy"], ingredients=["1 lb ground beef", "8 corn tortillas", "1 head lettuce"]),
        Meal(id="m2", name="Soup", categories=["Batch Cooking"], ingredients=["4 carrots", "2 cups chicken broth"]),
        Meal(id="m3", name="Pasta", categories=["Weeknight Meals"], ingredients=["1 lb pasta", "1 cup heavy cream"]),
    ]


@pytest.fixture
def make_plan(store, household):
    """Create a plan directly in the store: make_plan(meals, active=True)."""

    def _make(meals, active=True, name="Weekly Meal Plan"):
        return run(
            store.create_meal_plan(
                {"name": name, "household_id": household.id, "is_active": active, "meals": meals}
            )
        )

    return _make
