"""
Dinner, Decided - Entity Models.

These models are the records held by the entity store:
- Household (single-tenant, one current household)
- MealPlan with its embedded Meals
- GroceryList with its Sections and GroceryItems
- ChatMessage

JSON uses camelCase (mealId, prepTime, isActive) to match the web client;
Python code uses the snake_case field names.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(UTC)


class Record(BaseModel):
    """Base for every stored/serialized model."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Enums
# =============================================================================


class MealCategory(str, Enum):
    """The fixed meal taxonomy offered to households."""

    QUICK = "Quick & Easy"
    WEEKNIGHT = "Weeknight Meals"
    BATCH = "Batch Cooking"
    SPLIT = "Split Prep"

    @classmethod
    def parse(cls, value: str | None) -> "MealCategory | None":
        """Resolve a display name or short key ("quick", "batch") to a category."""
        if not value:
            return None
        key = value.strip().lower()
        for category in cls:
            if key == category.value.lower() or key == category.name.lower():
                return category
        return CATEGORY_KEYS.get(key)


CATEGORY_KEYS: dict[str, MealCategory] = {
    "quick": MealCategory.QUICK,
    "quick & easy": MealCategory.QUICK,
    "weeknight": MealCategory.WEEKNIGHT,
    "batch": MealCategory.BATCH,
    "batch cooking": MealCategory.BATCH,
    "split": MealCategory.SPLIT,
    "split prep": MealCategory.SPLIT,
}

CATEGORY_DESCRIPTIONS: dict[MealCategory, str] = {
    MealCategory.QUICK: "Quick & Easy (15 minutes or less - rotisserie chicken magic, simple assembly meals)",
    MealCategory.WEEKNIGHT: "Weeknight Meals (About 30 minutes, kid-friendly, standard dinner fare)",
    MealCategory.BATCH: "Batch Cooking (Larger meals meant to create leftovers for multiple meals)",
    MealCategory.SPLIT: "Split Prep (Meals that allow you to do prep the night before or morning of)",
}


class Appliance(str, Enum):
    """Kitchen equipment tags."""

    SLOW_COOKER = "slowCooker"
    INSTANT_POT = "instantPot"
    AIR_FRYER = "airFryer"
    STAND_MIXER = "standMixer"
    BLENDER = "blender"
    FOOD_PROCESSOR = "foodProcessor"
    OVEN_STOVETOP = "ovenStovetop"
    MICROWAVE = "microwave"
    GRILL = "grill"
    SOUS_VIDE = "sousvide"


# =============================================================================
# Household
# =============================================================================


class HouseholdMember(Record):
    id: str
    name: str
    age: str | None = None
    dietary_restrictions: list[str] = Field(default_factory=list)


class Household(Record):
    """
    The single current household.

    Never deleted - a reset returns it to a blank onboarding state.
    """

    id: int
    name: str = "My Household"
    members: list[HouseholdMember] = Field(default_factory=list)
    cooking_skill: int = Field(default=1, ge=1, le=3)
    preferences: str = ""
    challenges: str | None = None
    location: str | None = None
    appliances: list[Appliance] = Field(default_factory=list)
    onboarding_complete: bool = False

    @field_validator("appliances")
    @classmethod
    def _unique_appliances(cls, value: list[Appliance]) -> list[Appliance]:
        # Appliances are a set of tags; keep first-seen order
        return list(dict.fromkeys(value))


# =============================================================================
# Meals and Plans
# =============================================================================


class Meal(Record):
    """
    A meal embedded in a plan.

    `id` is assigned once (see dinner.core.identity) and survives every
    replace/modify. Alternate upstream field names are folded into this
    shape by dinner.models.normalize before a Meal is built.
    """

    id: str = ""
    name: str
    description: str = ""
    categories: list[str] = Field(default_factory=list)
    prep_time: int | None = None
    servings: int | None = None
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    rationales: list[str] = Field(default_factory=list)
    day: str | None = None
    image_url: str | None = None

    # Provenance, shown to the grocery generator so it uses the new ingredients
    replaced_from: str | None = None
    modified_from: str | None = None
    modification_request: str | None = None

    @property
    def category(self) -> str | None:
        return self.categories[0] if self.categories else None


class MealPlan(Record):
    """
    A household's set of meals for a period.

    At most one plan per household is active; see dinner.core.activation.
    `version` increases on every write to `meals`.
    """

    id: int
    name: str = "Weekly Meal Plan"
    household_id: int
    created_at: datetime = Field(default_factory=utc_now)
    last_updated: datetime | None = None
    is_active: bool = False
    special_notes: str = ""
    meals: list[Meal] = Field(default_factory=list)
    version: int = 1


# =============================================================================
# Grocery Lists
# =============================================================================


class GroceryItem(Record):
    """
    One line on a grocery list.

    `meal_id` is a weak back-reference to the contributing meal. Items the
    user adds by hand carry no meal_id.
    """

    id: str
    name: str
    quantity: str | None = None
    checked: bool = False
    meal_id: str | None = None


class GrocerySection(Record):
    name: str
    items: list[GroceryItem] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _items_always_list(cls, value):
        return [] if value is None else value


class GroceryList(Record):
    id: int
    meal_plan_id: int
    household_id: int
    created_at: datetime = Field(default_factory=utc_now)
    sections: list[GrocerySection] = Field(default_factory=list)

    @field_validator("sections", mode="before")
    @classmethod
    def _sections_always_list(cls, value):
        return [] if value is None else value

    def all_items(self) -> list[GroceryItem]:
        return [item for section in self.sections for item in section.items]


# =============================================================================
# Chat
# =============================================================================


class ChatMessage(Record):
    id: str
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime = Field(default_factory=utc_now)


# =============================================================================
# Generation Requests
# =============================================================================


class MealRequest(Record):
    """What the generator is asked for when producing new meals."""

    count: int = Field(default=5, ge=1, le=14)
    meal_type: str | None = None
    meals_by_day: dict[str, str] = Field(default_factory=dict)
    special_notes: str = ""
    week_start_date: str | None = None
    week_end_date: str | None = None
    exclude_names: list[str] = Field(default_factory=list)
