"""
Dinner, Decided - Models.

Entity records and the canonical meal normalizer.
"""

from dinner.models.entities import (
    ChatMessage,
    GroceryItem,
    GroceryList,
    GrocerySection,
    Household,
    HouseholdMember,
    Meal,
    MealCategory,
    MealPlan,
    MealRequest,
)
from dinner.models.normalize import normalize_meal, normalize_meals

__all__ = [
    "ChatMessage",
    "GroceryItem",
    "GroceryList",
    "GrocerySection",
    "Household",
    "HouseholdMember",
    "Meal",
    "MealCategory",
    "MealPlan",
    "MealRequest",
    "normalize_meal",
    "normalize_meals",
]
