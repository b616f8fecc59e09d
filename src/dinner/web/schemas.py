"""
Request and response bodies for the HTTP API.

Entity records (MealPlan, GroceryList, ...) are returned as-is; these
models only cover the envelopes around them.
"""

from typing import Any

from pydantic import Field

from dinner.core.plans import PlanOperationResult
from dinner.models.entities import Appliance, GroceryList, Household, Meal, MealPlan, Record

# =============================================================================
# Meal plans
# =============================================================================


class GeneratePlanRequest(Record):
    number_of_meals: int | None = Field(default=None, ge=1, le=14)
    meal_type: str | None = None
    meals_by_day: dict[str, str] = Field(default_factory=dict)
    special_notes: str = ""
    week_start_date: str | None = None
    week_end_date: str | None = None
    name: str = "Weekly Meal Plan"


class CreatePlanRequest(Record):
    name: str = "Weekly Meal Plan"
    meals: list[dict[str, Any]] = Field(default_factory=list)
    special_notes: str = ""


class UpdatePlanRequest(Record):
    meals: list[dict[str, Any]] | None = None
    name: str | None = None
    special_notes: str | None = None
    expected_version: int | None = None
    regenerate_groceries: bool = False


class AddMealRequest(Record):
    meal_type: str | None = None
    preferences: str = ""
    regenerate_groceries: bool = True


class ModifyMealRequest(Record):
    meal: dict[str, Any]
    modification_request: str = Field(min_length=1)
    meal_plan_id: int | None = None


class PlanOperationResponse(Record):
    plan: MealPlan | None = None
    meal: Meal | None = None
    grocery_list: GroceryList | None = None
    grocery_error: str | None = None
    discarded_meal_ids: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: PlanOperationResult) -> "PlanOperationResponse":
        return cls(
            plan=result.plan,
            meal=result.meal,
            grocery_list=result.grocery_list,
            grocery_error=result.grocery_error,
            discarded_meal_ids=result.discarded,
        )


# =============================================================================
# Grocery lists
# =============================================================================


class GenerateGroceryRequest(Record):
    meal_plan_id: int | None = None
    preserve_existing: bool = False
    empty: bool = False


class AddMealToListRequest(Record):
    meal_id: str


class AddItemRequest(Record):
    name: str = Field(min_length=1)
    quantity: str | None = None
    section: str | None = None


class CheckItemRequest(Record):
    checked: bool


# =============================================================================
# Household, chat, reset
# =============================================================================


class HouseholdPatch(Record):
    name: str | None = None
    cooking_skill: int | None = Field(default=None, ge=1, le=3)
    preferences: str | None = None
    challenges: str | None = None
    location: str | None = None
    appliances: list[Appliance] | None = None
    onboarding_complete: bool | None = None


class MemberRequest(Record):
    name: str = Field(min_length=1)
    age: str | None = None
    dietary_restrictions: list[str] = Field(default_factory=list)


class MemberPatch(Record):
    name: str | None = None
    age: str | None = None
    dietary_restrictions: list[str] | None = None


class ChatRequest(Record):
    content: str = Field(min_length=1)


class ResetResponse(Record):
    success: bool = True
    household: Household
    clear_client_cache: bool = True
