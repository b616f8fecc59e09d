"""
Entity Store Protocol.

Defines the record-oriented storage interface the core depends on.
Two implementations ship with the app:

- MemoryStore (dinner.db.memory): dict-backed, the default
- SupabaseStore (dinner.db.supabase_store): Postgres via supabase-py

Ownership rule: records belong to the store. Every read returns a copy,
and the only way to change a record is an explicit update call taking a
partial patch and returning the full merged record.

Lookups return None for a missing record. Raising domain errors is the
caller's job (dinner.core), since only the caller knows whether a
missing record is a failure.
"""

from typing import Any, Protocol, runtime_checkable

from dinner.models.entities import ChatMessage, GroceryList, Household, MealPlan


@runtime_checkable
class EntityStore(Protocol):
    """Async storage for households, meal plans, grocery lists and chat."""

    # --- Household -----------------------------------------------------------

    async def get_household(self) -> Household | None:
        """The single current household."""
        ...

    async def create_household(self, data: dict[str, Any]) -> Household: ...

    async def update_household(self, household_id: int, patch: dict[str, Any]) -> Household | None: ...

    # --- Chat ----------------------------------------------------------------

    async def list_messages(self) -> list[ChatMessage]: ...

    async def save_message(self, message: ChatMessage) -> ChatMessage: ...

    async def clear_messages(self) -> None: ...

    # --- Meal plans ----------------------------------------------------------

    async def get_meal_plan(self, plan_id: int) -> MealPlan | None: ...

    async def list_meal_plans(self, household_id: int) -> list[MealPlan]: ...

    async def get_current_meal_plan(self, household_id: int | None = None) -> MealPlan | None:
        """
        The active plan with the most recent created_at.

        This is the only place the tie-break query lives; everything else
        reads the current plan through dinner.core.activation.
        """
        ...

    async def create_meal_plan(self, data: dict[str, Any]) -> MealPlan: ...

    async def update_meal_plan(self, plan_id: int, patch: dict[str, Any]) -> MealPlan | None:
        """
        Merge `patch` into the plan.

        Sets last_updated on every call; bumps `version` when the patch
        writes `meals`. Returns None if the plan does not exist.
        """
        ...

    # --- Grocery lists -------------------------------------------------------

    async def get_grocery_list(self, list_id: int) -> GroceryList | None: ...

    async def get_grocery_list_by_meal_plan(self, plan_id: int) -> GroceryList | None:
        """The most recently created list for a plan."""
        ...

    async def create_grocery_list(self, data: dict[str, Any]) -> GroceryList: ...

    async def update_grocery_list(self, list_id: int, patch: dict[str, Any]) -> GroceryList | None: ...
