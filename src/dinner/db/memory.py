"""
In-memory entity store.

Records live in plain dicts keyed by id. Reads hand out deep copies and
patches are deep-copied on the way in, so nothing a caller holds ever
aliases a stored record.
"""

import copy
import itertools
from typing import Any, TypeVar

from pydantic import BaseModel

from dinner.models.entities import ChatMessage, GroceryList, Household, MealPlan, utc_now

M = TypeVar("M", bound=BaseModel)


def merge_record(record: M, patch: dict[str, Any]) -> M:
    """Validate `record` with `patch` applied on top."""
    data = record.model_dump()
    data.update(copy.deepcopy(patch))
    return type(record).model_validate(data)


class MemoryStore:
    """Dict-backed EntityStore. Single process only."""

    def __init__(self) -> None:
        self._households: dict[int, Household] = {}
        self._plans: dict[int, MealPlan] = {}
        self._lists: dict[int, GroceryList] = {}
        self._messages: list[ChatMessage] = []
        self._household_ids = itertools.count(1)
        self._plan_ids = itertools.count(1)
        self._list_ids = itertools.count(1)

    # -------------------------------------------------------------------------
    # Household
    # -------------------------------------------------------------------------

    async def get_household(self) -> Household | None:
        if not self._households:
            return None
        household = self._households[min(self._households)]
        return household.model_copy(deep=True)

    async def create_household(self, data: dict[str, Any]) -> Household:
        household = Household.model_validate({**copy.deepcopy(data), "id": next(self._household_ids)})
        self._households[household.id] = household
        return household.model_copy(deep=True)

    async def update_household(self, household_id: int, patch: dict[str, Any]) -> Household | None:
        household = self._households.get(household_id)
        if household is None:
            return None
        # The id is never patchable
        patch = {k: v for k, v in patch.items() if k != "id"}
        merged = merge_record(household, patch)
        self._households[household_id] = merged
        return merged.model_copy(deep=True)

    # -------------------------------------------------------------------------
    # Chat
    # -------------------------------------------------------------------------

    async def list_messages(self) -> list[ChatMessage]:
        return [m.model_copy(deep=True) for m in self._messages]

    async def save_message(self, message: ChatMessage) -> ChatMessage:
        self._messages.append(message.model_copy(deep=True))
        return message.model_copy(deep=True)

    async def clear_messages(self) -> None:
        self._messages.clear()

    # -------------------------------------------------------------------------
    # Meal plans
    # -------------------------------------------------------------------------

    async def get_meal_plan(self, plan_id: int) -> MealPlan | None:
        plan = self._plans.get(plan_id)
        return plan.model_copy(deep=True) if plan else None

    async def list_meal_plans(self, household_id: int) -> list[MealPlan]:
        plans = [p for p in self._plans.values() if p.household_id == household_id]
        return [p.model_copy(deep=True) for p in sorted(plans, key=lambda p: p.id)]

    async def get_current_meal_plan(self, household_id: int | None = None) -> MealPlan | None:
        active = [
            p
            for p in self._plans.values()
            if p.is_active and (household_id is None or p.household_id == household_id)
        ]
        if not active:
            return None
        # Most recent created_at wins; id breaks exact-timestamp ties
        current = max(active, key=lambda p: (p.created_at, p.id))
        return current.model_copy(deep=True)

    async def create_meal_plan(self, data: dict[str, Any]) -> MealPlan:
        plan = MealPlan.model_validate({**copy.deepcopy(data), "id": next(self._plan_ids)})
        self._plans[plan.id] = plan
        return plan.model_copy(deep=True)

    async def update_meal_plan(self, plan_id: int, patch: dict[str, Any]) -> MealPlan | None:
        plan = self._plans.get(plan_id)
        if plan is None:
            return None
        patch = {k: v for k, v in patch.items() if k not in ("id", "version")}
        patch["last_updated"] = utc_now()
        if "meals" in patch:
            patch["version"] = plan.version + 1
        merged = merge_record(plan, patch)
        self._plans[plan_id] = merged
        return merged.model_copy(deep=True)

    # -------------------------------------------------------------------------
    # Grocery lists
    # -------------------------------------------------------------------------

    async def get_grocery_list(self, list_id: int) -> GroceryList | None:
        grocery_list = self._lists.get(list_id)
        return grocery_list.model_copy(deep=True) if grocery_list else None

    async def get_grocery_list_by_meal_plan(self, plan_id: int) -> GroceryList | None:
        lists = [gl for gl in self._lists.values() if gl.meal_plan_id == plan_id]
        if not lists:
            return None
        latest = max(lists, key=lambda gl: (gl.created_at, gl.id))
        return latest.model_copy(deep=True)

    async def create_grocery_list(self, data: dict[str, Any]) -> GroceryList:
        grocery_list = GroceryList.model_validate({**copy.deepcopy(data), "id": next(self._list_ids)})
        self._lists[grocery_list.id] = grocery_list
        return grocery_list.model_copy(deep=True)

    async def update_grocery_list(self, list_id: int, patch: dict[str, Any]) -> GroceryList | None:
        grocery_list = self._lists.get(list_id)
        if grocery_list is None:
            return None
        patch = {k: v for k, v in patch.items() if k != "id"}
        merged = merge_record(grocery_list, patch)
        self._lists[list_id] = merged
        return merged.model_copy(deep=True)
