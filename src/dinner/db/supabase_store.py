"""
Supabase-backed entity store.

Tables (snake_case columns, JSONB for embedded collections):
- households      (members, appliances as jsonb)
- meal_plans      (meals as jsonb, version int)
- grocery_lists   (sections as jsonb)
- chat_messages

The supabase-py client is synchronous; calls are made directly from the
async methods the same way the rest of the app's db layer does.

Plan writes that touch `meals` are conditional on the version read just
before the write, so two processes writing the same plan cannot silently
overwrite each other.
"""

import logging
from typing import Any

from supabase import Client, create_client

from dinner.config import settings
from dinner.core.errors import StalePlanVersion
from dinner.db.memory import merge_record
from dinner.models.entities import ChatMessage, GroceryList, Household, MealPlan, utc_now

logger = logging.getLogger(__name__)

HOUSEHOLDS = "households"
MEAL_PLANS = "meal_plans"
GROCERY_LISTS = "grocery_lists"
CHAT_MESSAGES = "chat_messages"


def create_supabase_client() -> Client:
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY are required for the supabase store")
    return create_client(settings.supabase_url, settings.supabase_anon_key)


def _row(record, fields: set[str] | None = None) -> dict[str, Any]:
    """Serialize a record (or some of its fields) for PostgREST."""
    return record.model_dump(mode="json", include=fields, exclude={"id"})


class SupabaseStore:
    """EntityStore on top of Supabase/PostgREST."""

    def __init__(self, client: Client | None = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = create_supabase_client()
        return self._client

    # -------------------------------------------------------------------------
    # Household
    # -------------------------------------------------------------------------

    async def get_household(self) -> Household | None:
        response = self.client.table(HOUSEHOLDS).select("*").order("id").limit(1).execute()
        if not response.data:
            return None
        return Household.model_validate(response.data[0])

    async def create_household(self, data: dict[str, Any]) -> Household:
        draft = Household.model_validate({**data, "id": 0})
        response = self.client.table(HOUSEHOLDS).insert(_row(draft)).execute()
        return Household.model_validate(response.data[0])

    async def update_household(self, household_id: int, patch: dict[str, Any]) -> Household | None:
        current = await self._get_household(household_id)
        if current is None:
            return None
        patch = {k: v for k, v in patch.items() if k != "id"}
        merged = merge_record(current, patch)
        response = (
            self.client.table(HOUSEHOLDS)
            .update(_row(merged, set(patch)))
            .eq("id", household_id)
            .execute()
        )
        return Household.model_validate(response.data[0]) if response.data else merged

    async def _get_household(self, household_id: int) -> Household | None:
        response = self.client.table(HOUSEHOLDS).select("*").eq("id", household_id).limit(1).execute()
        return Household.model_validate(response.data[0]) if response.data else None

    # -------------------------------------------------------------------------
    # Chat
    # -------------------------------------------------------------------------

    async def list_messages(self) -> list[ChatMessage]:
        response = self.client.table(CHAT_MESSAGES).select("*").order("timestamp").execute()
        return [ChatMessage.model_validate(row) for row in response.data]

    async def save_message(self, message: ChatMessage) -> ChatMessage:
        row = message.model_dump(mode="json")
        response = self.client.table(CHAT_MESSAGES).insert(row).execute()
        return ChatMessage.model_validate(response.data[0])

    async def clear_messages(self) -> None:
        # PostgREST refuses unfiltered deletes
        self.client.table(CHAT_MESSAGES).delete().neq("id", "").execute()

    # -------------------------------------------------------------------------
    # Meal plans
    # -------------------------------------------------------------------------

    async def get_meal_plan(self, plan_id: int) -> MealPlan | None:
        response = self.client.table(MEAL_PLANS).select("*").eq("id", plan_id).limit(1).execute()
        return MealPlan.model_validate(response.data[0]) if response.data else None

    async def list_meal_plans(self, household_id: int) -> list[MealPlan]:
        response = (
            self.client.table(MEAL_PLANS)
            .select("*")
            .eq("household_id", household_id)
            .order("id")
            .execute()
        )
        return [MealPlan.model_validate(row) for row in response.data]

    async def get_current_meal_plan(self, household_id: int | None = None) -> MealPlan | None:
        query = self.client.table(MEAL_PLANS).select("*").eq("is_active", True)
        if household_id is not None:
            query = query.eq("household_id", household_id)
        response = query.order("created_at", desc=True).order("id", desc=True).limit(1).execute()
        return MealPlan.model_validate(response.data[0]) if response.data else None

    async def create_meal_plan(self, data: dict[str, Any]) -> MealPlan:
        draft = MealPlan.model_validate({**data, "id": 0})
        response = self.client.table(MEAL_PLANS).insert(_row(draft)).execute()
        return MealPlan.model_validate(response.data[0])

    async def update_meal_plan(self, plan_id: int, patch: dict[str, Any]) -> MealPlan | None:
        current = await self.get_meal_plan(plan_id)
        if current is None:
            return None

        patch = {k: v for k, v in patch.items() if k not in ("id", "version")}
        patch["last_updated"] = utc_now()
        writes_meals = "meals" in patch
        if writes_meals:
            patch["version"] = current.version + 1

        merged = merge_record(current, patch)
        query = self.client.table(MEAL_PLANS).update(_row(merged, set(patch))).eq("id", plan_id)
        if writes_meals:
            query = query.eq("version", current.version)
        response = query.execute()

        if not response.data:
            latest = await self.get_meal_plan(plan_id)
            if latest is None:
                return None
            logger.warning(f"Concurrent write to meal plan {plan_id} (version {current.version})")
            raise StalePlanVersion(plan_id, current.version, latest.version)

        return MealPlan.model_validate(response.data[0])

    # -------------------------------------------------------------------------
    # Grocery lists
    # -------------------------------------------------------------------------

    async def get_grocery_list(self, list_id: int) -> GroceryList | None:
        response = self.client.table(GROCERY_LISTS).select("*").eq("id", list_id).limit(1).execute()
        return GroceryList.model_validate(response.data[0]) if response.data else None

    async def get_grocery_list_by_meal_plan(self, plan_id: int) -> GroceryList | None:
        response = (
            self.client.table(GROCERY_LISTS)
            .select("*")
            .eq("meal_plan_id", plan_id)
            .order("created_at", desc=True)
            .order("id", desc=True)
            .limit(1)
            .execute()
        )
        return GroceryList.model_validate(response.data[0]) if response.data else None

    async def create_grocery_list(self, data: dict[str, Any]) -> GroceryList:
        draft = GroceryList.model_validate({**data, "id": 0})
        response = self.client.table(GROCERY_LISTS).insert(_row(draft)).execute()
        return GroceryList.model_validate(response.data[0])

    async def update_grocery_list(self, list_id: int, patch: dict[str, Any]) -> GroceryList | None:
        current = await self.get_grocery_list(list_id)
        if current is None:
            return None
        patch = {k: v for k, v in patch.items() if k != "id"}
        merged = merge_record(current, patch)
        response = (
            self.client.table(GROCERY_LISTS)
            .update(_row(merged, set(patch)))
            .eq("id", list_id)
            .execute()
        )
        return GroceryList.model_validate(response.data[0]) if response.data else merged
