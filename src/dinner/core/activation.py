"""
Single-active-plan enforcement.

`PlanActivator` is the only code that writes `is_active`, and the only
way the rest of the app finds "the current plan". Activation touches
several records, so activations and current-plan reads share one lock:
a reader can never land between "old plan deactivated" and "new plan
activated", nor observe two active plans.
"""

import asyncio
import logging

from dinner.core.errors import NoActivePlan, PlanNotFound
from dinner.db.adapter import EntityStore
from dinner.models.entities import MealPlan

logger = logging.getLogger(__name__)


class PlanActivator:
    def __init__(self, store: EntityStore):
        self.store = store
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    def _loop_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to the loop that first waits on it
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def activate(self, plan_id: int) -> MealPlan:
        """
        Make `plan_id` the household's only active plan.

        Raises:
            PlanNotFound: if the plan does not exist
        """
        async with self._loop_lock():
            target = await self.store.get_meal_plan(plan_id)
            if target is None:
                raise PlanNotFound(plan_id)

            siblings = await self.store.list_meal_plans(target.household_id)
            deactivated = 0
            for plan in siblings:
                if plan.id == plan_id or not plan.is_active:
                    continue
                await self.store.update_meal_plan(plan.id, {"is_active": False})
                deactivated += 1

            if not target.is_active:
                target = await self.store.update_meal_plan(plan_id, {"is_active": True})

            logger.info(f"Activated meal plan {plan_id} (deactivated {deactivated} other plan(s))")
            return target

    async def find_current(self, household_id: int | None = None) -> MealPlan | None:
        async with self._loop_lock():
            return await self.store.get_current_meal_plan(household_id)

    async def current_plan(self, household_id: int | None = None) -> MealPlan:
        """
        The active plan with the most recent created_at.

        Raises:
            NoActivePlan: if no plan is active
        """
        plan = await self.find_current(household_id)
        if plan is None:
            raise NoActivePlan()
        return plan
