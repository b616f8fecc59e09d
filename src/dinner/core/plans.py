"""
Plan reconciliation engine.

Applies add/remove/replace/modify/update/reset to a plan's meal
collection. Every write:

- runs under the plan's lock and re-reads the plan from the store first,
  so a stale snapshot is never written back
- deduplicates by meal id and never persists a meal without an id
- keeps a replaced or modified meal's id, so grocery back-references and
  list positions survive

Collaborator calls (tens of seconds) happen outside the lock. Grocery
resync happens inside it, after the meal write; a resync failure is
logged and reported on the result but never undoes the meal change.
"""

import logging
from dataclasses import dataclass, field

from dinner.core.activation import PlanActivator
from dinner.core.collaborator import call_collaborator
from dinner.core.errors import (
    DinnerError,
    HouseholdNotFound,
    InvalidMealData,
    MealNotFound,
    PlanNotFound,
    StalePlanVersion,
)
from dinner.core.groceries import GrocerySynthesizer
from dinner.core.identity import deduplicate, ensure_id, ensure_ids, find_meal_index, with_id
from dinner.core.locks import PlanLocks
from dinner.db.adapter import EntityStore
from dinner.llm.generator import MealGenerator
from dinner.models.entities import GroceryList, Household, Meal, MealCategory, MealPlan, MealRequest
from dinner.models.normalize import normalize_meal, normalize_meals

logger = logging.getLogger(__name__)

# Plan fields a client patch may change; meals go through `meals=`
PATCHABLE_FIELDS = ("name", "special_notes")


@dataclass
class PlanOperationResult:
    """Outcome of a plan operation, including how the grocery resync went."""

    plan: MealPlan | None
    meal: Meal | None = None
    grocery_list: GroceryList | None = None
    grocery_error: str | None = None
    discarded: list[str] = field(default_factory=list)

    @property
    def groceries_synced(self) -> bool:
        return self.grocery_error is None


class PlanService:
    def __init__(
        self,
        store: EntityStore,
        generator: MealGenerator,
        activator: PlanActivator,
        groceries: GrocerySynthesizer,
        locks: PlanLocks,
    ):
        self.store = store
        self.generator = generator
        self.activator = activator
        self.groceries = groceries
        self.locks = locks

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def get_plan(self, plan_id: int) -> MealPlan:
        plan = await self.store.get_meal_plan(plan_id)
        if plan is None:
            raise PlanNotFound(plan_id)
        return plan

    async def get_current_plan(self, household_id: int | None = None) -> MealPlan:
        """Raises NoActivePlan when nothing is active."""
        return await self.activator.current_plan(household_id)

    async def get_current_grocery_list(self) -> GroceryList:
        plan = await self.get_current_plan()
        return await self.groceries.get_for_plan(plan.id)

    async def _household(self) -> Household:
        household = await self.store.get_household()
        if household is None:
            raise HouseholdNotFound(help_text="Finish onboarding before planning meals.")
        return household

    async def _resolve_plan(self, plan_id: int | None) -> MealPlan:
        if plan_id is None:
            return await self.get_current_plan()
        return await self.get_plan(plan_id)

    async def _sync_groceries(
        self,
        result: PlanOperationResult,
        changed: list[Meal] | None = None,
        removed_ids: set[str] | None = None,
        full: bool = False,
    ) -> None:
        """Resync the plan's list; failures land on the result, not the caller."""
        try:
            if full:
                result.grocery_list = await self.groceries._synthesize(result.plan)
            else:
                sync = await self.groceries._resync(result.plan, changed=changed, removed_ids=removed_ids)
                result.grocery_list = sync.grocery_list
        except DinnerError as e:
            logger.error(f"Grocery resync for plan {result.plan.id} failed: {e.message}")
            result.grocery_error = e.message
        except Exception as e:
            logger.error(f"Grocery resync for plan {result.plan.id} failed: {e}", exc_info=True)
            result.grocery_error = str(e)

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    async def create_plan(
        self,
        meals: list[Meal | dict],
        name: str = "Weekly Meal Plan",
        special_notes: str = "",
        regenerate_groceries: bool = True,
    ) -> PlanOperationResult:
        """Store a new plan and make it the active one."""
        household = await self._household()
        incoming = normalize_meals(meals)
        unique = deduplicate(incoming)

        plan = await self.store.create_meal_plan(
            {
                "name": name,
                "household_id": household.id,
                "special_notes": special_notes,
                "is_active": False,
                "meals": unique,
            }
        )
        plan = await self.activator.activate(plan.id)
        logger.info(f"Created meal plan {plan.id} with {len(unique)} meal(s)")

        result = PlanOperationResult(plan=plan)
        if regenerate_groceries:
            async with self.locks.hold(plan.id):
                result.plan = await self.get_plan(plan.id)
                await self._sync_groceries(result, full=True)
        return result

    async def generate_plan(self, request: MealRequest, name: str = "Weekly Meal Plan") -> PlanOperationResult:
        """Ask the collaborator for a week of meals and store them as the new active plan."""
        household = await self._household()
        candidates = await call_collaborator(
            self.generator.generate_meals(household, request),
            what="meal plan",
        )
        if not candidates:
            raise InvalidMealData("The meal generator returned no meals.")
        return await self.create_plan(candidates, name=name, special_notes=request.special_notes)

    # -------------------------------------------------------------------------
    # Meal operations
    # -------------------------------------------------------------------------

    async def add_meal(
        self,
        plan_id: int | None = None,
        meal_type: str | None = None,
        preferences: str = "",
        regenerate_groceries: bool = True,
    ) -> PlanOperationResult:
        """
        Generate one meal and append it to the plan.

        Raises:
            NoActivePlan: no plan_id given and no plan is active
            PlanNotFound: plan_id does not exist
            GenerationError: the collaborator failed; the plan is unchanged
        """
        plan = await self._resolve_plan(plan_id)
        household = await self.store.get_household()
        request = MealRequest(
            count=1,
            meal_type=meal_type,
            special_notes=preferences,
            exclude_names=[m.name for m in plan.meals],
        )

        candidates = await call_collaborator(
            self.generator.generate_meals(household, request),
            what="add meal",
        )
        if not candidates:
            raise InvalidMealData("The meal generator returned no meal.")

        meal = ensure_id(normalize_meal(candidates[0]))
        category = MealCategory.parse(meal_type)
        if category and not meal.categories:
            meal = meal.model_copy(update={"categories": [category.value]})

        async with self.locks.hold(plan.id):
            fresh = await self.get_plan(plan.id)
            meals = deduplicate([*fresh.meals, meal])
            updated = await self.store.update_meal_plan(plan.id, {"meals": meals})
            logger.info(f"Added meal {meal.id} ({meal.name}) to plan {plan.id}, now {len(meals)} meal(s)")

            result = PlanOperationResult(plan=updated, meal=meal)
            if regenerate_groceries:
                await self._sync_groceries(result, changed=[meal])
        return result

    async def remove_meal(self, plan_id: int, meal_id: str, regenerate_groceries: bool = True) -> PlanOperationResult:
        """
        Remove one meal and its grocery items.

        Raises:
            PlanNotFound, MealNotFound
        """
        async with self.locks.hold(plan_id):
            plan = await self.get_plan(plan_id)
            meals = ensure_ids(plan.meals)
            remaining = [m for m in meals if m.id != meal_id]
            if len(remaining) == len(meals):
                raise MealNotFound(meal_id, plan_id)

            updated = await self.store.update_meal_plan(plan_id, {"meals": deduplicate(remaining)})
            logger.info(f"Removed meal {meal_id} from plan {plan_id}, {len(remaining)} meal(s) left")

            result = PlanOperationResult(plan=updated)
            if regenerate_groceries:
                await self._sync_groceries(result, removed_ids={meal_id})
        return result

    async def replace_meal(self, plan_id: int, meal_id: str, regenerate_groceries: bool = True) -> PlanOperationResult:
        """
        Swap a meal for a new one in the same category, same id, same position.

        Raises:
            PlanNotFound, MealNotFound, GenerationError
        """
        plan = await self.get_plan(plan_id)
        index = find_meal_index(plan.meals, meal_id)
        if index is None:
            raise MealNotFound(meal_id, plan_id)
        original = plan.meals[index]

        household = await self.store.get_household()
        candidate = await call_collaborator(
            self.generator.replace_meal(original, household),
            what="replace meal",
        )
        candidate = normalize_meal(candidate)
        replacement = with_id(
            candidate,
            meal_id,
            categories=original.categories or candidate.categories,
            day=original.day or candidate.day,
            replaced_from=original.name,
        )

        async with self.locks.hold(plan_id):
            fresh = await self.get_plan(plan_id)
            meals = ensure_ids(fresh.meals)
            index = find_meal_index(meals, meal_id)
            if index is None:
                # Removed while the replacement was being generated
                raise MealNotFound(meal_id, plan_id)
            meals[index] = replacement

            updated = await self.store.update_meal_plan(plan_id, {"meals": deduplicate(meals)})
            logger.info(f"Replaced meal {meal_id} in plan {plan_id}: {original.name} -> {replacement.name}")

            result = PlanOperationResult(plan=updated, meal=replacement)
            if regenerate_groceries:
                await self._sync_groceries(result, changed=[replacement])
        return result

    async def modify_meal(
        self,
        meal: Meal | dict,
        change_request: str,
        plan_id: int | None = None,
        regenerate_groceries: bool = True,
    ) -> PlanOperationResult:
        """
        Apply a free-text change to a meal, keeping its id.

        Without plan_id only the modified meal is returned. With it, the
        plan's copy (matched by id) is replaced and groceries resynced.

        Raises:
            GenerationError: the collaborator failed
            PlanNotFound, MealNotFound: plan_id given but the meal is not in it
        """
        current = ensure_id(normalize_meal(meal))
        candidate = await call_collaborator(
            self.generator.modify_meal(current, change_request),
            what="modify meal",
        )
        candidate = normalize_meal(candidate)
        modified = with_id(
            candidate,
            current.id,
            categories=candidate.categories or current.categories,
            day=current.day or candidate.day,
            modified_from=current.name,
            modification_request=change_request,
        )

        if plan_id is None:
            return PlanOperationResult(plan=None, meal=modified)

        async with self.locks.hold(plan_id):
            fresh = await self.get_plan(plan_id)
            meals = ensure_ids(fresh.meals)
            index = find_meal_index(meals, current.id)
            if index is None:
                raise MealNotFound(current.id, plan_id)
            meals[index] = modified

            updated = await self.store.update_meal_plan(plan_id, {"meals": deduplicate(meals)})
            logger.info(f"Modified meal {current.id} in plan {plan_id}: {change_request!r}")

            result = PlanOperationResult(plan=updated, meal=modified)
            if regenerate_groceries:
                await self._sync_groceries(result, changed=[modified])
        return result

    # -------------------------------------------------------------------------
    # Whole-plan operations
    # -------------------------------------------------------------------------

    async def update_plan(
        self,
        plan_id: int,
        meals: list[Meal | dict] | None = None,
        patch: dict | None = None,
        expected_version: int | None = None,
        regenerate_groceries: bool = False,
    ) -> PlanOperationResult:
        """
        Overwrite a plan with a client snapshot.

        Meals are normalized and deduplicated. Without `expected_version`
        the last write wins; with it, a plan that moved on raises
        StalePlanVersion. Groceries are only regenerated on request.
        """
        async with self.locks.hold(plan_id):
            plan = await self.get_plan(plan_id)
            if expected_version is not None and plan.version != expected_version:
                raise StalePlanVersion(plan_id, expected_version, plan.version)

            changes = {k: v for k, v in (patch or {}).items() if k in PATCHABLE_FIELDS}
            discarded: list[str] = []
            if meals is not None:
                incoming = ensure_ids(normalize_meals(meals))
                unique = deduplicate(incoming)
                if len(unique) < len(incoming):
                    kept = {id(m) for m in unique}
                    discarded = [m.id for m in incoming if id(m) not in kept]
                changes["meals"] = unique

            updated = await self.store.update_meal_plan(plan_id, changes) if changes else plan
            logger.info(f"Updated plan {plan_id} (fields: {sorted(changes) or 'none'})")

            result = PlanOperationResult(plan=updated, discarded=discarded)
            if regenerate_groceries:
                await self._sync_groceries(result, full=True)
        return result

    async def reset_plan(self, plan_id: int) -> PlanOperationResult:
        """
        Empty a plan and make it the active one.

        Meal-derived grocery items go with the meals; hand-added items stay.
        Resetting an empty plan only touches its timestamp.
        """
        async with self.locks.hold(plan_id):
            plan = await self.get_plan(plan_id)
            old_ids = {m.id for m in plan.meals if m.id}
            updated = await self.store.update_meal_plan(plan_id, {"meals": []} if plan.meals else {})
            result = PlanOperationResult(plan=updated)
            if old_ids:
                await self._sync_groceries(result, removed_ids=old_ids)

        result.plan = await self.activator.activate(plan_id)
        logger.info(f"Reset plan {plan_id} ({len(old_ids)} meal(s) cleared)")
        return result

    async def activate(self, plan_id: int) -> MealPlan:
        return await self.activator.activate(plan_id)

    async def add_meal_to_current_list(self, meal_id: str) -> GroceryList:
        """Merge one meal of the current plan into the current grocery list."""
        plan = await self.get_current_plan()
        return await self.groceries.add_meal_to_list(plan, meal_id)
