"""
Grocery synthesis and merge.

A plan's grocery list is derived from its meals, but it is also edited by
hand: users check items off and add things the meals don't cover. Two ways
of keeping the list in step with the plan follow from that:

- Full synthesis asks the generation collaborator for a fresh breakdown
  and replaces every section. Used when no list exists yet or when the
  caller explicitly asks for a regeneration.
- Incremental merge adds one meal's ingredients into the existing
  sections and prunes the items of meals that left the plan. Manual and
  checked items survive. Used after every add/remove/replace/modify.

Merging is idempotent: a meal that already has an item on the list is
left alone.
"""

import logging
import re
import secrets
from dataclasses import dataclass

from dinner.core.collaborator import call_collaborator
from dinner.core.departments import department_for, organize_by_department
from dinner.core.errors import GroceryItemNotFound, GroceryListNotFound, MealNotFound, PlanNotFound
from dinner.core.identity import duplicate_names, ensure_id, find_meal_index
from dinner.core.locks import PlanLocks
from dinner.db.adapter import EntityStore
from dinner.llm.generator import MealGenerator
from dinner.models.entities import GroceryItem, GroceryList, GrocerySection, Meal, MealPlan
from dinner.models.normalize import normalize_meal, split_quantity

logger = logging.getLogger(__name__)


def new_item_id() -> str:
    return f"item-{secrets.token_hex(4)}"


def _copy_sections(sections: list[GrocerySection]) -> list[GrocerySection]:
    return [section.model_copy(deep=True) for section in sections]


def has_content(grocery_list: GroceryList | None) -> bool:
    return bool(grocery_list and any(section.items for section in grocery_list.sections))


def merge_meal_items(sections: list[GrocerySection], meal: Meal | dict) -> tuple[list[GrocerySection], int]:
    """
    Merge a meal's ingredients into `sections`.

    Returns the new sections and the number of items added. The input is
    not modified. Ingredients land in their department's section, which is
    created at the end of the list when missing.
    """
    if isinstance(meal, dict):
        # Tolerates mainIngredients/main_ingredients from older payloads
        meal = normalize_meal(meal)
    meal = ensure_id(meal)

    if not meal.ingredients:
        return sections, 0

    if any(item.meal_id == meal.id for section in sections for item in section.items):
        return sections, 0

    merged = _copy_sections(sections)
    present = {(item.name.lower(), item.meal_id) for section in merged for item in section.items}
    by_name = {section.name: section for section in merged}
    added = 0

    for index, ingredient in enumerate(meal.ingredients):
        name, quantity = split_quantity(ingredient)
        if not name or (name.lower(), meal.id) in present:
            continue

        department = department_for(name)
        section = by_name.get(department)
        if section is None:
            section = by_name[department] = GrocerySection(name=department)
            merged.append(section)

        section.items.append(
            GroceryItem(id=f"added-{meal.id}-{index}", name=name, quantity=quantity, meal_id=meal.id)
        )
        present.add((name.lower(), meal.id))
        added += 1

    return merged, added


def same_ingredient(a: str, b: str) -> bool:
    """Case-insensitive name match that tolerates a plural ("onion" / "onions")."""
    a, b = a.strip().lower(), b.strip().lower()
    if a == b:
        return True
    return bool(
        re.fullmatch(rf"{re.escape(a)}(?:e?s)", b) or re.fullmatch(rf"{re.escape(b)}(?:e?s)", a)
    )


def _claimant(item: GroceryItem, meals: list[Meal]) -> Meal | None:
    """First meal whose ingredients include the item."""
    for meal in meals:
        for ingredient in meal.ingredients:
            name, _ = split_quantity(ingredient)
            if same_ingredient(name, item.name):
                return meal
    return None


def prune_meal_items(
    sections: list[GrocerySection],
    meal_ids: set[str],
    remaining: list[Meal] | None = None,
) -> tuple[list[GrocerySection], int]:
    """
    Drop the items credited to `meal_ids`, and sections left empty by it.

    `meal_id` only records which meal an item was first listed for. An
    item that one of the `remaining` meals still needs stays on the list
    and is credited to that meal instead.
    """
    if not meal_ids:
        return sections, 0

    claimants = [meal for meal in remaining or [] if meal.id not in meal_ids]
    held = {
        (item.name.lower(), item.meal_id)
        for section in sections
        for item in section.items
        if item.meal_id not in meal_ids
    }
    pruned: list[GrocerySection] = []
    removed = 0
    for section in sections:
        kept = []
        for item in section.items:
            if item.meal_id not in meal_ids:
                kept.append(item)
                continue
            owner = _claimant(item, claimants)
            # The claimant may already have its own line for it
            if owner is None or (item.name.lower(), owner.id) in held:
                removed += 1
                continue
            held.add((item.name.lower(), owner.id))
            kept.append(item.model_copy(update={"meal_id": owner.id}))
        if kept or not section.items:
            pruned.append(section.model_copy(update={"items": kept}, deep=True))
    return pruned, removed


def tag_duplicate_names(meals: list[Meal]) -> list[Meal]:
    """
    Give meals that share a name a numbered suffix.

    Only used for the copy handed to the collaborator, which would
    otherwise fold same-named meals into one ingredient set.
    """
    dupes = duplicate_names(meals)
    if not dupes:
        return meals

    logger.warning(f"Plan has duplicate meal names, tagging before grocery generation: {sorted(dupes)}")
    counters: dict[str, int] = {}
    tagged = []
    for meal in meals:
        key = meal.name.strip().lower()
        if key in dupes:
            counters[key] = counters.get(key, 0) + 1
            meal = meal.model_copy(update={"name": f"{meal.name} ({counters[key]})"})
        tagged.append(meal)
    return tagged


def _with_item_ids(sections: list[GrocerySection]) -> list[GrocerySection]:
    normalized = []
    for section in sections:
        items = [item if item.id else item.model_copy(update={"id": new_item_id()}) for item in section.items]
        normalized.append(section.model_copy(update={"items": items}))
    return normalized


@dataclass
class GrocerySyncResult:
    grocery_list: GroceryList | None
    added: int = 0
    removed: int = 0
    regenerated: bool = False


class GrocerySynthesizer:
    """
    Keeps grocery lists consistent with their meal plans.

    Public methods take the plan's lock. Methods prefixed with `_` expect
    the caller (dinner.core.plans.PlanService) to hold it already.
    """

    def __init__(self, store: EntityStore, generator: MealGenerator, locks: PlanLocks):
        self.store = store
        self.generator = generator
        self.locks = locks

    # -------------------------------------------------------------------------
    # Synthesis
    # -------------------------------------------------------------------------

    async def synthesize_grocery_list(self, plan_id: int, preserve_existing: bool = False) -> GroceryList:
        """
        Build or refresh the grocery list for a plan.

        With `preserve_existing` and a non-empty list, every plan meal is
        merged into the current sections instead of regenerating them.

        Raises:
            PlanNotFound: if the plan does not exist
            GenerationError: if the collaborator fails
        """
        async with self.locks.hold(plan_id):
            plan = await self.store.get_meal_plan(plan_id)
            if plan is None:
                raise PlanNotFound(plan_id)
            return await self._synthesize(plan, preserve_existing=preserve_existing)

    async def _synthesize(self, plan: MealPlan, preserve_existing: bool = False) -> GroceryList:
        existing = await self.store.get_grocery_list_by_meal_plan(plan.id)

        if preserve_existing and has_content(existing):
            sections = existing.sections
            added = 0
            for meal in plan.meals:
                sections, count = merge_meal_items(sections, meal)
                added += count
            if not added:
                return existing
            logger.info(f"Merged {added} item(s) into grocery list {existing.id} for plan {plan.id}")
            return await self.store.update_grocery_list(existing.id, {"sections": sections})

        sections = await self._generate_sections(plan)
        if existing is None:
            grocery_list = await self.store.create_grocery_list(
                {"meal_plan_id": plan.id, "household_id": plan.household_id, "sections": sections}
            )
            logger.info(f"Created grocery list {grocery_list.id} for plan {plan.id}")
            return grocery_list

        logger.info(f"Regenerated grocery list {existing.id} for plan {plan.id}")
        return await self.store.update_grocery_list(existing.id, {"sections": sections})

    async def _generate_sections(self, plan: MealPlan) -> list[GrocerySection]:
        if not plan.meals:
            return []
        meals = tag_duplicate_names(plan.meals)
        sections = await call_collaborator(
            self.generator.generate_grocery_sections(meals),
            what="grocery list",
        )
        return _with_item_ids(sections)

    # -------------------------------------------------------------------------
    # Incremental merge
    # -------------------------------------------------------------------------

    async def merge_meal_into_list(self, list_id: int, meal: Meal | dict) -> GroceryList:
        """
        Add one meal's ingredients to a grocery list (idempotent).

        Raises:
            GroceryListNotFound: if the list does not exist
        """
        grocery_list = await self.store.get_grocery_list(list_id)
        if grocery_list is None:
            raise GroceryListNotFound(f"Grocery list {list_id} not found.")

        async with self.locks.hold(grocery_list.meal_plan_id):
            grocery_list = await self.store.get_grocery_list(list_id)
            sections, added = merge_meal_items(grocery_list.sections, meal)
            if not added:
                return grocery_list
            return await self.store.update_grocery_list(list_id, {"sections": sections})

    async def _resync(
        self,
        plan: MealPlan,
        changed: list[Meal] | None = None,
        removed_ids: set[str] | None = None,
    ) -> GrocerySyncResult:
        """
        Bring a plan's list in line after meals changed.

        Items of removed meals and the stale items of changed meals are
        pruned, unless another plan meal still needs them, then the changed
        meals are merged back in. Without a list,
        one is synthesized (unless the change was a pure removal).
        """
        changed = changed or []
        removed_ids = removed_ids or set()

        existing = await self.store.get_grocery_list_by_meal_plan(plan.id)
        if existing is None:
            if not changed:
                return GrocerySyncResult(grocery_list=None)
            grocery_list = await self._synthesize(plan)
            return GrocerySyncResult(grocery_list=grocery_list, regenerated=True)

        sections, removed = prune_meal_items(
            existing.sections, removed_ids | {m.id for m in changed}, remaining=plan.meals
        )
        added = 0
        for meal in changed:
            sections, count = merge_meal_items(sections, meal)
            added += count

        if not (added or removed):
            return GrocerySyncResult(grocery_list=existing)

        updated = await self.store.update_grocery_list(existing.id, {"sections": sections})
        logger.info(f"Grocery list {existing.id} resynced: +{added} / -{removed} item(s)")
        return GrocerySyncResult(grocery_list=updated, added=added, removed=removed)

    # -------------------------------------------------------------------------
    # Lookups and manual edits
    # -------------------------------------------------------------------------

    async def get_grocery_list(self, list_id: int) -> GroceryList:
        grocery_list = await self.store.get_grocery_list(list_id)
        if grocery_list is None:
            raise GroceryListNotFound(f"Grocery list {list_id} not found.")
        return grocery_list

    async def get_for_plan(self, plan_id: int) -> GroceryList:
        grocery_list = await self.store.get_grocery_list_by_meal_plan(plan_id)
        if grocery_list is None:
            raise GroceryListNotFound(f"No grocery list for meal plan {plan_id}.")
        return grocery_list

    async def clear_grocery_list(self, plan_id: int) -> GroceryList:
        """Empty a plan's list, creating an empty one if it has none."""
        async with self.locks.hold(plan_id):
            plan = await self.store.get_meal_plan(plan_id)
            if plan is None:
                raise PlanNotFound(plan_id)
            existing = await self.store.get_grocery_list_by_meal_plan(plan_id)
            if existing is None:
                return await self.store.create_grocery_list(
                    {"meal_plan_id": plan.id, "household_id": plan.household_id, "sections": []}
                )
            logger.info(f"Cleared grocery list {existing.id}")
            return await self.store.update_grocery_list(existing.id, {"sections": []})

    async def add_grocery_item(
        self,
        list_id: int,
        name: str,
        quantity: str | None = None,
        section: str | None = None,
    ) -> GroceryList:
        """Add a hand-entered item. It carries no meal id, so resyncs never prune it."""
        grocery_list = await self.get_grocery_list(list_id)
        async with self.locks.hold(grocery_list.meal_plan_id):
            grocery_list = await self.get_grocery_list(list_id)
            sections = _copy_sections(grocery_list.sections)
            section_name = section or department_for(name)
            target = next((s for s in sections if s.name == section_name), None)
            if target is None:
                target = GrocerySection(name=section_name)
                sections.append(target)
            target.items.append(GroceryItem(id=new_item_id(), name=name.strip(), quantity=quantity))
            return await self.store.update_grocery_list(list_id, {"sections": sections})

    async def set_item_checked(self, list_id: int, item_id: str, checked: bool) -> GroceryList:
        grocery_list = await self.get_grocery_list(list_id)
        async with self.locks.hold(grocery_list.meal_plan_id):
            grocery_list = await self.get_grocery_list(list_id)
            sections = _copy_sections(grocery_list.sections)
            item = next((i for s in sections for i in s.items if i.id == item_id), None)
            if item is None:
                raise GroceryItemNotFound(item_id)
            item.checked = checked
            return await self.store.update_grocery_list(list_id, {"sections": sections})

    async def organized(self, list_id: int, exclude_checked: bool = False) -> list[GrocerySection]:
        grocery_list = await self.get_grocery_list(list_id)
        return organize_by_department(grocery_list.all_items(), exclude_checked=exclude_checked)

    async def add_meal_to_list(self, plan: MealPlan, meal_id: str) -> GroceryList:
        """
        Merge one plan meal into the plan's list.

        Raises:
            MealNotFound: if the plan has no meal with that id
            GroceryListNotFound: if the plan has no list yet
        """
        index = find_meal_index(plan.meals, meal_id)
        if index is None:
            raise MealNotFound(meal_id, plan.id)
        grocery_list = await self.get_for_plan(plan.id)
        return await self.merge_meal_into_list(grocery_list.id, plan.meals[index])

