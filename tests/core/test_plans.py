"""
Tests for PlanService - meal operations on a plan and the grocery resync
that follows them.

All collaborator calls go to the FakeGenerator from conftest; the store is
the in-memory one, so every test starts from a blank slate.
"""

import asyncio

import pytest

from dinner.core.errors import (
    GenerationError,
    GenerationErrorKind,
    HouseholdNotFound,
    InvalidMealData,
    MealNotFound,
    NoActivePlan,
    PlanNotFound,
    StalePlanVersion,
)
from dinner.models.entities import GroceryItem, GrocerySection, Meal, MealRequest


def _run(coro):
    """Run async function synchronously."""
    return asyncio.run(coro)


def _items(grocery_list):
    return grocery_list.all_items() if grocery_list else []


# =============================================================================
# Creation
# =============================================================================


class TestCreatePlan:
    """create_plan / generate_plan store a new active plan."""

    def test_create_plan_activates_and_deactivates_previous(self, services, store, make_plan, sample_meals):
        old = make_plan([], active=True)

        result = _run(services.plans.create_plan(sample_meals, name="This Week"))

        assert result.plan.is_active
        assert result.plan.name == "This Week"
        assert [m.id for m in result.plan.meals] == ["m1", "m2", "m3"]
        assert _run(store.get_meal_plan(old.id)).is_active is False
        assert _run(services.plans.get_current_plan()).id == result.plan.id

    def test_create_plan_builds_grocery_list(self, services, generator, household, sample_meals):
        result = _run(services.plans.create_plan(sample_meals))

        assert result.groceries_synced
        assert generator.calls["generate_grocery_sections"] == 1
        meal_ids = {item.meal_id for item in _items(result.grocery_list)}
        assert meal_ids == {"m1", "m2", "m3"}

    def test_create_plan_drops_duplicate_ids(self, services, household):
        meals = [Meal(id="a", name="First"), Meal(id="a", name="Second"), Meal(name="Third")]

        result = _run(services.plans.create_plan(meals, regenerate_groceries=False))

        names = [m.name for m in result.plan.meals]
        assert names == ["First", "Third"]
        assert all(m.id for m in result.plan.meals)

    def test_create_plan_normalizes_client_payload(self, services, household):
        payload = {
            "name": "Chili",
            "category": "batch",
            "prepTime": "45 minutes",
            "ingredients": ["beans"],
            "mainIngredients": ["2 cans beans", "1 lb ground beef", "1 onion", "1 can tomato sauce"],
        }

        result = _run(services.plans.create_plan([payload], regenerate_groceries=False))
        meal = result.plan.meals[0]

        assert meal.categories == ["Batch Cooking"]
        assert meal.prep_time == 45
        assert len(meal.ingredients) == 4

    def test_grocery_failure_keeps_plan(self, services, generator, store, household, sample_meals):
        generator.fail["generate_grocery_sections"] = GenerationError(GenerationErrorKind.RATE_LIMITED)

        result = _run(services.plans.create_plan(sample_meals))

        assert result.groceries_synced is False
        assert "rate limit" in result.grocery_error
        stored = _run(store.get_meal_plan(result.plan.id))
        assert len(stored.meals) == 3

    def test_create_plan_requires_household(self, services, sample_meals):
        with pytest.raises(HouseholdNotFound):
            _run(services.plans.create_plan(sample_meals))

    def test_generate_plan(self, services, household):
        result = _run(services.plans.generate_plan(MealRequest(count=3)))

        assert len(result.plan.meals) == 3
        assert len({m.id for m in result.plan.meals}) == 3
        assert result.plan.is_active

    def test_generate_plan_empty_response(self, services, generator, household):
        generator.meals = [[]]

        with pytest.raises(InvalidMealData):
            _run(services.plans.generate_plan(MealRequest(count=3)))


# =============================================================================
# Add / Remove
# =============================================================================


class TestAddMeal:
    """add_meal appends one generated meal."""

    def test_add_meal_to_current_plan(self, services, make_plan, sample_meals):
        plan = make_plan(sample_meals)

        result = _run(services.plans.add_meal())

        assert result.plan.id == plan.id
        assert len(result.plan.meals) == 4
        assert result.plan.meals[-1].id == result.meal.id
        assert result.plan.version == plan.version + 1

    def test_add_meal_without_active_plan(self, services, household):
        with pytest.raises(NoActivePlan):
            _run(services.plans.add_meal())

    def test_add_meal_unknown_plan(self, services, household):
        with pytest.raises(PlanNotFound):
            _run(services.plans.add_meal(plan_id=99))

    def test_add_meal_sets_requested_category(self, services, generator, make_plan):
        make_plan([])
        generator.meals = [[Meal(name="Wraps", ingredients=["4 tortillas"])]]

        result = _run(services.plans.add_meal(meal_type="quick"))

        assert result.meal.categories == ["Quick & Easy"]

    def test_generation_failure_leaves_plan_unchanged(self, services, generator, store, make_plan, sample_meals):
        plan = make_plan(sample_meals)
        generator.fail["generate_meals"] = GenerationError(GenerationErrorKind.QUOTA_EXCEEDED)

        with pytest.raises(GenerationError) as exc_info:
            _run(services.plans.add_meal(plan_id=plan.id))

        assert exc_info.value.kind == GenerationErrorKind.QUOTA_EXCEEDED
        stored = _run(store.get_meal_plan(plan.id))
        assert [m.id for m in stored.meals] == ["m1", "m2", "m3"]
        assert stored.version == plan.version

    def test_add_meal_keeps_manual_and_checked_items(self, services, make_plan, sample_meals):
        plan = make_plan(sample_meals)

        async def scenario():
            grocery_list = await services.groceries.synthesize_grocery_list(plan.id)
            grocery_list = await services.groceries.add_grocery_item(grocery_list.id, "Paper towels")
            first = grocery_list.all_items()[0]
            await services.groceries.set_item_checked(grocery_list.id, first.id, True)

            result = await services.plans.add_meal(plan_id=plan.id)
            return first.id, result

        checked_id, result = _run(scenario())
        items = {item.id: item for item in _items(result.grocery_list)}

        assert items[checked_id].checked
        assert any(item.name == "Paper towels" and item.meal_id is None for item in items.values())
        assert any(item.meal_id == result.meal.id for item in items.values())

    def test_concurrent_adds_keep_both_meals(self, services, generator, make_plan):
        plan = make_plan([])
        generator.delay = 0.01

        async def scenario():
            await asyncio.gather(
                services.plans.add_meal(plan_id=plan.id),
                services.plans.add_meal(plan_id=plan.id),
            )
            return await services.plans.get_plan(plan.id)

        stored = _run(scenario())

        assert len(stored.meals) == 2
        assert len({m.id for m in stored.meals}) == 2


class TestRemoveMeal:
    """remove_meal drops the meal and its grocery items."""

    def test_remove_meal_prunes_groceries(self, services, make_plan):
        plan = make_plan([Meal(id="m1", name="Tacos", ingredients=["1 lb ground beef", "1 head lettuce"])])

        async def scenario():
            await services.groceries.synthesize_grocery_list(plan.id)
            return await services.plans.remove_meal(plan.id, "m1")

        result = _run(scenario())

        assert result.plan.meals == []
        assert all(item.meal_id != "m1" for item in _items(result.grocery_list))

    def test_remove_keeps_ingredient_shared_with_remaining_meal(self, services, generator, make_plan):
        plan = make_plan(
            [
                Meal(id="m1", name="Tacos", ingredients=["1 onion", "1 lb ground beef"]),
                Meal(id="m2", name="Chili", ingredients=["2 onions", "2 cans kidney beans"]),
            ]
        )
        # Combined breakdown: the onion appears once, credited to the first meal
        generator.sections = [
            [
                GrocerySection(name="Produce", items=[GroceryItem(id="g1", name="onion", quantity="3", meal_id="m1")]),
                GrocerySection(
                    name="Meat & Seafood",
                    items=[GroceryItem(id="g2", name="ground beef", quantity="1 lb", meal_id="m1")],
                ),
                GrocerySection(
                    name="Canned Goods",
                    items=[GroceryItem(id="g3", name="kidney beans", quantity="2 cans", meal_id="m2")],
                ),
            ]
        ]

        async def scenario():
            await services.groceries.synthesize_grocery_list(plan.id)
            return await services.plans.remove_meal(plan.id, "m1")

        result = _run(scenario())
        by_name = {item.name: item for item in _items(result.grocery_list)}

        assert set(by_name) == {"onion", "kidney beans"}
        assert by_name["onion"].meal_id == "m2"

    def test_remove_unknown_meal(self, services, store, make_plan, sample_meals):
        plan = make_plan(sample_meals)

        with pytest.raises(MealNotFound):
            _run(services.plans.remove_meal(plan.id, "nope"))

        assert len(_run(store.get_meal_plan(plan.id)).meals) == 3

    def test_remove_without_list_does_not_synthesize(self, services, generator, store, make_plan, sample_meals):
        plan = make_plan(sample_meals)

        result = _run(services.plans.remove_meal(plan.id, "m2"))

        assert result.grocery_list is None
        assert generator.calls["generate_grocery_sections"] == 0
        assert _run(store.get_grocery_list_by_meal_plan(plan.id)) is None


# =============================================================================
# Replace / Modify
# =============================================================================


class TestReplaceMeal:
    """replace_meal swaps content but keeps id and position."""

    def test_replace_keeps_id_and_position(self, services, generator, make_plan, sample_meals):
        plan = make_plan(sample_meals)
        generator.replacements = [Meal(name="Stew", ingredients=["2 lbs beef stew meat"])]

        result = _run(services.plans.replace_meal(plan.id, "m2"))

        replaced = result.plan.meals[1]
        assert replaced.id == "m2"
        assert replaced.name == "Stew"
        assert replaced.replaced_from == "Soup"
        assert replaced.categories == ["Batch Cooking"]
        assert [m.id for m in result.plan.meals] == ["m1", "m2", "m3"]

    def test_replace_swaps_grocery_items(self, services, generator, make_plan, sample_meals):
        plan = make_plan(sample_meals)
        generator.replacements = [Meal(name="Stew", ingredients=["2 lbs beef stew meat"])]

        async def scenario():
            await services.groceries.synthesize_grocery_list(plan.id)
            return await services.plans.replace_meal(plan.id, "m2")

        result = _run(scenario())
        names = {item.name for item in _items(result.grocery_list) if item.meal_id == "m2"}

        assert names == {"beef stew meat"}

    def test_replace_keeps_item_another_meal_needs(self, services, generator, make_plan):
        plan = make_plan(
            [
                Meal(id="m1", name="Tacos", ingredients=["1 onion", "1 lb ground beef"]),
                Meal(id="m2", name="Chili", ingredients=["2 onions", "2 cans kidney beans"]),
            ]
        )
        generator.sections = [
            [
                GrocerySection(
                    name="Produce",
                    items=[GroceryItem(id="g1", name="onions", quantity="3", meal_id="m1", checked=True)],
                ),
                GrocerySection(
                    name="Meat & Seafood",
                    items=[GroceryItem(id="g2", name="ground beef", quantity="1 lb", meal_id="m1")],
                ),
            ]
        ]
        generator.replacements = [Meal(name="Stir Fry", ingredients=["1 lb tofu"])]

        async def scenario():
            await services.groceries.synthesize_grocery_list(plan.id)
            return await services.plans.replace_meal(plan.id, "m1")

        result = _run(scenario())
        items = _items(result.grocery_list)
        onions = [item for item in items if item.name == "onions"]

        assert len(onions) == 1
        assert onions[0].meal_id == "m2"
        assert onions[0].checked
        assert {item.name for item in items if item.meal_id == "m1"} == {"tofu"}

    def test_replace_unknown_meal_skips_collaborator(self, services, generator, make_plan, sample_meals):
        plan = make_plan(sample_meals)

        with pytest.raises(MealNotFound):
            _run(services.plans.replace_meal(plan.id, "missing"))

        assert generator.calls["replace_meal"] == 0

    def test_meal_removed_during_replacement(self, services, generator, store, make_plan, sample_meals):
        plan = make_plan(sample_meals)
        generator.delay = 0.01

        async def scenario():
            return await asyncio.gather(
                services.plans.replace_meal(plan.id, "m2"),
                services.plans.remove_meal(plan.id, "m2"),
                return_exceptions=True,
            )

        replaced, removed = _run(scenario())

        assert isinstance(replaced, MealNotFound)
        assert not isinstance(removed, Exception)
        assert [m.id for m in _run(store.get_meal_plan(plan.id)).meals] == ["m1", "m3"]


class TestModifyMeal:
    """modify_meal applies a change request and keeps the id."""

    def test_modify_without_plan(self, services, store):
        meal = {"id": "m9", "name": "Curry", "ingredients": ["1 lb chicken"]}

        result = _run(services.plans.modify_meal(meal, "make it vegetarian"))

        assert result.plan is None
        assert result.meal.id == "m9"
        assert result.meal.modified_from == "Curry"
        assert result.meal.modification_request == "make it vegetarian"

    def test_modify_in_plan_replaces_grocery_items(self, services, generator, make_plan, sample_meals):
        plan = make_plan(sample_meals)
        generator.modifications = [Meal(name="Bean Tacos", ingredients=["2 cans black beans", "8 corn tortillas"])]

        async def scenario():
            await services.groceries.synthesize_grocery_list(plan.id)
            return await services.plans.modify_meal(sample_meals[0], "no meat", plan_id=plan.id)

        result = _run(scenario())
        names = {item.name for item in _items(result.grocery_list) if item.meal_id == "m1"}

        assert result.plan.meals[0].id == "m1"
        assert result.plan.meals[0].name == "Bean Tacos"
        assert "ground beef" not in names
        assert "black beans" in names

    def test_modify_meal_not_in_plan(self, services, make_plan, sample_meals):
        plan = make_plan(sample_meals[:1])

        with pytest.raises(MealNotFound):
            _run(services.plans.modify_meal(sample_meals[2], "spicier", plan_id=plan.id))

    def test_modify_generation_failure(self, services, generator, store, make_plan, sample_meals):
        plan = make_plan(sample_meals)
        generator.fail["modify_meal"] = GenerationError(GenerationErrorKind.AUTH_FAILED)

        with pytest.raises(GenerationError):
            _run(services.plans.modify_meal(sample_meals[0], "spicier", plan_id=plan.id))

        assert _run(store.get_meal_plan(plan.id)).meals[0].name == "Tacos"


# =============================================================================
# Update / Reset
# =============================================================================


class TestUpdatePlan:
    """update_plan overwrites with a client snapshot."""

    def test_update_deduplicates_snapshot(self, services, make_plan, sample_meals):
        plan = make_plan(sample_meals)
        snapshot = [m.model_dump(by_alias=True) for m in sample_meals] + [{"id": "m1", "name": "Tacos again"}]

        result = _run(services.plans.update_plan(plan.id, meals=snapshot))

        assert [m.id for m in result.plan.meals] == ["m1", "m2", "m3"]
        assert result.plan.meals[0].name == "Tacos"
        assert result.discarded == ["m1"]

    def test_patch_only_touches_allowed_fields(self, services, store, make_plan):
        plan = make_plan([])

        result = _run(services.plans.update_plan(plan.id, patch={"name": "Renamed", "is_active": False}))

        assert result.plan.name == "Renamed"
        assert _run(store.get_meal_plan(plan.id)).is_active

    def test_stale_version_rejected(self, services, make_plan, sample_meals):
        plan = make_plan(sample_meals)
        _run(services.plans.remove_meal(plan.id, "m3", regenerate_groceries=False))

        with pytest.raises(StalePlanVersion) as exc_info:
            _run(services.plans.update_plan(plan.id, meals=sample_meals, expected_version=plan.version))

        assert exc_info.value.actual == plan.version + 1

    def test_matching_version_accepted(self, services, make_plan, sample_meals):
        plan = make_plan(sample_meals)

        result = _run(services.plans.update_plan(plan.id, meals=sample_meals[:1], expected_version=plan.version))

        assert len(result.plan.meals) == 1
        assert result.plan.version == plan.version + 1

    def test_no_grocery_regeneration_by_default(self, services, generator, make_plan, sample_meals):
        plan = make_plan(sample_meals)

        _run(services.plans.update_plan(plan.id, meals=sample_meals[:2]))

        assert generator.calls["generate_grocery_sections"] == 0


class TestResetPlan:
    """reset_plan empties the plan and activates it."""

    def test_reset_empties_and_activates(self, services, store, make_plan, sample_meals):
        target = make_plan(sample_meals, active=False)
        sibling = make_plan([], active=True)
        other = make_plan([], active=True)

        result = _run(services.plans.reset_plan(target.id))

        assert result.plan.meals == []
        assert result.plan.is_active
        assert _run(store.get_meal_plan(sibling.id)).is_active is False
        assert _run(store.get_meal_plan(other.id)).is_active is False

    def test_reset_keeps_manual_items(self, services, make_plan, sample_meals):
        plan = make_plan(sample_meals)

        async def scenario():
            grocery_list = await services.groceries.synthesize_grocery_list(plan.id)
            await services.groceries.add_grocery_item(grocery_list.id, "Dish soap", section="Household")
            await services.plans.reset_plan(plan.id)
            return await services.groceries.get_for_plan(plan.id)

        grocery_list = _run(scenario())

        assert [item.name for item in grocery_list.all_items()] == ["Dish soap"]

    def test_reset_is_idempotent(self, services, make_plan, sample_meals):
        plan = make_plan(sample_meals)

        first = _run(services.plans.reset_plan(plan.id))
        second = _run(services.plans.reset_plan(plan.id))

        assert first.plan.meals == second.plan.meals == []
        assert second.plan.version == first.plan.version
        assert second.plan.is_active

    def test_reset_unknown_plan(self, services, household):
        with pytest.raises(PlanNotFound):
            _run(services.plans.reset_plan(42))
