"""Grocery list API endpoints."""

from fastapi import APIRouter, Depends

from dinner.models.entities import GroceryList, GrocerySection
from dinner.services import Services
from dinner.web.deps import get_services
from dinner.web.schemas import AddItemRequest, AddMealToListRequest, CheckItemRequest, GenerateGroceryRequest

router = APIRouter(prefix="/api/grocery-list", tags=["grocery-list"])


@router.get("/current")
async def get_current_list(services: Services = Depends(get_services)) -> GroceryList:
    return await services.plans.get_current_grocery_list()


@router.get("/by-meal-plan/{plan_id}")
async def get_list_for_plan(plan_id: int, services: Services = Depends(get_services)) -> GroceryList:
    return await services.groceries.get_for_plan(plan_id)


@router.post("/generate")
async def generate_list(req: GenerateGroceryRequest, services: Services = Depends(get_services)) -> GroceryList:
    """
    Build the grocery list for a plan (the current plan by default).

    `empty` clears the list instead. `preserveExisting` merges plan meals
    into the current sections rather than regenerating them.
    """
    plan_id = req.meal_plan_id
    if plan_id is None:
        plan_id = (await services.plans.get_current_plan()).id

    if req.empty:
        return await services.groceries.clear_grocery_list(plan_id)
    return await services.groceries.synthesize_grocery_list(plan_id, preserve_existing=req.preserve_existing)


@router.post("/add-meal")
async def add_meal_to_list(req: AddMealToListRequest, services: Services = Depends(get_services)) -> GroceryList:
    return await services.plans.add_meal_to_current_list(req.meal_id)


@router.post("/{list_id}/items")
async def add_item(list_id: int, req: AddItemRequest, services: Services = Depends(get_services)) -> GroceryList:
    return await services.groceries.add_grocery_item(list_id, req.name, quantity=req.quantity, section=req.section)


@router.patch("/{list_id}/items/{item_id}")
async def check_item(
    list_id: int,
    item_id: str,
    req: CheckItemRequest,
    services: Services = Depends(get_services),
) -> GroceryList:
    return await services.groceries.set_item_checked(list_id, item_id, req.checked)


@router.get("/{list_id}/organized")
async def organized_list(
    list_id: int,
    exclude_checked: bool = False,
    services: Services = Depends(get_services),
) -> list[GrocerySection]:
    return await services.groceries.organized(list_id, exclude_checked=exclude_checked)
