"""
Meal plan API endpoints.

Thin handlers over PlanService. Domain errors bubble up to the app's
DinnerError handler, which turns them into structured JSON.
"""

from fastapi import APIRouter, Depends

from dinner.config import settings
from dinner.models.entities import MealPlan, MealRequest
from dinner.services import Services
from dinner.web.deps import get_services
from dinner.web.schemas import (
    AddMealRequest,
    CreatePlanRequest,
    GeneratePlanRequest,
    ModifyMealRequest,
    PlanOperationResponse,
    UpdatePlanRequest,
)

router = APIRouter(prefix="/api", tags=["meal-plan"])


@router.get("/meal-plan/current")
async def get_current_plan(services: Services = Depends(get_services)) -> MealPlan:
    return await services.plans.get_current_plan()


@router.get("/meal-plan/{plan_id}")
async def get_plan(plan_id: int, services: Services = Depends(get_services)) -> MealPlan:
    return await services.plans.get_plan(plan_id)


@router.post("/meal-plan/generate")
async def generate_plan(
    req: GeneratePlanRequest,
    services: Services = Depends(get_services),
) -> PlanOperationResponse:
    """Generate a fresh week of meals and make it the active plan."""
    count = req.number_of_meals or len(req.meals_by_day) or settings.default_meal_count
    request = MealRequest(
        count=count,
        meal_type=req.meal_type,
        meals_by_day=req.meals_by_day,
        special_notes=req.special_notes,
        week_start_date=req.week_start_date,
        week_end_date=req.week_end_date,
    )
    result = await services.plans.generate_plan(request, name=req.name)
    return PlanOperationResponse.from_result(result)


@router.post("/meal-plan")
async def create_plan(req: CreatePlanRequest, services: Services = Depends(get_services)) -> PlanOperationResponse:
    """Meal-plan builder submission."""
    result = await services.plans.create_plan(req.meals, name=req.name, special_notes=req.special_notes)
    return PlanOperationResponse.from_result(result)


@router.patch("/meal-plan/{plan_id}")
async def update_plan(
    plan_id: int,
    req: UpdatePlanRequest,
    services: Services = Depends(get_services),
) -> PlanOperationResponse:
    patch = req.model_dump(include={"name", "special_notes"}, exclude_none=True)
    result = await services.plans.update_plan(
        plan_id,
        meals=req.meals,
        patch=patch,
        expected_version=req.expected_version,
        regenerate_groceries=req.regenerate_groceries,
    )
    return PlanOperationResponse.from_result(result)


@router.post("/meal-plan/{plan_id}/activate")
async def activate_plan(plan_id: int, services: Services = Depends(get_services)) -> MealPlan:
    return await services.plans.activate(plan_id)


@router.post("/meal-plan/{plan_id}/reset")
async def reset_plan(plan_id: int, services: Services = Depends(get_services)) -> PlanOperationResponse:
    result = await services.plans.reset_plan(plan_id)
    return PlanOperationResponse.from_result(result)


@router.post("/meal-plan/{plan_id}/meals")
async def add_meal(
    plan_id: int,
    req: AddMealRequest,
    services: Services = Depends(get_services),
) -> PlanOperationResponse:
    result = await services.plans.add_meal(
        plan_id,
        meal_type=req.meal_type,
        preferences=req.preferences,
        regenerate_groceries=req.regenerate_groceries,
    )
    return PlanOperationResponse.from_result(result)


@router.delete("/meal-plan/{plan_id}/meals/{meal_id}")
async def remove_meal(plan_id: int, meal_id: str, services: Services = Depends(get_services)) -> PlanOperationResponse:
    result = await services.plans.remove_meal(plan_id, meal_id)
    return PlanOperationResponse.from_result(result)


@router.post("/meal-plan/{plan_id}/meals/{meal_id}/replace")
async def replace_meal(plan_id: int, meal_id: str, services: Services = Depends(get_services)) -> PlanOperationResponse:
    result = await services.plans.replace_meal(plan_id, meal_id)
    return PlanOperationResponse.from_result(result)


@router.post("/meal/modify")
async def modify_meal(req: ModifyMealRequest, services: Services = Depends(get_services)) -> PlanOperationResponse:
    result = await services.plans.modify_meal(
        req.meal,
        req.modification_request,
        plan_id=req.meal_plan_id,
    )
    return PlanOperationResponse.from_result(result)
