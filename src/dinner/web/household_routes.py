"""Household, chat and reset endpoints."""

from fastapi import APIRouter, Depends

from dinner.models.entities import ChatMessage, Household
from dinner.services import Services
from dinner.web.deps import get_services
from dinner.web.schemas import ChatRequest, HouseholdPatch, MemberPatch, MemberRequest, ResetResponse

router = APIRouter(prefix="/api", tags=["household"])


# =============================================================================
# Household
# =============================================================================


@router.get("/household")
async def get_household(services: Services = Depends(get_services)) -> Household:
    return await services.households.get_household()


@router.patch("/household")
async def update_household(req: HouseholdPatch, services: Services = Depends(get_services)) -> Household:
    return await services.households.update_household(req.model_dump(exclude_unset=True))


@router.post("/household/members")
async def add_member(req: MemberRequest, services: Services = Depends(get_services)) -> Household:
    return await services.households.add_member(req.name, req.age, req.dietary_restrictions)


@router.put("/household/members/{member_id}")
async def update_member(member_id: str, req: MemberPatch, services: Services = Depends(get_services)) -> Household:
    return await services.households.update_member(member_id, req.model_dump(exclude_unset=True))


@router.delete("/household/members/{member_id}")
async def remove_member(member_id: str, services: Services = Depends(get_services)) -> Household:
    return await services.households.remove_member(member_id)


# =============================================================================
# Chat
# =============================================================================


@router.get("/chat/messages")
async def list_messages(services: Services = Depends(get_services)) -> list[ChatMessage]:
    return await services.chat.list_messages()


@router.post("/chat")
async def send_message(req: ChatRequest, services: Services = Depends(get_services)) -> list[ChatMessage]:
    return await services.chat.send(req.content)


# =============================================================================
# Reset
# =============================================================================


@router.post("/reset")
async def reset_household(services: Services = Depends(get_services)) -> ResetResponse:
    """Wipe chat and profile. The client must drop its caches when clearClientCache is set."""
    result = await services.reset.reset_household()
    return ResetResponse(household=result.household, clear_client_cache=result.clear_client_cache)
