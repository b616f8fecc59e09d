"""Household profile and members."""

import logging
import secrets
from typing import Any

from dinner.core.errors import HouseholdNotFound, MemberNotFound
from dinner.db.adapter import EntityStore
from dinner.models.entities import Household, HouseholdMember

logger = logging.getLogger(__name__)


class HouseholdService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def get_household(self) -> Household:
        household = await self.store.get_household()
        if household is None:
            raise HouseholdNotFound()
        return household

    async def update_household(self, patch: dict[str, Any]) -> Household:
        """Patch the current household; creates it on first use. The id never changes."""
        patch = {k: v for k, v in patch.items() if k != "id"}
        household = await self.store.get_household()
        if household is None:
            return await self.store.create_household(patch)
        return await self.store.update_household(household.id, patch)

    async def add_member(self, name: str, age: str | None = None, dietary_restrictions: list[str] | None = None) -> Household:
        household = await self.get_household()
        member = HouseholdMember(
            id=f"member-{secrets.token_hex(4)}",
            name=name,
            age=age,
            dietary_restrictions=dietary_restrictions or [],
        )
        members = [*household.members, member]
        logger.info(f"Added member {member.id} to household {household.id}")
        return await self.store.update_household(household.id, {"members": members})

    async def update_member(self, member_id: str, patch: dict[str, Any]) -> Household:
        household = await self.get_household()
        members = list(household.members)
        for index, member in enumerate(members):
            if member.id == member_id:
                changes = {k: v for k, v in patch.items() if k != "id"}
                members[index] = HouseholdMember.model_validate({**member.model_dump(), **changes})
                return await self.store.update_household(household.id, {"members": members})
        raise MemberNotFound(member_id)

    async def remove_member(self, member_id: str) -> Household:
        household = await self.get_household()
        members = [m for m in household.members if m.id != member_id]
        if len(members) == len(household.members):
            raise MemberNotFound(member_id)
        return await self.store.update_household(household.id, {"members": members})
