"""
Household reset.

Tears the household back down to a blank onboarding state. There is no
confirmation step here; the UI asks before calling.
"""

import logging
from dataclasses import dataclass

from dinner.db.adapter import EntityStore
from dinner.models.entities import Household

logger = logging.getLogger(__name__)

BLANK_HOUSEHOLD = {
    "members": [],
    "preferences": "",
    "challenges": None,
    "cooking_skill": 1,
    "appliances": [],
    "onboarding_complete": False,
}


@dataclass
class ResetResult:
    household: Household
    messages_cleared: bool = True
    # Clients must drop any cached plan/grocery/household state
    clear_client_cache: bool = True


class ResetController:
    def __init__(self, store: EntityStore):
        self.store = store

    async def reset_household(self) -> ResetResult:
        """Clear chat history and blank the household profile."""
        await self.store.clear_messages()

        household = await self.store.get_household()
        if household is None:
            household = await self.store.create_household(BLANK_HOUSEHOLD)
        else:
            household = await self.store.update_household(household.id, BLANK_HOUSEHOLD)

        logger.info(f"Reset household {household.id} to onboarding state")
        return ResetResult(household=household)
