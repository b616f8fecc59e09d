"""
Dinner, Decided - Service wiring.

Builds the core services around one store, one generator and one set of
locks. The web app and the CLI both go through `build_services`.
"""

import logging
from dataclasses import dataclass

from dinner.config import settings
from dinner.core.activation import PlanActivator
from dinner.core.chat import ChatService
from dinner.core.groceries import GrocerySynthesizer
from dinner.core.households import HouseholdService
from dinner.core.locks import PlanLocks
from dinner.core.plans import PlanService
from dinner.core.reset import ResetController
from dinner.db.adapter import EntityStore
from dinner.db.client import get_store
from dinner.llm.generator import DemoMealGenerator, MealGenerator, OpenAIMealGenerator

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: EntityStore
    generator: MealGenerator
    plans: PlanService
    groceries: GrocerySynthesizer
    households: HouseholdService
    chat: ChatService
    reset: ResetController
    activator: PlanActivator


def default_generator() -> MealGenerator:
    if settings.has_openai:
        return OpenAIMealGenerator()
    logger.warning("OPENAI_API_KEY not set, using the offline demo meal generator")
    return DemoMealGenerator()


def build_services(store: EntityStore | None = None, generator: MealGenerator | None = None) -> Services:
    store = store or get_store()
    generator = generator or default_generator()
    locks = PlanLocks()
    activator = PlanActivator(store)
    groceries = GrocerySynthesizer(store, generator, locks)

    return Services(
        store=store,
        generator=generator,
        plans=PlanService(store, generator, activator, groceries, locks),
        groceries=groceries,
        households=HouseholdService(store),
        chat=ChatService(store, generator),
        reset=ResetController(store),
        activator=activator,
    )
