"""
Dinner, Decided - Store factory.

Picks the EntityStore backend from settings. One instance per process.
"""

import logging

from dinner.config import settings
from dinner.db.adapter import EntityStore
from dinner.db.memory import MemoryStore
from dinner.db.supabase_store import SupabaseStore

logger = logging.getLogger(__name__)

# Singleton store instance
_store: EntityStore | None = None


def create_store(backend: str | None = None) -> EntityStore:
    backend = backend or settings.store_backend
    if backend == "supabase":
        logger.info("Using Supabase entity store")
        return SupabaseStore()

    logger.info("Using in-memory entity store")
    return MemoryStore()


def get_store() -> EntityStore:
    """
    Get the process-wide entity store.

    Uses singleton pattern so every service shares the same records.
    """
    global _store

    if _store is None:
        _store = create_store()

    return _store


def reset_store() -> None:
    """Drop the singleton (tests, CLI reset)."""
    global _store
    _store = None
