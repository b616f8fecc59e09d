"""
Dinner, Decided - Entity Store.

In-memory and Supabase backends behind one async interface.
"""

from dinner.db.adapter import EntityStore
from dinner.db.client import get_store
from dinner.db.memory import MemoryStore

__all__ = [
    "EntityStore",
    "MemoryStore",
    "get_store",
]
