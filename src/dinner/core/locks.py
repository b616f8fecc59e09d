"""
Per-plan serialization.

Every read-modify-write on a plan's meals (and the grocery list derived
from them) runs under that plan's lock, so concurrent operations on one
plan cannot lose each other's writes. Different plans never block each
other.

A plan's lock only exists while someone holds or waits for it, so the
table stays as small as the number of plans in use right now.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class PlanLocks:
    """asyncio.Lock per plan id, dropped once its last user leaves."""

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, plan_id: int) -> AsyncIterator[None]:
        # No await between lookup and insert, so this is race-free on one loop
        lock = self._locks.get(plan_id)
        if lock is None:
            lock = self._locks[plan_id] = asyncio.Lock()
        self._users[plan_id] = self._users.get(plan_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[plan_id] -= 1
            if not self._users[plan_id]:
                del self._users[plan_id]
                del self._locks[plan_id]

    def __len__(self) -> int:
        return len(self._locks)
