"""
Per-aggregate serialization for fetch-modify-submit sequences.

Two concurrent edits of the same aggregate inside this process queue behind
one another instead of both reading the same base collection. Writers in other
processes or on other devices are not covered.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict

logger = logging.getLogger("cache.locks")


@dataclass
class _HeldLock:
    """Tracks one aggregate's lock and how many tasks want it."""
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    waiter_count: int = 0


class AggregateLocks:
    """
    Keyed registry of asyncio locks.

    Pattern:
    - First task for a key creates the lock and acquires it
    - Later tasks for the same key wait on it
    - The entry is dropped once the last interested task releases it

    Usage:
        locks = AggregateLocks()
        async with locks.hold("session:42"):
            session = await sessions.get_session("42", force_refresh=True)
            ...
    """

    def __init__(self):
        self._held: Dict[str, _HeldLock] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        entry = self._held.get(key)
        if entry is None:
            entry = _HeldLock()
            self._held[key] = entry
        entry.waiter_count += 1
        if entry.waiter_count > 1:
            logger.debug(f"Waiting for {key} (waiters: {entry.waiter_count})")

        try:
            async with entry.lock:
                yield
        finally:
            entry.waiter_count -= 1
            if entry.waiter_count == 0 and self._held.get(key) is entry:
                del self._held[key]

    @property
    def active_keys(self) -> int:
        """Number of aggregates currently held or awaited."""
        return len(self._held)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active_keys": len(self._held),
            "keys": list(self._held.keys()),
        }
