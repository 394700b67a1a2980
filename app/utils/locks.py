"""
Office Nexus Ledger - Keyed Async Locks

In-process serialization for work that must not interleave per key:
one posting per idempotency key, one capital mutation per company.
Cross-process safety comes from the database (unique constraints and
row locks); these locks only stop a single worker racing itself.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable

logger = logging.getLogger(__name__)


class _LockEntry:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.holders = 0


class KeyedLock:
    """
    A family of asyncio locks addressed by key.

    Entries are dropped once nobody holds or waits on them, so the map
    does not grow with the number of distinct keys ever seen.
    """

    def __init__(self, name: str):
        self.name = name
        self._entries: Dict[Hashable, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _LockEntry()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def is_locked(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        return len(self._entries)


# Shared process-wide lock families
posting_locks = KeyedLock("posting")
capital_locks = KeyedLock("capital")
