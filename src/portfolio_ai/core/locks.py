"""Per-key async locks.

Two disciplines are built on the same registry:

* ``claim(key)``: exclusive and non-blocking.  A second claimant fails
  immediately with ``MessageClaimedError`` (one processing attempt per message).
* ``hold(key)``: serializing.  Callers queue up and run one at a time
  (single writer per artefact).

Lock objects are dropped once no holder or waiter references them, so the
registry does not grow with every id ever seen.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from portfolio_ai.exceptions import MessageClaimedError


class KeyedLocks:
    """Registry of ``asyncio.Lock`` objects keyed by string id."""

    def __init__(self, name: str = "lock") -> None:
        self._name = name
        self._locks: dict[str, asyncio.Lock] = {}
        self._refs: dict[str, int] = {}

    def _acquire_ref(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._refs[key] = self._refs.get(key, 0) + 1
        return lock

    def _release_ref(self, key: str) -> None:
        remaining = self._refs.get(key, 1) - 1
        if remaining <= 0:
            self._refs.pop(key, None)
            self._locks.pop(key, None)
        else:
            self._refs[key] = remaining

    def is_held(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Wait for and hold the lock for ``key``."""
        lock = self._acquire_ref(key)
        try:
            async with lock:
                yield
        finally:
            self._release_ref(key)

    @asynccontextmanager
    async def claim(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key`` or fail at once if someone else has it."""
        lock = self._acquire_ref(key)
        if lock.locked():
            self._release_ref(key)
            raise MessageClaimedError(f"{self._name} {key!r} is already claimed")
        try:
            async with lock:
                yield
        finally:
            self._release_ref(key)

    def __len__(self) -> int:
        return len(self._locks)
