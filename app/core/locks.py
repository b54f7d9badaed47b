"""
Per-pair serialization for interest transitions.

Express and respond calls on the same unordered user pair must run their
read-check-write sequence one at a time, otherwise two concurrent calls could
both observe "no reverse interest yet" and create two pending rows. Locks are
keyed by the unordered pair so A→B and B→A share one lock.

The registry covers one API process. Across processes on Postgres the same
unordered pair is also guarded by a transaction-scoped advisory lock keyed by
``pair_lock_key`` (see InterestRepository.lock_pair), held until commit.
Other dialects have no advisory locks, so there a single API worker is
required.
"""

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Tuple
from uuid import UUID
import asyncio
import hashlib


class PairLockRegistry:
    """Hands out one asyncio.Lock per unordered user pair."""

    def __init__(self):
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._waiters: Dict[Tuple[str, str], int] = {}

    @staticmethod
    def pair_key(user_a: UUID, user_b: UUID) -> Tuple[str, str]:
        a, b = str(user_a), str(user_b)
        return (a, b) if a <= b else (b, a)

    @asynccontextmanager
    async def hold(self, user_a: UUID, user_b: UUID) -> AsyncIterator[None]:
        key = self.pair_key(user_a, user_b)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            # Drop idle locks so the registry does not grow with every pair seen
            if self._waiters[key] == 0:
                del self._waiters[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


pair_locks = PairLockRegistry()


def pair_lock_key(user_a: UUID, user_b: UUID) -> int:
    """Signed 64-bit advisory lock key for the unordered pair."""
    a, b = PairLockRegistry.pair_key(user_a, user_b)
    digest = hashlib.blake2b(f"{a}:{b}".encode(), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)
