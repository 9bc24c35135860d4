"""
Exclusive lease over physical transport targets.

A serial modem cannot multiplex commands, so every transaction against a
given device path must hold the lease from endpoint-open to endpoint-close.
One DeviceLease is constructed per process and handed to every
CommandChannel (local callers and the TunnelBridge alike).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class DeviceLease:
    """
    FIFO mutual exclusion keyed by transport target.

    asyncio.Lock hands the lock to waiters in arrival order, which gives
    FIFO acquisition between callers queued on the same target.

    Example:
        lease = DeviceLease()

        async with lease.acquire("/dev/ttyUSB2"):
            ...  # open, transact, close
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiting: dict[str, int] = {}

    def _lock_for(self, target: str) -> asyncio.Lock:
        lock = self._locks.get(target)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[target] = lock
        return lock

    @asynccontextmanager
    async def acquire(self, target: str) -> AsyncIterator[None]:
        """Hold the lease for target until the block exits."""
        lock = self._lock_for(target)

        if lock.locked():
            logger.debug(f"Waiting for lease on {target}")

        self._waiting[target] = self._waiting.get(target, 0) + 1
        try:
            await lock.acquire()
        finally:
            self._waiting[target] -= 1

        try:
            yield
        finally:
            lock.release()

    def is_held(self, target: str) -> bool:
        lock = self._locks.get(target)
        return lock is not None and lock.locked()

    def waiting(self, target: str) -> int:
        """Number of callers queued for target."""
        return self._waiting.get(target, 0)

    def get_stats(self) -> dict[str, dict[str, int | bool]]:
        return {
            target: {"held": lock.locked(), "waiting": self.waiting(target)}
            for target, lock in self._locks.items()
        }
