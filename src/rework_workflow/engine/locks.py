"""Keyed asyncio locks serializing writers per workflow instance or order."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field

__all__ = ["InstanceLocks"]


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class InstanceLocks:
    """Registry of per-key locks for single-writer serialization.

    Locks are created on first use and dropped when the last holder or waiter
    releases them. Serialization only covers the current process; writers in
    other processes are kept out by the compare-and-swap status update.

    Example:
        >>> locks = InstanceLocks()
        >>> async with locks.hold(("instance", instance_id)):
        ...     ...
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block.

        Args:
            key: Any hashable key, e.g. ``("instance", instance_id)``.
        """
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _LockEntry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    def instance(self, instance_id: Hashable) -> AbstractAsyncContextManager[None]:
        """Hold the lock of a workflow instance."""
        return self.hold(("instance", instance_id))

    def order(self, order_id: Hashable) -> AbstractAsyncContextManager[None]:
        """Hold the lock of a service order."""
        return self.hold(("order", order_id))

    def __len__(self) -> int:
        return len(self._entries)
