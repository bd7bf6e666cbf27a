"""In-flight request de-duplication.

Concurrent callers asking for the same key share one underlying task. The key
leaves the table exactly once, when that task finishes (success, failure or
cancellation). A caller that gives up does not cancel a task other callers
still await; the task is cancelled only when its last awaiter leaves.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class SingleFlight(Generic[K, V]):
    def __init__(self) -> None:
        self._pending: Dict[K, "asyncio.Task[V]"] = {}
        self._waiters: Dict[K, int] = {}

    def in_flight(self, key: K) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    async def run(self, key: K, factory: Callable[[], Awaitable[V]]) -> V:
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            self._waiters[key] = 0
            task.add_done_callback(lambda t, k=key: self._finish(k, t))
        else:
            logger.debug("Joining in-flight request for %s", key)

        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            # shield: one awaiter being cancelled must not cancel the shared task
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done() and self._leave(key, task) == 0:
                logger.debug("Last awaiter left; cancelling in-flight request for %s", key)
                task.cancel()
            raise

    def _leave(self, key: K, task: "asyncio.Task[V]") -> int:
        if self._pending.get(key) is not task:
            return 0
        remaining = max(0, self._waiters.get(key, 0) - 1)
        self._waiters[key] = remaining
        return remaining

    def _finish(self, key: K, task: "asyncio.Task[V]") -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
            self._waiters.pop(key, None)
        # Mark the exception as retrieved when nobody is left to await it
        if not task.cancelled():
            task.exception()
