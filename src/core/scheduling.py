"""
Priority-tiered admission for concurrent fetches.

At most `max_concurrency` holders run at once; when slots free up, waiters are
admitted lowest priority value first (IMMEDIATE before LOW), FIFO within a
tier. Slot bookkeeping happens on the event loop, so no lock is needed.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from contextlib import asynccontextmanager
from enum import IntEnum
from typing import AsyncIterator, List, Tuple


class FetchPriority(IntEnum):
    IMMEDIATE = 0
    HIGH = 1
    NORMAL = 2
    LOW = 3

    @classmethod
    def parse(cls, value: "str | int | FetchPriority") -> "FetchPriority":
        if isinstance(value, FetchPriority):
            return value
        if isinstance(value, int):
            return cls(value)
        return cls[str(value).strip().upper()]


class PriorityGate:
    def __init__(self, *, max_concurrency: int) -> None:
        self._limit = max(1, int(max_concurrency))
        self._active = 0
        self._seq = itertools.count()
        self._waiters: List[Tuple[int, int, "asyncio.Future[None]"]] = []

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return sum(1 for _, _, f in self._waiters if not f.done())

    async def acquire(self, priority: FetchPriority = FetchPriority.NORMAL) -> None:
        # Fast path only when nobody is queued, so queued waiters keep their turn
        if self._active < self._limit and self.waiting == 0:
            self._active += 1
            return

        fut: "asyncio.Future[None]" = asyncio.get_running_loop().create_future()
        heapq.heappush(self._waiters, (int(priority), next(self._seq), fut))
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # Slot was granted just before the cancellation landed
                self.release()
            else:
                fut.cancel()
            raise

    def release(self) -> None:
        self._active = max(0, self._active - 1)
        self._wake()

    @asynccontextmanager
    async def slot(self, priority: FetchPriority = FetchPriority.NORMAL) -> AsyncIterator[None]:
        await self.acquire(priority)
        try:
            yield
        finally:
            self.release()

    def _wake(self) -> None:
        while self._waiters and self._active < self._limit:
            _, _, fut = heapq.heappop(self._waiters)
            if fut.done():
                continue  # cancelled waiter
            self._active += 1
            fut.set_result(None)
