"""
Periodic background work.

A single cancellable asyncio task that calls a function on a fixed interval
until stopped. Owners start it once and stop it explicitly at shutdown.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

TickFn = Callable[[], Union[None, Awaitable[None], object]]


class PeriodicTask:
    def __init__(self, *, name: str, interval_seconds: float, func: TickFn) -> None:
        self._name = name
        self._interval = max(0.0, float(interval_seconds))
        self._func = func
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        # One loop per owner: a second start() is a no-op.
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)
        logger.debug("Started periodic task %s (every %.0fs)", self._name, self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Stopped periodic task %s", self._name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                result = self._func()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Periodic task %s failed", self._name)
