"""Host memory signals.

Reads total physical memory once for adaptive cache sizing, and turns low
available memory into a "memory warning" delivered to subscribers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import psutil

from core.periodic import PeriodicTask

logger = logging.getLogger(__name__)

MIB = 1024 * 1024
GIB = 1024 * MIB

MemoryWarningHandler = Callable[[], object]


def physical_memory_bytes() -> int:
    return int(psutil.virtual_memory().total)


@dataclass(frozen=True)
class CacheSizing:
    """Memory/disk ceilings for the image cache, picked from host RAM."""

    memory_bytes: int
    disk_bytes: int
    max_memory_items: int = 100

    @classmethod
    def for_memory(cls, total_bytes: int) -> "CacheSizing":
        gb = total_bytes / GIB
        if gb < 2.0:
            # Low-memory devices
            return cls(memory_bytes=30 * MIB, disk_bytes=200 * MIB)
        if gb < 3.0:
            return cls(memory_bytes=50 * MIB, disk_bytes=300 * MIB)
        return cls(memory_bytes=100 * MIB, disk_bytes=500 * MIB)

    @classmethod
    def detect(
        cls,
        *,
        memory_override: Optional[int] = None,
        disk_override: Optional[int] = None,
    ) -> "CacheSizing":
        total = physical_memory_bytes()
        sizing = cls.for_memory(total)
        logger.info(
            "Host memory %.1f GiB -> image cache memory %d MiB, disk %d MiB",
            total / GIB,
            sizing.memory_bytes // MIB,
            sizing.disk_bytes // MIB,
        )
        if memory_override is None and disk_override is None:
            return sizing
        return cls(
            memory_bytes=memory_override if memory_override is not None else sizing.memory_bytes,
            disk_bytes=disk_override if disk_override is not None else sizing.disk_bytes,
            max_memory_items=sizing.max_memory_items,
        )


class MemoryPressureMonitor:
    """Polls available memory and notifies subscribers on low memory.

    Edge-triggered: one warning per transition below the threshold, re-armed
    once available memory recovers.
    """

    def __init__(self, *, low_available_percent: float = 10.0, interval_seconds: float = 30.0) -> None:
        self._threshold = float(low_available_percent)
        self._handlers: List[MemoryWarningHandler] = []
        self._low = False
        self._task = PeriodicTask(
            name="memory-pressure-monitor",
            interval_seconds=interval_seconds,
            func=self.check,
        )

    def subscribe(self, handler: MemoryWarningHandler) -> None:
        self._handlers.append(handler)

    def start(self) -> None:
        self._task.start()

    async def stop(self) -> None:
        await self._task.stop()

    def check(self) -> bool:
        """Sample once; returns True when a warning was delivered."""
        vm = psutil.virtual_memory()
        available_percent = 100.0 * vm.available / vm.total if vm.total else 100.0

        if available_percent >= self._threshold:
            self._low = False
            return False
        if self._low:
            return False

        self._low = True
        logger.warning("Low memory: %.1f%% available", available_percent)
        self.notify()
        return True

    def notify(self) -> None:
        for handler in list(self._handlers):
            try:
                handler()
            except Exception:
                logger.exception("Memory warning handler failed")
