"""Two-tier image cache: memory (cost-bounded LRU) over a flat disk store.

Per requested URL:
- memory hit -> served
- disk hit -> promoted to memory -> served
- miss, nothing in flight -> fetched through the priority gate -> served and
  persisted (or failed)
- miss, already in flight -> awaits the running fetch and mirrors its outcome

Memory warnings drop the memory tier and suppress memory writes for a
cooldown; repeated warnings inside a rolling window also purge the disk tier.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, Optional, Set

from caches.disk_store import DiskStore
from core.cache import LRUCostCache
from core.errors import DecodeError
from core.images import CachedImage, decode_image
from core.inflight import SingleFlight
from core.interfaces import BlobFetcher
from core.memory import GIB, CacheSizing
from core.scheduling import FetchPriority, PriorityGate

logger = logging.getLogger(__name__)

PRESSURE_COOLDOWN_SECONDS = 60.0
WARNING_WINDOW_SECONDS = 5 * 60.0
WARNING_DISK_PURGE_THRESHOLD = 2  # more than this many warnings in the window purges disk


@dataclass(frozen=True)
class ImageCacheStatistics:
    disk_bytes: int
    max_disk_bytes: int
    disk_count: int
    memory_count: int
    memory_bytes: int
    max_memory_bytes: int
    under_memory_pressure: bool
    memory_warning_count: int
    in_flight: int
    device_memory_gb: Optional[float] = None

    @property
    def disk_usage_percentage(self) -> float:
        return 100.0 * self.disk_bytes / self.max_disk_bytes if self.max_disk_bytes else 0.0

    @property
    def memory_usage_percentage(self) -> float:
        return 100.0 * self.memory_bytes / self.max_memory_bytes if self.max_memory_bytes else 0.0


class ImageCache:
    """Image cache keyed by URL.

    Purpose:
      - get(key) / set(image, key): synchronous two-tier access, no network.
      - load(url, priority): network-aware, de-duplicated fetch.
      - prefetch(urls): fire-and-forget warming.
      - handle_memory_warning(): host low-memory signal.
    """

    def __init__(
        self,
        *,
        fetcher: BlobFetcher,
        disk: DiskStore,
        sizing: CacheSizing,
        max_concurrent_fetches: int = 4,
        pressure_cooldown_seconds: float = PRESSURE_COOLDOWN_SECONDS,
        warning_window_seconds: float = WARNING_WINDOW_SECONDS,
        device_memory_bytes: Optional[int] = None,
    ) -> None:
        self._fetcher = fetcher
        self._disk = disk
        self._sizing = sizing
        self._memory: LRUCostCache[CachedImage] = LRUCostCache(
            max_cost=sizing.memory_bytes,
            max_count=sizing.max_memory_items,
            cost=lambda img: img.cost,
        )
        self._inflight: SingleFlight[str, CachedImage] = SingleFlight()
        self._gate = PriorityGate(max_concurrency=max_concurrent_fetches)

        self._pressure_cooldown = float(pressure_cooldown_seconds)
        self._warning_window = float(warning_window_seconds)
        self._pressure_until = 0.0
        self._warnings: Deque[float] = deque()
        self._device_memory_bytes = device_memory_bytes

        # Background disk writes and prefetches; held so they are not GC'd mid-flight
        self._background: Set[asyncio.Task] = set()

        logger.info(
            "ImageCache initialized (memory: %d MiB, disk: %d MiB, dir: %s)",
            sizing.memory_bytes // (1024 * 1024),
            disk.max_bytes // (1024 * 1024),
            disk.directory,
        )

    # --- lifecycle ---

    async def start(self) -> int:
        """One-off age-based sweep of the disk tier, run off the event loop."""
        return await asyncio.to_thread(self._disk.sweep_expired)

    async def flush(self) -> None:
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*list(self._background), return_exceptions=True)
        self._background.clear()

    # --- memory pressure ---

    @property
    def under_memory_pressure(self) -> bool:
        return time.monotonic() < self._pressure_until

    @property
    def memory_warning_count(self) -> int:
        self._trim_warnings(time.monotonic())
        return len(self._warnings)

    def handle_memory_warning(self) -> None:
        now = time.monotonic()
        self._trim_warnings(now)
        self._warnings.append(now)
        self._pressure_until = now + self._pressure_cooldown

        logger.warning(
            "Memory warning received (count: %d) - purging image memory cache",
            len(self._warnings),
        )
        self._memory.clear()

        if len(self._warnings) > WARNING_DISK_PURGE_THRESHOLD:
            logger.warning("Multiple memory warnings - clearing disk cache")
            self._disk.clear()
            self._warnings.clear()

    # --- synchronous two-tier access ---

    def get(self, key: str) -> Optional[CachedImage]:
        image = self._memory.get(key)
        if image is not None:
            logger.debug("Memory cache hit: %s", key)
            return image

        data = self._disk.read(key)
        if data is None:
            logger.debug("Cache miss: %s", key)
            return None

        try:
            image = decode_image(data)
        except DecodeError:
            # A corrupt file is a miss; drop it so it is fetched again
            logger.warning("Discarding undecodable disk cache entry for %s", key)
            self._disk.remove(key)
            return None

        logger.debug("Disk cache hit: %s", key)
        self._memory.set(key, image)
        return image

    def set(self, image: CachedImage, key: str) -> None:
        if not self.under_memory_pressure:
            self._memory.set(key, image)
        self._schedule_disk_write(key, image.data)

    def contains(self, key: str) -> bool:
        return key in self._memory or self._disk.contains(key)

    def remove(self, key: str) -> None:
        self._memory.remove(key)
        self._disk.remove(key)

    def clear_all(self) -> None:
        self._memory.clear()
        self._disk.clear()
        logger.info("Cleared all image caches")

    def clear_memory(self) -> None:
        self._memory.clear()

    def in_flight(self, key: str) -> bool:
        return self._inflight.in_flight(key)

    # --- network-aware loading ---

    async def load(
        self,
        url: str,
        priority: FetchPriority = FetchPriority.NORMAL,
        *,
        raise_errors: bool = False,
    ) -> Optional[CachedImage]:
        key = (url or "").strip()
        if not key:
            return None

        cached = self._memory.get(key)
        if cached is not None:
            return cached

        # No await between the memory miss and joining the in-flight table
        try:
            return await self._inflight.run(key, lambda: self._load_uncached(key, priority))
        except Exception as e:
            # Includes raw httpx errors from fetchers that do not translate them
            logger.warning("Failed to load image %s: %r", key, e)
            if raise_errors:
                raise
            return None

    def prefetch(self, urls: Iterable[str], priority: FetchPriority = FetchPriority.LOW) -> int:
        scheduled = 0
        loop = asyncio.get_running_loop()
        for url in dict.fromkeys(u.strip() for u in urls if u and u.strip()):
            # Disk hits are resolved by load() off the event loop
            if url in self._memory or self._inflight.in_flight(url):
                continue
            self._track(loop.create_task(self.load(url, priority)))
            scheduled += 1
        if scheduled:
            logger.debug("Prefetching %d images at %s priority", scheduled, priority.name)
        return scheduled

    def statistics(self) -> ImageCacheStatistics:
        return ImageCacheStatistics(
            disk_bytes=self._disk.total_size(),
            max_disk_bytes=self._disk.max_bytes,
            disk_count=self._disk.item_count(),
            memory_count=len(self._memory),
            memory_bytes=self._memory.total_cost,
            max_memory_bytes=self._memory.max_cost,
            under_memory_pressure=self.under_memory_pressure,
            memory_warning_count=self.memory_warning_count,
            in_flight=len(self._inflight),
            device_memory_gb=(
                self._device_memory_bytes / GIB if self._device_memory_bytes is not None else None
            ),
        )

    # --- internals ---

    async def _load_uncached(self, key: str, priority: FetchPriority) -> CachedImage:
        # Disk read happens in a worker thread
        cached = await asyncio.to_thread(self.get, key)
        if cached is not None:
            return cached
        return await self._fetch(key, priority)

    async def _fetch(self, key: str, priority: FetchPriority) -> CachedImage:
        async with self._gate.slot(priority):
            data = await self._fetcher.fetch(key)
        image = decode_image(data)
        self.set(image, key)
        return image

    def _schedule_disk_write(self, key: str, data: bytes) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._disk.write(key, data)
            return
        self._track(loop.create_task(asyncio.to_thread(self._disk.write, key, data)))

    def _track(self, task: asyncio.Task) -> None:
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _trim_warnings(self, now: float) -> None:
        while self._warnings and now - self._warnings[0] > self._warning_window:
            self._warnings.popleft()
