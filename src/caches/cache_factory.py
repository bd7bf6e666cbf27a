"""Factory wiring every cache with its collaborators.

Exposes build_services() which constructs the registry, display-name cache,
image cache and memory monitor once, so the server can inject the same
instances everywhere and start/stop their background work together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import config
from caches.disk_store import DiskStore, resolve_cache_directory
from caches.display_names import DisplayNameCache, build_display_name_cache
from caches.image_cache import ImageCache
from clients.blob_client import BlobClient
from clients.origin.client import OriginClient
from core.cache import TTLCache
from core.interfaces import BlobFetcher
from core.memory import CacheSizing, MemoryPressureMonitor, physical_memory_bytes
from core.registry import CacheRegistry
from services.profile_service import ProfileService

logger = logging.getLogger(__name__)


@dataclass
class CacheServices:
    registry: CacheRegistry
    display_names: DisplayNameCache
    images: ImageCache
    profiles: ProfileService
    memory_monitor: MemoryPressureMonitor

    async def start(self) -> None:
        self.registry.start()
        self.display_names.start()
        self.memory_monitor.start()
        await self.images.start()
        logger.info("Cache services started")

    async def stop(self) -> None:
        await self.memory_monitor.stop()
        await self.display_names.stop()
        await self.registry.stop()
        await self.images.flush()
        await self.images.close()
        logger.info("Cache services stopped")


def build_registry() -> CacheRegistry:
    return CacheRegistry(
        users=TTLCache(ttl_seconds=config.USER_CACHE_TTL, capacity=config.USER_CACHE_CAPACITY),
        matches=TTLCache(ttl_seconds=config.MATCH_CACHE_TTL, capacity=config.MATCH_CACHE_CAPACITY),
        stats=TTLCache(ttl_seconds=config.STATS_CACHE_TTL, capacity=config.STATS_CACHE_CAPACITY),
        sweep_interval_seconds=config.REGISTRY_SWEEP_INTERVAL,
    )


def build_image_cache(*, fetcher: Optional[BlobFetcher] = None) -> ImageCache:
    device_memory = physical_memory_bytes()
    sizing = CacheSizing.detect(
        memory_override=config.IMAGE_MEMORY_LIMIT_BYTES,
        disk_override=config.IMAGE_DISK_LIMIT_BYTES,
    )
    disk = DiskStore(
        directory=resolve_cache_directory(config.IMAGE_CACHE_DIR),
        max_bytes=sizing.disk_bytes,
        max_age_seconds=config.IMAGE_MAX_AGE_SECONDS,
    )
    return ImageCache(
        fetcher=fetcher or BlobClient(timeout=config.IMAGE_FETCH_TIMEOUT, verify=config.HTTP_VERIFY),
        disk=disk,
        sizing=sizing,
        max_concurrent_fetches=config.IMAGE_MAX_CONCURRENT_FETCHES,
        device_memory_bytes=device_memory,
    )


def build_services(
    *,
    origin: Optional[OriginClient] = None,
    fetcher: Optional[BlobFetcher] = None,
) -> CacheServices:
    origin_client = origin or OriginClient(
        base_url=config.ORIGIN_BASE_URL,
        timeout=config.ORIGIN_TIMEOUT,
        verify=config.HTTP_VERIFY,
        max_concurrency=config.ORIGIN_MAX_CONCURRENCY,
        batch_limit=config.ORIGIN_BATCH_LIMIT,
    )
    registry = build_registry()
    images = build_image_cache(fetcher=fetcher)

    monitor = MemoryPressureMonitor(
        low_available_percent=config.MEMORY_LOW_AVAILABLE_PERCENT,
        interval_seconds=config.MEMORY_MONITOR_INTERVAL,
    )
    monitor.subscribe(images.handle_memory_warning)

    return CacheServices(
        registry=registry,
        display_names=build_display_name_cache(
            origin_client,
            ttl_seconds=config.DISPLAY_NAME_TTL,
            capacity=config.DISPLAY_NAME_CAPACITY,
            sweep_interval_seconds=config.DISPLAY_NAME_SWEEP_INTERVAL,
        ),
        images=images,
        profiles=ProfileService(registry=registry, origin=origin_client),
        memory_monitor=monitor,
    )
