import pytest

import config
from caches.cache_factory import build_registry, build_services

from fakes import FakeBlobFetcher, sample_origin


def test_build_registry_uses_configured_policies(monkeypatch):
    monkeypatch.setattr(config, "USER_CACHE_TTL", 42.0)
    monkeypatch.setattr(config, "STATS_CACHE_CAPACITY", 7)

    registry = build_registry()

    assert registry.users.ttl_seconds == 42.0
    assert registry.stats.capacity == 7
    assert registry.matches.ttl_seconds == config.MATCH_CACHE_TTL


@pytest.fixture
def services(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "IMAGE_CACHE_DIR", str(tmp_path / "images"))
    monkeypatch.setattr(config, "IMAGE_MEMORY_LIMIT_BYTES", 4096)
    monkeypatch.setattr(config, "IMAGE_DISK_LIMIT_BYTES", 8192)
    return build_services(origin=sample_origin(), fetcher=FakeBlobFetcher())


def test_build_services_wires_shared_instances(services, tmp_path):
    stats = services.images.statistics()

    assert stats.max_memory_bytes == 4096
    assert stats.max_disk_bytes == 8192
    assert stats.device_memory_gb is not None and stats.device_memory_gb > 0
    assert services.display_names.name == "display-name"
    assert services.images._disk.directory == (tmp_path / "images").resolve()


def test_memory_monitor_notifies_image_cache(services):
    services.memory_monitor.notify()

    assert services.images.under_memory_pressure
    assert services.images.memory_warning_count == 1


@pytest.mark.asyncio
async def test_services_start_and_stop_background_work(services):
    await services.start()
    assert services.registry.sweeping
    assert services.memory_monitor._task.running

    await services.stop()
    assert not services.registry.sweeping
    assert not services.memory_monitor._task.running
