from types import SimpleNamespace

import pytest

import core.cache as cache_mod
from core.cache import TTLCache
from core.models import MatchRecord, StatsSnapshot, UserRecord
from core.registry import CacheRegistry


def _user(uid="u1"):
    return UserRecord(id=uid, full_name="Ann")


def test_registry_default_policies():
    reg = CacheRegistry()

    assert (reg.users.ttl_seconds, reg.users.capacity) == (300, 100)
    assert (reg.matches.ttl_seconds, reg.matches.capacity) == (180, 50)
    assert (reg.stats.ttl_seconds, reg.stats.capacity) == (60, 20)


def test_registry_keeps_injected_empty_caches():
    users = TTLCache(ttl_seconds=5, capacity=3)
    reg = CacheRegistry(users=users)

    assert reg.users is users


def test_registry_statistics_and_clear_all():
    reg = CacheRegistry()
    reg.users.set("u1", _user("u1"))
    reg.users.set("u2", _user("u2"))
    reg.stats.set("u1", StatsSnapshot(user_id="u1", likes_given=1))

    assert reg.statistics() == {"users": 2, "matches": 0, "stats": 1}

    reg.clear_all()

    assert reg.statistics() == {"users": 0, "matches": 0, "stats": 0}


def test_registry_reset_clears_counters():
    reg = CacheRegistry()
    reg.users.set("u1", _user())
    reg.users.get("u1")
    reg.users.get("missing")

    reg.reset()

    stats = reg.detailed_statistics()["users"]
    assert (stats.size, stats.hits, stats.misses) == (0, 0, 0)


def test_registry_sweep_removes_expired_in_every_cache(monkeypatch, fake_clock):
    monkeypatch.setattr(cache_mod, "time", SimpleNamespace(monotonic=fake_clock))
    reg = CacheRegistry()
    reg.users.set("u1", _user())
    reg.matches.set(
        "m1",
        MatchRecord(id="m1", user1_id="u1", user2_id="u2"),
    )
    reg.stats.set("u1", StatsSnapshot(user_id="u1"))

    fake_clock.now = 61.0
    assert reg.sweep_expired() == {"users": 0, "matches": 0, "stats": 1}

    fake_clock.now = 181.0
    assert reg.sweep_expired() == {"users": 0, "matches": 1, "stats": 0}
    assert reg.statistics() == {"users": 1, "matches": 0, "stats": 0}


@pytest.mark.asyncio
async def test_registry_single_sweep_loop_lifecycle():
    async with CacheRegistry(sweep_interval_seconds=3600) as reg:
        assert reg.sweeping
        first = reg._sweeper._task
        reg.start()
        assert reg._sweeper._task is first

    assert not reg.sweeping
