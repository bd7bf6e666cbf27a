import os

import pytest

import caches.disk_store as disk_mod
from caches.disk_store import DiskStore, key_filename, resolve_cache_directory


def _store(tmp_path, max_bytes=1000, max_age=3600):
    return DiskStore(directory=tmp_path / "images", max_bytes=max_bytes, max_age_seconds=max_age)


def _put(store, key, size, mtime):
    path = store.path_for(key)
    path.write_bytes(b"x" * size)
    os.utime(path, (mtime, mtime))
    return path


def test_files_are_named_by_sha256_of_key(tmp_path):
    store = _store(tmp_path)

    assert store.write("https://cdn.example/a.png", b"abc")

    expected = key_filename("https://cdn.example/a.png")
    assert len(expected) == 64
    assert (store.directory / expected).read_bytes() == b"abc"
    assert store.contains("https://cdn.example/a.png")
    assert not store.contains("https://cdn.example/b.png")


def test_read_missing_returns_none(tmp_path):
    assert _store(tmp_path).read("nope") is None


def test_read_refreshes_access_time(tmp_path):
    store = _store(tmp_path)
    path = _put(store, "k", 10, mtime=1000)

    assert store.read("k") == b"x" * 10
    assert path.stat().st_mtime > 1000


def test_eviction_removes_oldest_until_eighty_percent(tmp_path):
    store = _store(tmp_path, max_bytes=100)
    a = _put(store, "a", 50, mtime=1000)
    b = _put(store, "b", 40, mtime=2000)
    c = _put(store, "c", 40, mtime=3000)

    removed = store.evict_if_needed()

    assert removed == 1
    assert not a.exists()
    assert b.exists() and c.exists()
    assert store.total_size() == 80


def test_eviction_noop_under_ceiling(tmp_path):
    store = _store(tmp_path, max_bytes=100)
    _put(store, "a", 60, mtime=1000)

    assert store.evict_if_needed() == 0
    assert store.item_count() == 1


def test_write_triggers_eviction_of_least_recently_used(tmp_path):
    store = _store(tmp_path, max_bytes=100)
    _put(store, "old", 60, mtime=1000)

    store.write("new", b"y" * 60)

    assert not store.contains("old")
    assert store.read("new") == b"y" * 60
    assert store.total_size() <= 80


def test_write_leaves_no_temp_files(tmp_path):
    store = _store(tmp_path)
    store.write("k", b"data")
    store.write("k", b"data2")

    names = os.listdir(store.directory)
    assert names == [key_filename("k")]
    assert store.read("k") == b"data2"


def test_sweep_expired_removes_only_old_files(tmp_path):
    store = _store(tmp_path, max_age=7 * 24 * 3600)
    now = 10_000_000.0
    _put(store, "stale", 10, mtime=now - 8 * 24 * 3600)
    _put(store, "fresh", 10, mtime=now - 24 * 3600)

    assert store.sweep_expired(now=now) == 1
    assert not store.contains("stale")
    assert store.contains("fresh")


def test_remove_and_clear(tmp_path):
    store = _store(tmp_path)
    store.write("a", b"1")
    store.write("b", b"2")

    store.remove("a")
    store.remove("a")
    assert not store.contains("a")

    assert store.clear() == 1
    assert store.item_count() == 0
    assert store.total_size() == 0


def test_resolve_cache_directory_uses_configured_path(tmp_path):
    out = resolve_cache_directory(str(tmp_path / "custom"))

    assert out == (tmp_path / "custom").resolve()
    assert out.is_dir()


def test_resolve_cache_directory_defaults_under_xdg_cache_home(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))

    out = resolve_cache_directory()

    assert out == (tmp_path / "profile-cache" / "images").resolve()


def test_resolve_cache_directory_falls_back_to_temp(tmp_path, monkeypatch):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file")
    monkeypatch.setattr(disk_mod.tempfile, "gettempdir", lambda: str(tmp_path / "tmp"))

    out = resolve_cache_directory(str(blocker / "images"))

    assert out == (tmp_path / "tmp" / "profile-cache" / "images").resolve()
    assert out.is_dir()


def test_triggering_write_brings_usage_to_eighty_percent(tmp_path):
    store = _store(tmp_path, max_bytes=100)
    oldest = _put(store, "oldest", 50, mtime=1000)
    middle = _put(store, "middle", 40, mtime=2000)

    assert store.write("newest", b"z" * 40)

    assert store.total_size() <= 80
    assert not oldest.exists()
    assert middle.exists()
    assert store.contains("newest")


def test_module_is_documented():
    assert disk_mod.__doc__.startswith("Flat, content-addressed disk tier")
