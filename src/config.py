"""Configuration and environment helpers for the project.

Provides small helpers to read typed environment variables and exposes
project-level configuration constants used across the codebase (origin
store endpoint, image cache limits, per-cache TTLs and sweep intervals).
"""

from __future__ import annotations

import os
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_optional_int(name: str) -> Optional[int]:
    # Unset or unparsable means "let the cache pick adaptively"
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"

# Network / HTTP
HTTP_VERIFY = _env_bool("HTTP_VERIFY", True)

# Origin document store
ORIGIN_BASE_URL = os.environ.get("ORIGIN_BASE_URL", "http://localhost:8080/v1").strip()
ORIGIN_TIMEOUT = _env_float("ORIGIN_TIMEOUT", 15.0)
ORIGIN_MAX_CONCURRENCY = _env_int("ORIGIN_MAX_CONCURRENCY", 5)
ORIGIN_BATCH_LIMIT = _env_int("ORIGIN_BATCH_LIMIT", 30)

# Entity caches (seconds / entries)
USER_CACHE_TTL = _env_float("USER_CACHE_TTL", 300.0)
USER_CACHE_CAPACITY = _env_int("USER_CACHE_CAPACITY", 100)
MATCH_CACHE_TTL = _env_float("MATCH_CACHE_TTL", 180.0)
MATCH_CACHE_CAPACITY = _env_int("MATCH_CACHE_CAPACITY", 50)
STATS_CACHE_TTL = _env_float("STATS_CACHE_TTL", 60.0)
STATS_CACHE_CAPACITY = _env_int("STATS_CACHE_CAPACITY", 20)
REGISTRY_SWEEP_INTERVAL = _env_float("REGISTRY_SWEEP_INTERVAL", 300.0)

# Display-name cache
DISPLAY_NAME_TTL = _env_float("DISPLAY_NAME_TTL", 300.0)
DISPLAY_NAME_CAPACITY = _env_int("DISPLAY_NAME_CAPACITY", 500)
DISPLAY_NAME_SWEEP_INTERVAL = _env_float("DISPLAY_NAME_SWEEP_INTERVAL", 600.0)

# Image cache
IMAGE_CACHE_DIR = os.environ.get("IMAGE_CACHE_DIR", "").strip()
IMAGE_FETCH_TIMEOUT = _env_float("IMAGE_FETCH_TIMEOUT", 30.0)
IMAGE_MAX_CONCURRENT_FETCHES = _env_int("IMAGE_MAX_CONCURRENT_FETCHES", 4)
IMAGE_MEMORY_LIMIT_BYTES = _env_optional_int("IMAGE_MEMORY_LIMIT_BYTES")
IMAGE_DISK_LIMIT_BYTES = _env_optional_int("IMAGE_DISK_LIMIT_BYTES")
IMAGE_MAX_AGE_SECONDS = _env_float("IMAGE_MAX_AGE_SECONDS", 7 * 24 * 60 * 60)

# Host memory signal
MEMORY_MONITOR_INTERVAL = _env_float("MEMORY_MONITOR_INTERVAL", 30.0)
MEMORY_LOW_AVAILABLE_PERCENT = _env_float("MEMORY_LOW_AVAILABLE_PERCENT", 10.0)
