"""Flat, content-addressed disk tier for the image cache.

Every key maps to one file named by the SHA-256 of the key. A file's mtime
is its last-access time (reads touch it). All methods are blocking and meant
to run in a worker thread. I/O failures are logged and ignored; the memory
tier stays authoritative.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

APP_DIR_NAME = "profile-cache"
EVICTION_TARGET_RATIO = 0.8


def resolve_cache_directory(configured: str = "", *, subdir: str = "images") -> Path:
    """Pick the cache directory, falling back to the temp dir if unusable."""
    if configured:
        candidate = Path(configured).expanduser()
    else:
        base = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
        candidate = Path(base) / APP_DIR_NAME / subdir

    try:
        candidate.mkdir(parents=True, exist_ok=True)
        return candidate.resolve()
    except OSError as e:
        fallback = Path(tempfile.gettempdir()) / APP_DIR_NAME / subdir
        logger.warning("Cache directory %s unavailable (%s); using %s", candidate, e, fallback)
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback.resolve()


def key_filename(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


class DiskStore:
    def __init__(self, *, directory: Path, max_bytes: int, max_age_seconds: float) -> None:
        self._dir = Path(directory)
        self._max_bytes = max(0, int(max_bytes))
        self._max_age = float(max_age_seconds)
        self._ensure_dir()

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    def path_for(self, key: str) -> Path:
        return self._dir / key_filename(key)

    def contains(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def read(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Disk cache read failed for %s: %s", path.name, e)
            return None

        # Reads refresh the access time used by eviction
        try:
            os.utime(path, None)
        except OSError:
            pass
        return data

    def write(self, key: str, data: bytes) -> bool:
        path = self.path_for(key)
        try:
            self._ensure_dir()
            # Write to a sibling temp file, then rename: readers never see partial files
            fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=".tmp-")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.warning("Disk cache write failed for %s: %s", path.name, e)
            return False

        self.evict_if_needed()
        return True

    def remove(self, key: str) -> None:
        try:
            self.path_for(key).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Disk cache delete failed: %s", e)

    def clear(self) -> int:
        removed = 0
        for path, _, _ in self._files():
            try:
                path.unlink(missing_ok=True)
                removed += 1
            except OSError as e:
                logger.warning("Disk cache delete failed for %s: %s", path.name, e)
        return removed

    def total_size(self) -> int:
        return sum(size for _, _, size in self._files())

    def item_count(self) -> int:
        return len(self._files())

    def evict_if_needed(self) -> int:
        """Delete least-recently-modified files until usage <= 80% of the ceiling."""
        files = self._files()
        current = sum(size for _, _, size in files)
        if current <= self._max_bytes:
            return 0

        target = int(self._max_bytes * EVICTION_TARGET_RATIO)
        freed = 0
        removed = 0
        for path, _, size in sorted(files, key=lambda f: f[1]):
            if current - freed <= target:
                break
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Disk cache eviction failed for %s: %s", path.name, e)
                continue
            freed += size
            removed += 1

        logger.info("Evicted %d files (%d bytes) from disk cache", removed, freed)
        return removed

    def sweep_expired(self, *, now: Optional[float] = None) -> int:
        cutoff = (time.time() if now is None else now) - self._max_age
        removed = 0
        for path, mtime, _ in self._files():
            if mtime >= cutoff:
                continue
            try:
                path.unlink(missing_ok=True)
                removed += 1
            except OSError as e:
                logger.warning("Disk cache expiry failed for %s: %s", path.name, e)
        if removed:
            logger.info("Removed %d expired files from disk cache", removed)
        return removed

    def _ensure_dir(self) -> None:
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Cannot create disk cache directory %s: %s", self._dir, e)

    def _files(self) -> List[Tuple[Path, float, int]]:
        out: List[Tuple[Path, float, int]] = []
        try:
            entries = list(os.scandir(self._dir))
        except OSError:
            return out
        for entry in entries:
            # Skip in-progress temp files and anything that is not a plain file
            if entry.name.startswith(".") or not entry.is_file(follow_symlinks=False):
                continue
            try:
                st = entry.stat(follow_symlinks=False)
            except OSError:
                continue
            out.append((Path(entry.path), st.st_mtime, st.st_size))
        return out
