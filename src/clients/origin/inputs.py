from __future__ import annotations

import re
from typing import Iterable, List

from core.errors import ValidationError


# Document ids: no path separators or whitespace, bounded length
_ID_RE = re.compile(r"^[A-Za-z0-9_\-.:@]{1,128}$")


def normalize_id(entity_id: str, *, field: str = "id") -> str:
    raw = (entity_id or "").strip()
    if not raw:
        raise ValidationError(f"{field} must be non-empty")
    if not _ID_RE.match(raw):
        raise ValidationError(f"Invalid {field}: {entity_id!r}")
    return raw


def normalize_ids(entity_ids: Iterable[str]) -> List[str]:
    # Keep first-seen order, drop duplicates
    return list(dict.fromkeys(normalize_id(i) for i in entity_ids))


def normalize_batch_limit(limit: int) -> int:
    n = int(limit)
    if n <= 0:
        raise ValidationError("batch_limit must be positive")
    return n


def chunk_ids(ids: List[str], size: int) -> List[List[str]]:
    step = normalize_batch_limit(size)
    return [ids[i : i + step] for i in range(0, len(ids), step)]
