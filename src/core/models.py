"""Immutable typed records stored in the caches.

Origin documents are decoded once, at the fetch boundary, into these
dataclasses; caches never hold untyped mappings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Tuple

from core.errors import DecodeError


def _require_str(doc: Mapping[str, Any], key: str) -> str:
    value = doc.get(key)
    if not isinstance(value, str) or not value.strip():
        raise DecodeError(f"Missing or invalid field: {key}")
    return value.strip()


def _int(doc: Mapping[str, Any], key: str, default: int = 0) -> int:
    value = doc.get(key, default)
    if isinstance(value, bool):
        raise DecodeError(f"Invalid integer field: {key}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Invalid integer field: {key}") from e


def _str_tuple(doc: Mapping[str, Any], key: str) -> Tuple[str, ...]:
    raw = doc.get(key) or []
    if not isinstance(raw, (list, tuple)):
        raise DecodeError(f"Invalid list field: {key}")
    return tuple(str(v) for v in raw if isinstance(v, str) and v)


def _timestamp(doc: Mapping[str, Any], key: str) -> Optional[datetime]:
    raw = doc.get(key)
    if raw is None:
        return None
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return datetime.fromtimestamp(float(raw), tz=timezone.utc)
    if isinstance(raw, str):
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as e:
            raise DecodeError(f"Invalid timestamp field: {key}") from e
    raise DecodeError(f"Invalid timestamp field: {key}")


@dataclass(frozen=True)
class UserRecord:
    """Profile projection of a user document.

    Field groups:
    - Identity: id, full_name
    - Profile: age, location, bio, photos, profile_image_url
    - Flags: is_verified, is_premium
    """

    id: str
    full_name: str

    age: int = 0
    location: str = ""
    bio: str = ""
    photos: Tuple[str, ...] = field(default_factory=tuple)
    profile_image_url: str = ""

    is_verified: bool = False
    is_premium: bool = False

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], *, doc_id: Optional[str] = None) -> "UserRecord":
        user_id = doc_id or _require_str(doc, "id")
        return cls(
            id=user_id,
            full_name=_require_str(doc, "fullName"),
            age=_int(doc, "age"),
            location=str(doc.get("location") or ""),
            bio=str(doc.get("bio") or ""),
            photos=_str_tuple(doc, "photos"),
            profile_image_url=str(doc.get("profileImageURL") or ""),
            is_verified=bool(doc.get("isVerified", False)),
            is_premium=bool(doc.get("isPremium", False)),
        )


@dataclass(frozen=True)
class MatchRecord:
    id: str
    user1_id: str
    user2_id: str
    matched_at: Optional[datetime] = None
    last_message: str = ""
    is_active: bool = True

    def other_user(self, user_id: str) -> str:
        return self.user2_id if user_id == self.user1_id else self.user1_id

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], *, doc_id: Optional[str] = None) -> "MatchRecord":
        return cls(
            id=doc_id or _require_str(doc, "id"),
            user1_id=_require_str(doc, "user1Id"),
            user2_id=_require_str(doc, "user2Id"),
            matched_at=_timestamp(doc, "timestamp"),
            last_message=str(doc.get("lastMessage") or ""),
            is_active=bool(doc.get("isActive", True)),
        )


@dataclass(frozen=True)
class StatsSnapshot:
    # Short-lived counters; cached for a minute at most
    user_id: str
    likes_given: int = 0
    likes_received: int = 0
    match_count: int = 0
    profile_views: int = 0

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], *, user_id: Optional[str] = None) -> "StatsSnapshot":
        return cls(
            user_id=user_id or _require_str(doc, "userId"),
            likes_given=_int(doc, "likesGiven"),
            likes_received=_int(doc, "likesReceived"),
            match_count=_int(doc, "matchCount"),
            profile_views=_int(doc, "profileViews"),
        )
