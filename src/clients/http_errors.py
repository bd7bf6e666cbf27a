"""Translate httpx failures into the project's error taxonomy.

Status codes and transport errors are mapped once here so every client
raises errors that RetryPolicy can classify: transient failures become
TransientServiceError, "no network at all" becomes OfflineError.
"""

from __future__ import annotations

import httpx

from core.errors import (
    AccessDeniedError,
    ExternalServiceError,
    NotFoundError,
    OfflineError,
    TransientServiceError,
    ValidationError,
)
from core.retry import RETRYABLE_STATUS_CODES, is_offline


def raise_for_status(resp: httpx.Response, *, context: str) -> None:
    code = resp.status_code
    if code < 400:
        return

    msg = f"{context} returned HTTP {code}"
    if code == 404:
        raise NotFoundError(msg)
    if code in (401, 403):
        raise AccessDeniedError(msg)
    if code in (400, 422):
        raise ValidationError(msg)
    if code in RETRYABLE_STATUS_CODES:
        raise TransientServiceError(msg)
    raise ExternalServiceError(msg)


def translate_transport_error(err: httpx.HTTPError, *, context: str) -> ExternalServiceError:
    if is_offline(err):
        return OfflineError(f"{context}: no network connection ({err})")
    if isinstance(err, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return TransientServiceError(f"{context}: {err}")
    return ExternalServiceError(f"{context}: {err}")
