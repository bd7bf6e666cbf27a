from __future__ import annotations


class CacheServiceError(Exception):
    """Base error for the cache service."""


class ValidationError(CacheServiceError):
    """Raised when user input is invalid."""


class AccessDeniedError(CacheServiceError):
    """Raised when the origin refuses access to a resource."""


class NotFoundError(CacheServiceError):
    """Raised when a requested resource is not found."""


class ExternalServiceError(CacheServiceError):
    """Raised when an external service (origin store / blob host) fails."""


class TransientServiceError(ExternalServiceError):
    """External failure that may succeed on retry (timeouts, unavailable)."""


class OfflineError(ExternalServiceError):
    """Raised when the host has no network connectivity at all."""


class DecodeError(ExternalServiceError):
    """Raised when a fetched or cached payload cannot be decoded."""
