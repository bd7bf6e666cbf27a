"""Retry with jittered exponential backoff.

Wraps a fallible async operation: errors classified as retryable are retried
after min(current_delay * U(0.8, 1.2), max_delay); anything else propagates
immediately. The last error is re-raised unchanged once attempts run out.
Cancellation during a backoff sleep abandons the operation.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, ClassVar, Optional, TypeVar

import httpx

from core.errors import (
    AccessDeniedError,
    DecodeError,
    NotFoundError,
    OfflineError,
    TransientServiceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
_OFFLINE_ERRNOS = frozenset({errno.ENETUNREACH, errno.ENETDOWN})


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int
    initial_delay: float
    max_delay: float
    multiplier: float

    DEFAULT: ClassVar["RetryConfig"]
    AGGRESSIVE: ClassVar["RetryConfig"]
    CONSERVATIVE: ClassVar["RetryConfig"]


RetryConfig.DEFAULT = RetryConfig(max_attempts=3, initial_delay=1.0, max_delay=10.0, multiplier=2.0)
RetryConfig.AGGRESSIVE = RetryConfig(max_attempts=5, initial_delay=0.5, max_delay=15.0, multiplier=2.0)
RetryConfig.CONSERVATIVE = RetryConfig(max_attempts=2, initial_delay=2.0, max_delay=5.0, multiplier=1.5)


def is_offline(err: BaseException) -> bool:
    """True when the error chain shows the host has no route to any network."""
    seen = set()
    cur: Optional[BaseException] = err
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        if isinstance(cur, OfflineError):
            return True
        if isinstance(cur, OSError) and cur.errno in _OFFLINE_ERRNOS:
            return True
        cur = cur.__cause__ or cur.__context__
    return False


def is_retryable(err: BaseException) -> bool:
    # Terminal classes first: "no internet" must win over the connect error wrapping it
    if isinstance(err, (OfflineError, AccessDeniedError, ValidationError, NotFoundError, DecodeError)):
        return False
    if is_offline(err):
        return False

    if isinstance(err, TransientServiceError):
        return True

    if isinstance(err, httpx.HTTPStatusError):
        return err.response.status_code in RETRYABLE_STATUS_CODES

    # Timeouts, connect/DNS failures, dropped connections
    if isinstance(err, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True

    return isinstance(err, (TimeoutError, ConnectionError))


class RetryPolicy:
    def __init__(
        self,
        config: RetryConfig = RetryConfig.DEFAULT,
        *,
        classifier: Callable[[BaseException], bool] = is_retryable,
    ) -> None:
        self._config = config
        self._classifier = classifier

    @property
    def config(self) -> RetryConfig:
        return self._config

    @classmethod
    def network(cls) -> "RetryPolicy":
        return cls(RetryConfig.AGGRESSIVE)

    @classmethod
    def database(cls) -> "RetryPolicy":
        return cls(RetryConfig.DEFAULT)

    @classmethod
    def upload(cls) -> "RetryPolicy":
        return cls(RetryConfig.CONSERVATIVE)

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        cfg = self._config
        attempts = max(1, int(cfg.max_attempts))
        current_delay = float(cfg.initial_delay)

        for attempt in range(1, attempts + 1):
            try:
                result = await operation()
            except Exception as e:
                if not self._classifier(e):
                    logger.debug("Non-retryable error on attempt %d: %r", attempt, e)
                    raise

                if attempt == attempts:
                    logger.error("All %d attempts failed: %r", attempts, e)
                    raise

                delay = min(current_delay * random.uniform(0.8, 1.2), cfg.max_delay)
                logger.warning("Attempt %d failed (%r). Retrying in %.1fs", attempt, e, delay)

                # CancelledError raised here abandons the remaining attempts
                await asyncio.sleep(delay)
                current_delay = min(current_delay * cfg.multiplier, cfg.max_delay)
                continue

            if attempt > 1:
                logger.info("Operation succeeded on attempt %d", attempt)
            return result

        raise RuntimeError("Unreachable: RetryPolicy.run did not return")
