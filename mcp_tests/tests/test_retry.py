import asyncio
import errno

import httpx
import pytest

import core.retry as retry_mod
from core.errors import (
    AccessDeniedError,
    DecodeError,
    NotFoundError,
    OfflineError,
    TransientServiceError,
    ValidationError,
)
from core.retry import RetryConfig, RetryPolicy, is_retryable


@pytest.fixture
def sleeps(monkeypatch):
    calls = []

    async def fake_sleep(seconds: float):
        calls.append(seconds)

    monkeypatch.setattr(retry_mod.asyncio, "sleep", fake_sleep)
    return calls


def _flaky(failures, result="ok"):
    state = {"calls": 0}

    async def op():
        state["calls"] += 1
        if state["calls"] <= len(failures):
            raise failures[state["calls"] - 1]
        return result

    return op, state


def test_presets():
    assert RetryConfig.DEFAULT == RetryConfig(3, 1.0, 10.0, 2.0)
    assert RetryConfig.AGGRESSIVE == RetryConfig(5, 0.5, 15.0, 2.0)
    assert RetryConfig.CONSERVATIVE == RetryConfig(2, 2.0, 5.0, 1.5)
    assert RetryPolicy.network().config is RetryConfig.AGGRESSIVE
    assert RetryPolicy.database().config is RetryConfig.DEFAULT
    assert RetryPolicy.upload().config is RetryConfig.CONSERVATIVE


@pytest.mark.asyncio
async def test_retry_succeeds_on_third_attempt_within_backoff_bounds(sleeps):
    op, state = _flaky([httpx.ReadTimeout("t1"), httpx.ReadTimeout("t2")])

    out = await RetryPolicy().run(op)

    assert out == "ok"
    assert state["calls"] == 3
    assert len(sleeps) == 2

    cfg = RetryConfig.DEFAULT
    low = cfg.initial_delay * 0.8 + cfg.initial_delay * cfg.multiplier * 0.8
    high = cfg.initial_delay * 1.2 + min(cfg.initial_delay * cfg.multiplier, cfg.max_delay) * 1.2
    assert low <= sum(sleeps) <= high


@pytest.mark.asyncio
async def test_retry_non_retryable_raises_immediately(sleeps):
    err = ValidationError("bad input")
    op, state = _flaky([err])

    with pytest.raises(ValidationError) as exc:
        await RetryPolicy().run(op)

    assert exc.value is err
    assert state["calls"] == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_retry_exhausted_reraises_last_error_unchanged(sleeps):
    errors = [TransientServiceError("a"), TransientServiceError("b"), TransientServiceError("c")]
    op, state = _flaky(errors)

    with pytest.raises(TransientServiceError) as exc:
        await RetryPolicy().run(op)

    assert exc.value is errors[-1]
    assert state["calls"] == 3
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_retry_delay_is_capped_at_max_delay(monkeypatch, sleeps):
    monkeypatch.setattr(retry_mod.random, "uniform", lambda a, b: b)
    cfg = RetryConfig(max_attempts=4, initial_delay=4.0, max_delay=5.0, multiplier=3.0)
    op, _ = _flaky([ConnectionError()] * 3)

    await RetryPolicy(cfg).run(op)

    assert sleeps == [pytest.approx(4.8), 5.0, 5.0]


@pytest.mark.asyncio
async def test_retry_cancellation_during_backoff_stops_retrying(monkeypatch):
    started = asyncio.Event()
    real_sleep = asyncio.sleep

    async def slow_sleep(seconds: float):
        started.set()
        await real_sleep(3600)

    monkeypatch.setattr(retry_mod.asyncio, "sleep", slow_sleep)
    op, state = _flaky([TimeoutError()] * 5)

    task = asyncio.ensure_future(RetryPolicy(RetryConfig.AGGRESSIVE).run(op))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert state["calls"] == 1


def _status_error(code: int) -> httpx.HTTPStatusError:
    req = httpx.Request("GET", "https://example.test/x")
    return httpx.HTTPStatusError("boom", request=req, response=httpx.Response(code, request=req))


@pytest.mark.parametrize(
    "err",
    [
        TransientServiceError("unavailable"),
        httpx.ConnectTimeout("slow"),
        httpx.ConnectError("[Errno -2] Name or service not known"),
        httpx.RemoteProtocolError("connection lost"),
        TimeoutError(),
        ConnectionResetError(),
        _status_error(503),
        _status_error(429),
    ],
)
def test_is_retryable_true(err):
    assert is_retryable(err) is True


def _offline_connect_error() -> httpx.ConnectError:
    try:
        try:
            raise OSError(errno.ENETUNREACH, "Network is unreachable")
        except OSError as e:
            raise httpx.ConnectError("unreachable") from e
    except httpx.ConnectError as wrapped:
        return wrapped


@pytest.mark.parametrize(
    "err",
    [
        OfflineError("no internet"),
        _offline_connect_error(),
        AccessDeniedError("denied"),
        ValidationError("bad"),
        NotFoundError("missing"),
        DecodeError("garbage"),
        _status_error(404),
        _status_error(403),
        ValueError("other"),
    ],
)
def test_is_retryable_false(err):
    assert is_retryable(err) is False
