from __future__ import annotations

import asyncio
import random

import pytest

from pynvmeofgw._retry import Backoff, retry_until_success, wait_or_shutdown
from pynvmeofgw.exceptions import GwRejectedError, GwRetryExhaustedError, GwShutdownError


class _FlakyCall:
    """Fails ``failures`` times, then succeeds."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        return self.calls > self.failures


def _no_wait() -> Backoff:
    return Backoff(initial_delay=0.0, max_delay=0.0, jitter=0.0)


def test_backoff_grows_to_cap_and_resets() -> None:
    backoff = Backoff(initial_delay=1.0, max_delay=5.0, factor=2.0, jitter=0.0)

    assert [backoff.next_delay() for _ in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]
    backoff.reset()
    assert backoff.next_delay() == 1.0


def test_backoff_jitter_stays_in_band() -> None:
    backoff = Backoff(initial_delay=1.0, max_delay=1.0, jitter=0.2, rng=random.Random(42))

    delays = [backoff.next_delay() for _ in range(50)]
    assert all(0.8 <= delay <= 1.2 for delay in delays)
    assert len(set(delays)) > 1


@pytest.mark.asyncio
async def test_retry_returns_attempt_count() -> None:
    call = _FlakyCall(failures=3)

    attempts = await retry_until_success(call, backoff=_no_wait(), shutdown=asyncio.Event(), what="test")

    assert attempts == 4
    assert call.calls == 4


@pytest.mark.asyncio
async def test_retry_gives_up_at_max_attempts() -> None:
    call = _FlakyCall(failures=10)

    with pytest.raises(GwRetryExhaustedError) as excinfo:
        await retry_until_success(call, backoff=_no_wait(), shutdown=asyncio.Event(), what="test", max_attempts=3)

    assert excinfo.value.attempts == 3
    assert call.calls == 3


@pytest.mark.asyncio
async def test_retry_does_not_start_after_shutdown() -> None:
    shutdown = asyncio.Event()
    shutdown.set()
    call = _FlakyCall(failures=0)

    with pytest.raises(GwShutdownError):
        await retry_until_success(call, backoff=_no_wait(), shutdown=shutdown, what="test")
    assert call.calls == 0


@pytest.mark.asyncio
async def test_shutdown_preempts_backoff_wait() -> None:
    shutdown = asyncio.Event()
    call = _FlakyCall(failures=1_000)
    backoff = Backoff(initial_delay=30.0, max_delay=30.0, jitter=0.0)

    task = asyncio.create_task(retry_until_success(call, backoff=backoff, shutdown=shutdown, what="test"))
    await asyncio.sleep(0.01)
    shutdown.set()

    with pytest.raises(GwShutdownError):
        await asyncio.wait_for(task, timeout=1.0)
    assert call.calls == 1


@pytest.mark.asyncio
async def test_exceptions_from_call_propagate() -> None:
    calls = 0

    async def _rejecting() -> bool:
        nonlocal calls
        calls += 1
        raise GwRejectedError("bad request", code=22)

    with pytest.raises(GwRejectedError):
        await retry_until_success(_rejecting, backoff=_no_wait(), shutdown=asyncio.Event(), what="test")
    assert calls == 1


@pytest.mark.asyncio
async def test_wait_or_shutdown() -> None:
    shutdown = asyncio.Event()
    assert await wait_or_shutdown(shutdown, 0.0) is False
    shutdown.set()
    assert await wait_or_shutdown(shutdown, 10.0) is True
