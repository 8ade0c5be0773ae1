"""Retry an idempotent remote effect until it is acknowledged.

Admission and ANA state pushes never give up on their own: they back off
exponentially (with jitter, so a fleet of monitors does not retry in lock
step) and stop only when the call succeeds, the call reports a rejection,
or shutdown is signalled.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

from pynvmeofgw.exceptions import GwRetryExhaustedError, GwShutdownError

_logger = logging.getLogger(__name__)


class Backoff:
    """Next delay between failed attempts.

    Each call to :meth:`next_delay` returns the current delay with jitter
    applied, then grows the base delay by ``factor`` up to ``max_delay``.
    :meth:`reset` starts over from ``initial_delay``.
    """

    def __init__(
        self,
        *,
        initial_delay: float,
        max_delay: float,
        factor: float = 2.0,
        jitter: float = 0.2,
        rng: random.Random | None = None,
    ) -> None:
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.factor = factor
        self.jitter = jitter
        self._rng = rng or random.Random()
        self._delay = initial_delay

    def next_delay(self) -> float:
        delay = self._delay
        if self.jitter:
            delay *= 1 + self._rng.uniform(-self.jitter, self.jitter)
        self._delay = min(self._delay * self.factor, self.max_delay)
        return max(delay, 0.0)

    def reset(self) -> None:
        self._delay = self.initial_delay


async def wait_or_shutdown(shutdown: asyncio.Event, delay: float) -> bool:
    """Sleep *delay* seconds; return ``True`` if shutdown was signalled meanwhile."""
    try:
        await asyncio.wait_for(shutdown.wait(), timeout=delay)
    except TimeoutError:
        return False
    return True


async def retry_until_success(
    call: Callable[[], Awaitable[bool]],
    *,
    backoff: Backoff,
    shutdown: asyncio.Event,
    what: str,
    max_attempts: int | None = None,
) -> int:
    """Await *call* until it returns ``True``.

    Exceptions raised by *call* are not caught: a call reports transient
    failure by returning ``False`` and permanent failure by raising.

    Returns
    -------
    int
        Number of attempts it took.

    Raises
    ------
    GwShutdownError
        If *shutdown* is set before an attempt or while waiting between attempts.
    GwRetryExhaustedError
        If *max_attempts* is set and every attempt failed.
    """
    backoff.reset()
    attempt = 0
    while True:
        if shutdown.is_set():
            raise GwShutdownError(f"{what}: shutdown requested after {attempt} attempt(s)")
        attempt += 1
        if await call():
            if attempt > 1:
                _logger.info("%s succeeded after %d attempts", what, attempt)
            return attempt
        if max_attempts is not None and attempt >= max_attempts:
            raise GwRetryExhaustedError(f"{what} failed after {attempt} attempt(s)", attempts=attempt)
        delay = backoff.next_delay()
        _logger.warning("%s failed (attempt %d), retrying in %.3fs", what, attempt, delay)
        if await wait_or_shutdown(shutdown, delay):
            raise GwShutdownError(f"{what}: shutdown requested after {attempt} attempt(s)")
