"""Group admission and ANA state convergence against remote endpoints.

Both components run a remote call through :func:`retry_until_success`:
they return only once the remote side acknowledged, and are preempted by
the shared shutdown event.
"""

from __future__ import annotations

import asyncio
import logging

from pynvmeofgw._retry import Backoff, retry_until_success
from pynvmeofgw.interfaces import AdmissionRpc, GatewayRpc
from pynvmeofgw.models.ana import AnaInfo

_logger = logging.getLogger(__name__)


class GroupAdmission:
    """Claim the numeric group slot the first time a gateway appears in a group."""

    def __init__(
        self,
        rpc: AdmissionRpc,
        *,
        backoff: Backoff,
        shutdown: asyncio.Event,
        max_attempts: int | None = None,
    ) -> None:
        self._rpc = rpc
        self._backoff = backoff
        self._shutdown = shutdown
        self._max_attempts = max_attempts

    async def admit(self, group_id: int) -> int:
        """Claim *group_id*; returns the number of attempts it took."""
        _logger.info("Claiming group id %d", group_id)

        async def _call() -> bool:
            return await self._rpc.claim_group(group_id)

        return await retry_until_success(
            _call,
            backoff=self._backoff,
            shutdown=self._shutdown,
            what=f"set_group_id({group_id})",
            max_attempts=self._max_attempts,
        )


class ConvergenceActuator:
    """Push a computed ANA diff to the managed gateway until acknowledged."""

    def __init__(
        self,
        rpc: GatewayRpc,
        *,
        backoff: Backoff,
        shutdown: asyncio.Event,
        max_attempts: int | None = None,
    ) -> None:
        self._rpc = rpc
        self._backoff = backoff
        self._shutdown = shutdown
        self._max_attempts = max_attempts

    async def push(self, batch: AnaInfo) -> int:
        """Send *batch* in one call per attempt; returns the number of attempts.

        Callers must not pass an empty batch.
        """
        if not batch:
            raise ValueError("refusing to push an empty ANA state batch")
        _logger.info("Pushing ANA state changes: %s", batch.as_pairs())

        async def _call() -> bool:
            return await self._rpc.push_state_diff(batch)

        return await retry_until_success(
            _call,
            backoff=self._backoff,
            shutdown=self._shutdown,
            what="set_ana_state",
            max_attempts=self._max_attempts,
        )
