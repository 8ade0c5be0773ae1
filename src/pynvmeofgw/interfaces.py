"""Structural interfaces of the coordinator's collaborators.

The coordinator only talks to these protocols, so tests can pass small
fakes and production wires in :mod:`pynvmeofgw.rpc` and
:mod:`pynvmeofgw._mqtt`.
"""

from __future__ import annotations

from typing import Protocol

from pynvmeofgw.models.ana import AnaInfo
from pynvmeofgw.models.beacon import Beacon
from pynvmeofgw.models.inventory import SubsystemsInfo


class GatewayRpc(Protocol):
    """The managed gateway's control endpoint.

    Both calls are fallible and safe to repeat. Transient failure is
    reported as ``ok=False``; a request the gateway refuses as invalid
    raises :class:`~pynvmeofgw.exceptions.GwRejectedError`.
    """

    async def probe_inventory(self) -> tuple[SubsystemsInfo, bool]:
        ...

    async def push_state_diff(self, batch: AnaInfo) -> bool:
        ...


class AdmissionRpc(Protocol):
    """The monitor group service used to claim a group slot."""

    async def claim_group(self, group_id: int) -> bool:
        ...


class ControlPlane(Protocol):
    """Outbound side of the control-plane channel. No acknowledgement."""

    async def send_beacon(self, beacon: Beacon) -> None:
        ...
