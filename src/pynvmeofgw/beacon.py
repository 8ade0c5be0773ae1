"""Periodic heartbeat: local inventory plus derived availability."""

from __future__ import annotations

import logging

from pynvmeofgw.config import GatewayConfig
from pynvmeofgw.interfaces import ControlPlane, GatewayRpc
from pynvmeofgw.models.beacon import Beacon, BeaconSubsystem, GatewayAvailability, beacon_subsystems
from pynvmeofgw.models.inventory import SubsystemsInfo

_logger = logging.getLogger(__name__)


def derive_availability(*, has_prior_state: bool, probe_ok: bool) -> GatewayAvailability:
    """Availability reported in the beacon.

    A gateway that has never been placed in a group map reports ``CREATED``
    whatever the probe says; only after that does the probe outcome decide
    between ``AVAILABLE`` and ``UNAVAILABLE``.
    """
    if not has_prior_state:
        return GatewayAvailability.CREATED
    return GatewayAvailability.AVAILABLE if probe_ok else GatewayAvailability.UNAVAILABLE


def build_beacon(
    config: GatewayConfig,
    subsystems: list[BeaconSubsystem],
    availability: GatewayAvailability,
) -> Beacon:
    return Beacon(
        gw_id=config.name,
        pool=config.pool,
        group=config.group,
        subsystems=subsystems,
        availability=availability,
    )


class BeaconReporter:
    """Probe the managed gateway and emit one beacon per call.

    The reporter holds no state of its own: whether the gateway has been
    seen in a group map is passed in by the caller on every report.
    """

    def __init__(self, config: GatewayConfig, gateway: GatewayRpc, control_plane: ControlPlane) -> None:
        self._config = config
        self._gateway = gateway
        self._control_plane = control_plane

    async def probe(self) -> tuple[SubsystemsInfo, bool]:
        """Fetch the inventory; never raises."""
        try:
            return await self._gateway.probe_inventory()
        except Exception:
            _logger.warning("Gateway inventory probe raised", exc_info=True)
            return SubsystemsInfo(), False

    async def report(self, *, has_prior_state: bool, inventory: SubsystemsInfo, probe_ok: bool) -> Beacon:
        """Build and send the beacon for an already probed inventory."""
        availability = derive_availability(has_prior_state=has_prior_state, probe_ok=probe_ok)
        beacon = build_beacon(
            self._config,
            beacon_subsystems(inventory) if probe_ok else [],
            availability,
        )
        _logger.debug(
            "Sending beacon gw=%s group=%s availability=%s subsystems=%d",
            beacon.gw_id,
            self._config.group_key,
            availability,
            len(beacon.subsystems),
        )
        await self._control_plane.send_beacon(beacon)
        return beacon
