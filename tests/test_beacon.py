from __future__ import annotations

import pytest

from pynvmeofgw.beacon import BeaconReporter, build_beacon, derive_availability
from pynvmeofgw.config import GatewayConfig
from pynvmeofgw.models.ana import AnaInfo
from pynvmeofgw.models.beacon import Beacon, GatewayAvailability
from pynvmeofgw.models.inventory import SubsystemInfo, SubsystemsInfo


class _ExplodingGateway:
    async def probe_inventory(self) -> tuple[SubsystemsInfo, bool]:
        raise RuntimeError("boom")

    async def push_state_diff(self, batch: AnaInfo) -> bool:
        raise AssertionError("not used")


class _RecordingControlPlane:
    def __init__(self) -> None:
        self.beacons: list[Beacon] = []

    async def send_beacon(self, beacon: Beacon) -> None:
        self.beacons.append(beacon)


CONFIG = GatewayConfig(
    name="gw1",
    pool="rbd",
    group="g1",
    gateway_address="127.0.0.1:5500",
    monitor_address="127.0.0.1:5499",
)


@pytest.mark.parametrize(
    ("has_prior_state", "probe_ok", "expected"),
    [
        (False, True, GatewayAvailability.CREATED),
        (False, False, GatewayAvailability.CREATED),
        (True, True, GatewayAvailability.AVAILABLE),
        (True, False, GatewayAvailability.UNAVAILABLE),
    ],
)
def test_derive_availability(has_prior_state: bool, probe_ok: bool, expected: GatewayAvailability) -> None:
    assert derive_availability(has_prior_state=has_prior_state, probe_ok=probe_ok) is expected


def test_build_beacon_identifies_gateway() -> None:
    beacon = build_beacon(CONFIG, [], GatewayAvailability.AVAILABLE)

    assert beacon.to_wire() == {
        "gwId": "gw1",
        "pool": "rbd",
        "group": "g1",
        "subsystems": [],
        "availability": "available",
    }


@pytest.mark.asyncio
async def test_probe_exception_counts_as_failed_probe() -> None:
    reporter = BeaconReporter(CONFIG, _ExplodingGateway(), _RecordingControlPlane())

    inventory, probe_ok = await reporter.probe()

    assert probe_ok is False
    assert inventory.subsystems == []


@pytest.mark.asyncio
async def test_failed_probe_reports_no_subsystems() -> None:
    control_plane = _RecordingControlPlane()
    reporter = BeaconReporter(CONFIG, _ExplodingGateway(), control_plane)
    stale = SubsystemsInfo(subsystems=[SubsystemInfo(nqn="nqn:a")])

    beacon = await reporter.report(has_prior_state=True, inventory=stale, probe_ok=False)

    assert beacon.availability is GatewayAvailability.UNAVAILABLE
    assert beacon.subsystems == []
    assert control_plane.beacons == [beacon]
