"""Heartbeat message sent to the control plane."""

from __future__ import annotations

from pydantic import Field

from pynvmeofgw.models._base import GwBaseModel, GwStrEnum
from pynvmeofgw.models.inventory import SubsystemsInfo


class GatewayAvailability(GwStrEnum):
    """Availability reported in a beacon.

    ``CREATED`` means the gateway has never been placed in a group map yet.
    """

    CREATED = "created"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class BeaconNamespace(GwBaseModel):
    anagrpid: int
    nonce: str


class BeaconListener(GwBaseModel):
    address_family: str
    address: str
    svcid: str


class BeaconSubsystem(GwBaseModel):
    nqn: str
    namespaces: list[BeaconNamespace] = Field(default_factory=list)
    listeners: list[BeaconListener] = Field(default_factory=list)


class Beacon(GwBaseModel):
    gw_id: str
    pool: str
    group: str
    subsystems: list[BeaconSubsystem] = Field(default_factory=list)
    availability: GatewayAvailability


def beacon_subsystems(info: SubsystemsInfo) -> list[BeaconSubsystem]:
    """Project the gateway inventory onto the beacon shape."""
    return [
        BeaconSubsystem(
            nqn=sub.nqn,
            namespaces=[BeaconNamespace(anagrpid=ns.anagrpid, nonce=ns.nonce) for ns in sub.namespaces],
            listeners=[
                BeaconListener(address_family=ls.adrfam, address=ls.traddr, svcid=ls.trsvcid)
                for ls in sub.listen_addresses
            ],
        )
        for sub in info.subsystems
    ]
