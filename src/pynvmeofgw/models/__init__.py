"""Pydantic models for group maps, ANA changes, inventory and beacons."""

from pynvmeofgw.models._base import GwBaseModel, GwStrEnum
from pynvmeofgw.models.ana import AnaGroupState, AnaInfo, NqnAnaStates
from pynvmeofgw.models.beacon import (
    Beacon,
    BeaconListener,
    BeaconNamespace,
    BeaconSubsystem,
    GatewayAvailability,
    beacon_subsystems,
)
from pynvmeofgw.models.inventory import ListenAddress, NamespaceInfo, SubsystemInfo, SubsystemsInfo
from pynvmeofgw.models.state import (
    AnaState,
    GatewayId,
    GatewayState,
    GroupEntry,
    GroupKey,
    GroupMap,
    GroupMapUpdate,
    GroupSnapshot,
    SubsystemState,
    ana_group_id,
)

__all__ = [
    "AnaGroupState",
    "AnaInfo",
    "AnaState",
    "Beacon",
    "BeaconListener",
    "BeaconNamespace",
    "BeaconSubsystem",
    "GatewayAvailability",
    "GatewayId",
    "GatewayState",
    "GroupEntry",
    "GroupKey",
    "GroupMap",
    "GroupMapUpdate",
    "GroupSnapshot",
    "GwBaseModel",
    "GwStrEnum",
    "ListenAddress",
    "NamespaceInfo",
    "NqnAnaStates",
    "SubsystemInfo",
    "SubsystemState",
    "SubsystemsInfo",
    "ana_group_id",
    "beacon_subsystems",
]
