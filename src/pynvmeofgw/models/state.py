"""Per-group gateway state as distributed by the control plane.

The control plane publishes the full group map: for every ``(pool, group)``
key, the state of every gateway in that group. A gateway's state is, per
exported subsystem, the ANA state of each access group. Access groups are
stored 0-based; the ANA group id seen by the gateway is ``index + 1``.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import Field, field_validator

from pynvmeofgw.models._base import GwBaseModel, GwStrEnum

_logger = logging.getLogger(__name__)

GatewayId = str


def ana_group_id(index: int) -> int:
    """External ANA group id for a 0-based access-group index."""
    return index + 1


@dataclasses.dataclass(frozen=True, order=True)
class GroupKey:
    """Identity of a gateway failover group."""

    pool: str
    group: str

    def __str__(self) -> str:
        return f"({self.pool},{self.group})"


class AnaState(GwStrEnum):
    """Exported state of one ANA group of one subsystem."""

    OPTIMIZED = "optimized"
    INACCESSIBLE = "inaccessible"

    @classmethod
    def _missing_(cls, value: object) -> Any:
        member = super()._missing_(value)
        if member is not None:
            return member
        # Anything that is not the optimized state is reported as inaccessible.
        _logger.warning("Unknown ANA state %r, treating it as %s", value, cls.INACCESSIBLE.value)
        return cls.INACCESSIBLE


class SubsystemState(GwBaseModel):
    """ANA states of one subsystem, indexed by ``ana_group_id - 1``."""

    nqn: str
    ana_states: tuple[AnaState, ...] = ()


class GatewayState(GwBaseModel):
    """Everything the control plane says about one gateway of a group."""

    group_id: int = Field(default=0, ge=0)
    subsystems: dict[str, SubsystemState] = Field(default_factory=dict)

    @field_validator("subsystems", mode="before")
    @classmethod
    def _key_subsystems_by_nqn(cls, value: Any) -> Any:
        """Accept a list of subsystems or a mapping keyed by NQN."""
        if isinstance(value, Mapping):
            keyed: dict[str, Any] = {}
            for nqn, sub in value.items():
                if isinstance(sub, Mapping) and "nqn" not in sub:
                    sub = {**sub, "nqn": nqn}
                keyed[str(nqn)] = sub
            return keyed
        if isinstance(value, (list, tuple)):
            keyed = {}
            for sub in value:
                if isinstance(sub, SubsystemState):
                    nqn = sub.nqn
                else:
                    nqn = sub.get("nqn") if isinstance(sub, Mapping) else None
                if not nqn:
                    raise ValueError("subsystem entry without nqn")
                keyed[str(nqn)] = sub
            return keyed
        return value


GroupSnapshot = Mapping[GatewayId, GatewayState]
"""All gateways of one group at one point in time."""

GroupMap = Mapping[GroupKey, GroupSnapshot]
"""Snapshots for every group, keyed by group identity."""


class GroupEntry(GwBaseModel):
    """One group of a group-map update as it travels on the wire."""

    pool: str
    group: str = ""
    gateways: dict[GatewayId, GatewayState] = Field(default_factory=dict)

    @property
    def key(self) -> GroupKey:
        return GroupKey(pool=self.pool, group=self.group)


class GroupMapUpdate(GwBaseModel):
    """A full group map delivered by the control plane."""

    epoch: int = 0
    groups: list[GroupEntry] = Field(default_factory=list)

    def to_group_map(self) -> dict[GroupKey, dict[GatewayId, GatewayState]]:
        """Index the groups by key. A later duplicate key wins."""
        return {entry.key: dict(entry.gateways) for entry in self.groups}

    def snapshot_for(self, key: GroupKey) -> dict[GatewayId, GatewayState] | None:
        return self.to_group_map().get(key)
