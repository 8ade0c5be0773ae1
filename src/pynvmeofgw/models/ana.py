"""ANA state change batch pushed to the managed gateway."""

from __future__ import annotations

from pydantic import Field

from pynvmeofgw.models._base import GwBaseModel
from pynvmeofgw.models.state import AnaState


class AnaGroupState(GwBaseModel):
    """New state for one ANA group (1-based ``grp_id``)."""

    grp_id: int = Field(..., ge=1)
    state: AnaState


class NqnAnaStates(GwBaseModel):
    """Changed ANA groups of one subsystem."""

    nqn: str
    states: list[AnaGroupState] = Field(default_factory=list)


class AnaInfo(GwBaseModel):
    """Batch of per-subsystem ANA changes, sent in one call."""

    states: list[NqnAnaStates] = Field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.states)

    def __len__(self) -> int:
        return sum(len(entry.states) for entry in self.states)

    def as_pairs(self) -> list[tuple[str, list[tuple[int, AnaState]]]]:
        """Plain ``(nqn, [(grp_id, state), ...])`` view, handy for logs."""
        return [(entry.nqn, [(gs.grp_id, gs.state) for gs in entry.states]) for entry in self.states]
