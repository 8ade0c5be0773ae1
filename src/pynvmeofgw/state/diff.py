"""Minimal ANA state diff between two snapshots of one gateway.

Pure functions only: no I/O, no cache access.
"""

from __future__ import annotations

import logging

from pynvmeofgw.models.ana import AnaGroupState, AnaInfo, NqnAnaStates
from pynvmeofgw.models.state import GatewayState, ana_group_id

_logger = logging.getLogger(__name__)


def compute_ana_diff(old: GatewayState | None, new: GatewayState) -> AnaInfo:
    """Compute the ANA group states that must be pushed to reach *new*.

    For every subsystem of *new*, an access group is emitted unless *old*
    exists, knows the subsystem, and holds the same state at that index.
    With no *old* state every access group of every subsystem is emitted.
    Old sequences shorter than the new one count as changed past their end.
    Subsystems without changes are left out of the result.
    """
    result: list[NqnAnaStates] = []
    for nqn, sub in new.subsystems.items():
        old_sub = old.subsystems.get(nqn) if old is not None else None
        changed: list[AnaGroupState] = []
        for index, new_state in enumerate(sub.ana_states):
            if old_sub is not None and index < len(old_sub.ana_states) and old_sub.ana_states[index] == new_state:
                continue
            changed.append(AnaGroupState(grp_id=ana_group_id(index), state=new_state))
            _logger.debug("nqn %s grpid %d state: %s", nqn, ana_group_id(index), new_state)
        if changed:
            result.append(NqnAnaStates(nqn=nqn, states=changed))
    return AnaInfo(states=result)
