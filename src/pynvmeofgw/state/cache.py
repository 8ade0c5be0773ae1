"""In-memory cache of the last applied group snapshot.

The coordinator is the only component allowed to mutate it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pynvmeofgw.exceptions import GwConfigError
from pynvmeofgw.models.state import GatewayId, GatewayState, GroupKey, GroupSnapshot

_logger = logging.getLogger(__name__)


def lookup_gateway_state(
    desc: str,
    group_map: Mapping[GroupKey, GroupSnapshot],
    key: GroupKey,
    gw_id: GatewayId,
) -> GatewayState | None:
    """Find one gateway's state in a group map, logging which part is missing."""
    snapshot = group_map.get(key)
    if snapshot is None:
        _logger.info("Can not find group %s in %s (groups: %s)", key, desc, sorted(str(k) for k in group_map))
        return None
    state = snapshot.get(gw_id)
    if state is None:
        _logger.info("Can not find gw id %s in %s group %s (gateways: %s)", gw_id, desc, key, sorted(snapshot))
        return None
    return state


class StateCache:
    """Last-applied snapshot per group.

    A snapshot is replaced as a whole, never merged. A gateway that is
    absent from the cached snapshot is different from a gateway that is
    present with no subsystems: only the former is a first sighting.

    The structure can hold many groups. A process drives exactly one, which
    it declares with :meth:`bind`.
    """

    def __init__(self) -> None:
        self._snapshots: dict[GroupKey, dict[GatewayId, GatewayState]] = {}
        self._owner: GroupKey | None = None

    @property
    def owner(self) -> GroupKey | None:
        return self._owner

    def bind(self, key: GroupKey) -> None:
        """Declare the single group driven through this cache."""
        if self._owner is not None and self._owner != key:
            raise GwConfigError(f"state cache already bound to group {self._owner}, refusing {key}")
        self._owner = key

    def get_snapshot(self, key: GroupKey) -> dict[GatewayId, GatewayState] | None:
        snapshot = self._snapshots.get(key)
        return dict(snapshot) if snapshot is not None else None

    def get_gateway_state(self, key: GroupKey, gw_id: GatewayId, *, desc: str = "old map") -> GatewayState | None:
        return lookup_gateway_state(desc, self._snapshots, key, gw_id)

    def has_gateway_state(self, key: GroupKey, gw_id: GatewayId) -> bool:
        snapshot = self._snapshots.get(key)
        return snapshot is not None and gw_id in snapshot

    def replace(self, key: GroupKey, snapshot: GroupSnapshot) -> None:
        if self._owner is not None and key != self._owner:
            raise GwConfigError(f"state cache is bound to group {self._owner}, refusing snapshot for {key}")
        self._snapshots[key] = dict(snapshot)
        _logger.debug("Cached snapshot for group %s: %d gateway(s)", key, len(snapshot))

    def discard(self, key: GroupKey) -> None:
        self._snapshots.pop(key, None)

    def clear(self) -> None:
        self._snapshots.clear()

    def __len__(self) -> int:
        return len(self._snapshots)
