"""RPC clients for the managed gateway and the monitor group service."""

from __future__ import annotations

import logging

from pynvmeofgw._api import gateway as _gateway_api
from pynvmeofgw._api import monitor_group as _monitor_group_api
from pynvmeofgw._constants import GROUP_ALREADY_CLAIMED_STATUS
from pynvmeofgw._transport import Transport
from pynvmeofgw.exceptions import GwRejectedError, GwRpcError, GwTransportError
from pynvmeofgw.models.ana import AnaInfo
from pynvmeofgw.models.inventory import SubsystemsInfo

_logger = logging.getLogger(__name__)


class GatewayRpcClient:
    """:class:`~pynvmeofgw.interfaces.GatewayRpc` over a JSON transport."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def probe_inventory(self) -> tuple[SubsystemsInfo, bool]:
        """Return the gateway inventory, or an empty one and ``False`` on any failure."""
        try:
            return await _gateway_api.get_subsystems(self._transport), True
        except (GwTransportError, GwRpcError) as exc:
            _logger.debug("get_subsystems failed: %s", exc)
            return SubsystemsInfo(), False

    async def push_state_diff(self, batch: AnaInfo) -> bool:
        try:
            await _gateway_api.set_ana_state(self._transport, batch)
        except GwRejectedError:
            raise
        except (GwTransportError, GwRpcError) as exc:
            _logger.warning("set_ana_state failed: %s", exc)
            return False
        return True


class AdmissionRpcClient:
    """:class:`~pynvmeofgw.interfaces.AdmissionRpc` over a JSON transport."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def claim_group(self, group_id: int) -> bool:
        try:
            await _monitor_group_api.set_group_id(self._transport, group_id)
        except GwRejectedError:
            raise
        except GwRpcError as exc:
            if exc.code == GROUP_ALREADY_CLAIMED_STATUS:
                _logger.info("Group id %d already claimed by the gateway", group_id)
                return True
            _logger.warning("set_group_id(%d) failed: %s", group_id, exc)
            return False
        except GwTransportError as exc:
            _logger.warning("set_group_id(%d) failed: %s", group_id, exc)
            return False
        return True
