"""Managed gateway endpoints.

Endpoints:
  - /v1/get_subsystems  (subsystem inventory for the beacon)
  - /v1/set_ana_state   (push a batch of ANA group state changes)
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pynvmeofgw._api._common import raise_for_status
from pynvmeofgw._constants import GET_SUBSYSTEMS_ENDPOINT, SET_ANA_STATE_ENDPOINT
from pynvmeofgw._transport import Transport
from pynvmeofgw.exceptions import GwRpcError
from pynvmeofgw.models.ana import AnaInfo
from pynvmeofgw.models.inventory import SubsystemsInfo

_logger = logging.getLogger(__name__)


async def get_subsystems(transport: Transport) -> SubsystemsInfo:
    """Fetch the subsystems currently exported by the gateway."""
    response = await transport.post_json(GET_SUBSYSTEMS_ENDPOINT, {})
    raise_for_status(GET_SUBSYSTEMS_ENDPOINT, response)
    try:
        return SubsystemsInfo.model_validate(response)
    except ValidationError as exc:
        raise GwRpcError(
            f"Malformed reply from {GET_SUBSYSTEMS_ENDPOINT}: {exc.error_count()} error(s)",
            endpoint=GET_SUBSYSTEMS_ENDPOINT,
        ) from exc


async def set_ana_state(transport: Transport, ana_info: AnaInfo) -> None:
    """Push *ana_info* to the gateway. Returns once the gateway acknowledged it."""
    response = await transport.post_json(SET_ANA_STATE_ENDPOINT, ana_info.to_wire())
    raise_for_status(SET_ANA_STATE_ENDPOINT, response)
    _logger.debug("set_ana_state acknowledged (%d group state(s))", len(ana_info))
