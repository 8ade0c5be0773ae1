"""Monitor group service endpoint.

Endpoints:
  - /v1/set_group_id  (claim the numeric group slot assigned by the control plane)
"""

from __future__ import annotations

from pynvmeofgw._api._common import raise_for_status
from pynvmeofgw._constants import SET_GROUP_ID_ENDPOINT
from pynvmeofgw._transport import Transport


async def set_group_id(transport: Transport, group_id: int) -> None:
    response = await transport.post_json(SET_GROUP_ID_ENDPOINT, {"id": group_id})
    raise_for_status(SET_GROUP_ID_ENDPOINT, response)
