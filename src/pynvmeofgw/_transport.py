"""JSON-over-HTTP transport for the gateway and monitor group RPCs."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pynvmeofgw._constants import RETRYABLE_CLIENT_STATUSES, USER_AGENT
from pynvmeofgw._redact import redact_for_log
from pynvmeofgw.exceptions import GwRejectedError, GwTransportError

_logger = logging.getLogger(__name__)


def normalize_base_url(address: str) -> str:
    """Turn a ``host:port`` target into an HTTP base URL."""
    value = address.strip().rstrip("/")
    if "://" not in value:
        value = f"http://{value}"
    return value


class Transport(Protocol):
    """Structural transport interface used by the RPC modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        ...


class HttpTransport:
    """POST JSON requests to one RPC server and decode JSON replies."""

    def __init__(
        self,
        address: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float,
    ) -> None:
        self._base_url = normalize_base_url(address)
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Send *payload* to *endpoint* and return the decoded reply.

        Raises
        ------
        GwRejectedError
            On a 4xx reply that retrying cannot fix.
        GwTransportError
            On network errors, timeouts, other non-200 replies or a body
            that is not a JSON object.
        """
        url = f"{self._base_url}{endpoint}"
        headers = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        body = json.dumps(payload, separators=(",", ":"))

        _logger.debug("POST %s payload=%s", url, redact_for_log(payload))

        try:
            async with self._http.post(url, data=body, headers=headers, timeout=self._timeout) as resp:
                raw = await resp.read()
                status = resp.status
            text = raw.decode("utf-8")
        except TimeoutError as exc:
            raise GwTransportError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc
        except aiohttp.ClientError as exc:
            raise GwTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc
        except UnicodeDecodeError as exc:
            raise GwTransportError(f"Reply from {endpoint} is not UTF-8: {exc}", endpoint=endpoint) from exc

        if status != 200:
            message = f"HTTP {status} from {endpoint}: {text[:200]}"
            if 400 <= status < 500 and status not in RETRYABLE_CLIENT_STATUSES:
                raise GwRejectedError(message, code=status, endpoint=endpoint)
            raise GwTransportError(message, status_code=status, endpoint=endpoint)

        try:
            result = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as exc:
            raise GwTransportError(f"Invalid JSON from {endpoint}: {text[:200]}", endpoint=endpoint) from exc

        if not isinstance(result, dict):
            raise GwTransportError(f"Reply from {endpoint} is not a JSON object", endpoint=endpoint)

        _logger.debug("Reply from %s: %s", url, redact_for_log(result))
        return result
