"""Shared helpers for RPC endpoint modules.

Every RPC reply carries a request status: ``status`` (0 on success, an
errno value otherwise) and ``errorMessage``. This module maps a non-zero
status onto the exception hierarchy.

It is internal to pynvmeofgw and may change at any time.
"""

from __future__ import annotations

from typing import Any

from pynvmeofgw._constants import REJECTED_STATUS_CODES
from pynvmeofgw.exceptions import GwRejectedError, GwRpcError


def _safe_int(value: Any) -> int | None:
    """Parse a value to int, returning None for missing/invalid."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def raise_for_status(endpoint: str, response: dict[str, Any]) -> None:
    """Raise if *response* reports a failed request.

    A missing ``status`` counts as success. Status codes in
    ``REJECTED_STATUS_CODES`` mean the request itself is invalid and raise
    :class:`GwRejectedError`; any other non-zero status raises
    :class:`GwRpcError`.
    """
    raw_status = response.get("status")
    if raw_status is None:
        return
    status = _safe_int(raw_status)
    if status == 0:
        return
    message = str(response.get("errorMessage") or response.get("error_message") or "")
    text = f"{endpoint} failed: status={raw_status} message={message}"
    if status in REJECTED_STATUS_CODES:
        raise GwRejectedError(text, code=status, endpoint=endpoint)
    raise GwRpcError(text, code=status, endpoint=endpoint)
