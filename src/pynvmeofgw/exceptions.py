"""Custom exception hierarchy for pynvmeofgw."""

from __future__ import annotations


class GwError(Exception):
    """Base exception for all pynvmeofgw errors."""


class GwConfigError(GwError):
    """Invalid or missing configuration."""


class GwTransportError(GwError):
    """Transport-level failure (network, non-200, invalid JSON, broker connect)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class GwRpcError(GwError):
    """Remote call returned a non-zero status (application-level error)."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)


class GwRejectedError(GwRpcError):
    """Remote side rejected the request as invalid.

    Unlike transient failures this is not retried: pushing the same payload
    again would be rejected again.
    """


class GwAuthenticationError(GwError):
    """Control plane refused our credentials."""


class GwShutdownError(GwError):
    """A retry loop was preempted by process shutdown."""


class GwRetryExhaustedError(GwError):
    """A capped retry loop ran out of attempts.

    Only raised when ``retry_max_attempts`` is configured; the default
    policy retries forever.
    """

    def __init__(self, message: str, *, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(message)
