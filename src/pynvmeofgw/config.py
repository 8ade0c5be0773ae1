"""Gateway monitor configuration for pynvmeofgw."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pynvmeofgw._constants import (
    BEACON_TOPIC_TEMPLATE,
    DEFAULT_BEACON_PERIOD,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_CONTROL_PLANE_PORT,
    DEFAULT_MQTT_KEEPALIVE,
    DEFAULT_RETRY_FACTOR,
    DEFAULT_RETRY_INITIAL_DELAY,
    DEFAULT_RETRY_JITTER,
    DEFAULT_RETRY_MAX_DELAY,
    DEFAULT_RPC_TIMEOUT,
    MAP_TOPIC_TEMPLATE,
)
from pynvmeofgw.exceptions import GwConfigError
from pynvmeofgw.models.state import GroupKey


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


_REQUIRED_FIELDS: tuple[str, ...] = ("name", "pool", "group", "gateway_address", "monitor_address")
_TLS_FIELDS: tuple[str, ...] = ("server_key", "server_cert", "client_cert")


@dataclasses.dataclass(frozen=True)
class GatewayConfig:
    """Monitor configuration.

    Parameters
    ----------
    name : str
        Gateway id of this process inside its group.
    pool : str
        Pool the gateway group belongs to.
    group : str
        Gateway group name.
    gateway_address : str
        Address of the managed gateway's control endpoint
        (``host:port`` or a full ``http(s)://`` URL).
    monitor_address : str
        Address of the monitor group service used to claim the group id.
    control_plane_host : str
        MQTT broker carrying group maps and beacons. Defaults to ``localhost``.
    control_plane_port : int
        MQTT broker port.
    control_plane_username, control_plane_password : str or None
        Broker credentials.
    control_plane_tls : bool
        Connect to the broker over TLS.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    connect_timeout : float
        Seconds to wait for the broker CONNACK at startup.
    map_topic, beacon_topic : str or None
        Topic overrides. Derived from pool and group when unset.
    beacon_period : float
        Seconds between beacons.
    rpc_timeout : float
        Per-request timeout for gateway and monitor group RPCs.
    retry_initial_delay, retry_max_delay, retry_factor, retry_jitter : float
        Backoff applied between failed admission/push attempts.
    retry_max_attempts : int or None
        Attempt cap for admission/push. ``None`` retries until success
        or shutdown.
    server_key, server_cert, client_cert : str
        TLS material for the gateway channel. Not supported yet; must be empty.
    """

    name: str
    pool: str
    group: str
    gateway_address: str
    monitor_address: str
    control_plane_host: str = "localhost"
    control_plane_port: int = DEFAULT_CONTROL_PLANE_PORT
    control_plane_username: str | None = None
    control_plane_password: str | None = None
    control_plane_tls: bool = False
    mqtt_keepalive: int = DEFAULT_MQTT_KEEPALIVE
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    map_topic: str | None = None
    beacon_topic: str | None = None
    beacon_period: float = DEFAULT_BEACON_PERIOD
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT
    retry_initial_delay: float = DEFAULT_RETRY_INITIAL_DELAY
    retry_max_delay: float = DEFAULT_RETRY_MAX_DELAY
    retry_factor: float = DEFAULT_RETRY_FACTOR
    retry_jitter: float = DEFAULT_RETRY_JITTER
    retry_max_attempts: int | None = None
    server_key: str = ""
    server_cert: str = ""
    client_cert: str = ""

    @property
    def group_key(self) -> GroupKey:
        """The single group this process drives."""
        return GroupKey(pool=self.pool, group=self.group)

    @property
    def resolved_map_topic(self) -> str:
        return self.map_topic or MAP_TOPIC_TEMPLATE.format(pool=self.pool, group=self.group)

    @property
    def resolved_beacon_topic(self) -> str:
        return self.beacon_topic or BEACON_TOPIC_TEMPLATE.format(pool=self.pool, group=self.group)

    def validate(self) -> GatewayConfig:
        """Check the configuration before the monitor starts operating.

        Returns ``self`` so it can be chained after construction.

        Raises
        ------
        GwConfigError
            If a required field is empty, a TLS option is set, or a
            numeric option is out of range.
        """
        missing = [name for name in _REQUIRED_FIELDS if not str(getattr(self, name) or "").strip()]
        if missing:
            raise GwConfigError(f"missing required configuration: {', '.join(missing)}")

        tls = [name for name in _TLS_FIELDS if getattr(self, name)]
        if tls:
            raise GwConfigError(f"TLS to the gateway is not supported yet: {', '.join(tls)} must be empty")

        if self.beacon_period <= 0:
            raise GwConfigError(f"beacon_period must be positive, got {self.beacon_period}")
        if self.rpc_timeout <= 0:
            raise GwConfigError(f"rpc_timeout must be positive, got {self.rpc_timeout}")
        if self.retry_initial_delay < 0 or self.retry_max_delay < self.retry_initial_delay:
            raise GwConfigError(
                f"invalid retry delays: initial={self.retry_initial_delay} max={self.retry_max_delay}"
            )
        if self.retry_factor < 1:
            raise GwConfigError(f"retry_factor must be >= 1, got {self.retry_factor}")
        if not 0 <= self.retry_jitter < 1:
            raise GwConfigError(f"retry_jitter must be in [0, 1), got {self.retry_jitter}")
        if self.retry_max_attempts is not None and self.retry_max_attempts < 1:
            raise GwConfigError(f"retry_max_attempts must be >= 1, got {self.retry_max_attempts}")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> GatewayConfig:
        """Create configuration from environment variables.

        Reads ``NVMEOF_GW_NAME``, ``NVMEOF_GW_POOL``, ``NVMEOF_GW_GROUP``,
        ``NVMEOF_GW_ADDRESS``, ``NVMEOF_GW_MONITOR_ADDRESS`` and the optional
        ``NVMEOF_GW_*`` variables below. Explicit keyword arguments override
        environment values; ``None`` overrides are ignored so argparse
        defaults can be passed straight through.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        GatewayConfig
            Populated configuration (not yet validated).
        """
        env = os.environ
        explicit = {key: value for key, value in overrides.items() if value is not None}

        _ENV_STR_MAP = {
            "NVMEOF_GW_NAME": "name",
            "NVMEOF_GW_POOL": "pool",
            "NVMEOF_GW_GROUP": "group",
            "NVMEOF_GW_ADDRESS": "gateway_address",
            "NVMEOF_GW_MONITOR_ADDRESS": "monitor_address",
            "NVMEOF_GW_CONTROL_PLANE_HOST": "control_plane_host",
            "NVMEOF_GW_CONTROL_PLANE_USERNAME": "control_plane_username",
            "NVMEOF_GW_CONTROL_PLANE_PASSWORD": "control_plane_password",
            "NVMEOF_GW_MAP_TOPIC": "map_topic",
            "NVMEOF_GW_BEACON_TOPIC": "beacon_topic",
        }
        _ENV_NUMERIC_MAP = {
            "NVMEOF_GW_CONTROL_PLANE_PORT": ("control_plane_port", int),
            "NVMEOF_GW_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "NVMEOF_GW_CONNECT_TIMEOUT": ("connect_timeout", float),
            "NVMEOF_GW_BEACON_PERIOD": ("beacon_period", float),
            "NVMEOF_GW_RPC_TIMEOUT": ("rpc_timeout", float),
            "NVMEOF_GW_RETRY_INITIAL_DELAY": ("retry_initial_delay", float),
            "NVMEOF_GW_RETRY_MAX_DELAY": ("retry_max_delay", float),
            "NVMEOF_GW_RETRY_FACTOR": ("retry_factor", float),
            "NVMEOF_GW_RETRY_JITTER": ("retry_jitter", float),
            "NVMEOF_GW_RETRY_MAX_ATTEMPTS": ("retry_max_attempts", int),
        }

        config_kwargs: dict[str, Any] = {name: "" for name in _REQUIRED_FIELDS}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, (field_name, convert) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in explicit:
                continue
            try:
                config_kwargs[field_name] = convert(val)
            except ValueError as exc:
                raise GwConfigError(f"{env_key}={val!r} is not a valid number") from exc

        if "control_plane_tls" not in explicit:
            config_kwargs["control_plane_tls"] = _env_bool(env.get("NVMEOF_GW_CONTROL_PLANE_TLS"), False)

        config_kwargs.update(explicit)

        return cls(**config_kwargs)
