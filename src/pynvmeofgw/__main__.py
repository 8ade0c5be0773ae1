"""Run the gateway monitor as a process.

Example::

    python -m pynvmeofgw --gateway-name gw1 --gateway-pool rbd --gateway-group g1 \
        --gateway-address 127.0.0.1:5500 --monitor-address 127.0.0.1:5499
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence
from typing import Any

from pynvmeofgw.config import GatewayConfig
from pynvmeofgw.coordinator import GatewayCoordinator
from pynvmeofgw.exceptions import GwConfigError, GwError

_logger = logging.getLogger("pynvmeofgw")

# argparse dest -> GatewayConfig field
_ARG_FIELDS: dict[str, str] = {
    "gateway_name": "name",
    "gateway_pool": "pool",
    "gateway_group": "group",
    "gateway_address": "gateway_address",
    "monitor_address": "monitor_address",
    "server_key": "server_key",
    "server_cert": "server_cert",
    "client_cert": "client_cert",
    "control_plane_host": "control_plane_host",
    "control_plane_port": "control_plane_port",
    "control_plane_username": "control_plane_username",
    "control_plane_password": "control_plane_password",
    "beacon_period": "beacon_period",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nvmeof-gw-monitor",
        description="Report gateway health to the control plane and apply ANA group state changes.",
    )
    parser.add_argument("--gateway-name", help="gateway id inside its group")
    parser.add_argument("--gateway-pool", help="pool of the gateway group")
    parser.add_argument("--gateway-group", help="gateway group name")
    parser.add_argument("--gateway-address", help="managed gateway control endpoint (host:port)")
    parser.add_argument("--monitor-address", help="monitor group service endpoint (host:port)")
    parser.add_argument("--server-key", help="TLS key (not supported yet)")
    parser.add_argument("--server-cert", help="TLS certificate (not supported yet)")
    parser.add_argument("--client-cert", help="TLS client certificate (not supported yet)")
    parser.add_argument("--control-plane-host", help="MQTT broker host")
    parser.add_argument("--control-plane-port", type=int, help="MQTT broker port")
    parser.add_argument("--control-plane-username", help="MQTT username")
    parser.add_argument("--control-plane-password", help="MQTT password")
    parser.add_argument("--beacon-period", type=float, help="seconds between beacons")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> GatewayConfig:
    """Environment first, command line wins; the result is validated."""
    overrides: dict[str, Any] = {field: getattr(args, dest) for dest, field in _ARG_FIELDS.items()}
    return GatewayConfig.from_env(**overrides).validate()


async def _run(config: GatewayConfig) -> None:
    coordinator = GatewayCoordinator(config)
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, coordinator.request_shutdown)
    async with coordinator:
        _logger.info("Complete.")
        await coordinator.wait_closed()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = config_from_args(args)
    except GwConfigError as exc:
        _logger.error("Invalid configuration: %s", exc)
        return 2
    _logger.info(
        "gateway name: %s pool: %s group: %s address: %s",
        config.name,
        config.pool,
        config.group,
        config.gateway_address,
    )
    try:
        asyncio.run(_run(config))
    except GwError as exc:
        _logger.error("Gateway monitor failed to start: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
