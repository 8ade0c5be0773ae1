from __future__ import annotations

import os

import pytest

from pynvmeofgw.__main__ import build_parser, config_from_args, main
from pynvmeofgw.exceptions import GwConfigError

_ARGS = [
    "--gateway-name",
    "gw1",
    "--gateway-pool",
    "rbd",
    "--gateway-group",
    "g1",
    "--gateway-address",
    "127.0.0.1:5500",
    "--monitor-address",
    "127.0.0.1:5499",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("NVMEOF_GW_"):
            monkeypatch.delenv(key)


def test_config_from_args() -> None:
    config = config_from_args(build_parser().parse_args([*_ARGS, "--beacon-period", "0.5"]))

    assert config.name == "gw1"
    assert config.group == "g1"
    assert config.monitor_address == "127.0.0.1:5499"
    assert config.beacon_period == 0.5


def test_command_line_overrides_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NVMEOF_GW_NAME", "from-env")
    monkeypatch.setenv("NVMEOF_GW_CONTROL_PLANE_HOST", "broker.env")

    config = config_from_args(build_parser().parse_args(_ARGS))

    assert config.name == "gw1"
    assert config.control_plane_host == "broker.env"


def test_tls_options_are_refused() -> None:
    with pytest.raises(GwConfigError):
        config_from_args(build_parser().parse_args([*_ARGS, "--server-key", "/etc/key.pem"]))


def test_main_exits_with_usage_error_on_bad_config() -> None:
    assert main(["--gateway-name", "gw1"]) == 2
