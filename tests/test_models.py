from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from pynvmeofgw.models.ana import AnaGroupState, AnaInfo, NqnAnaStates
from pynvmeofgw.models.beacon import GatewayAvailability, beacon_subsystems
from pynvmeofgw.models.inventory import SubsystemsInfo
from pynvmeofgw.models.state import AnaState, GatewayState, GroupKey, GroupMapUpdate, ana_group_id


def test_ana_state_parses_case_insensitively_and_falls_back() -> None:
    assert AnaState("optimized") is AnaState.OPTIMIZED
    assert AnaState("OPTIMIZED") is AnaState.OPTIMIZED
    assert AnaState("Inaccessible") is AnaState.INACCESSIBLE
    assert AnaState("change") is AnaState.INACCESSIBLE


def test_availability_has_no_fallback() -> None:
    assert GatewayAvailability("Available") is GatewayAvailability.AVAILABLE
    with pytest.raises(ValueError):
        GatewayAvailability("bogus")


def test_ana_group_id_is_one_based() -> None:
    assert ana_group_id(0) == 1
    assert ana_group_id(7) == 8


def test_group_key_orders_and_prints() -> None:
    assert str(GroupKey(pool="rbd", group="g1")) == "(rbd,g1)"
    assert GroupKey("a", "z") < GroupKey("b", "a")


def test_gateway_state_accepts_subsystem_list_and_mapping() -> None:
    from_list = GatewayState.model_validate(
        {"groupId": 2, "subsystems": [{"nqn": "nqn:a", "anaStates": ["optimized", "inaccessible"]}]}
    )
    from_map = GatewayState.model_validate(
        {"groupId": 2, "subsystems": {"nqn:a": {"anaStates": ["optimized", "inaccessible"]}}}
    )

    assert from_list == from_map
    assert from_list.subsystems["nqn:a"].ana_states == (AnaState.OPTIMIZED, AnaState.INACCESSIBLE)


def test_gateway_state_rejects_subsystem_without_nqn() -> None:
    with pytest.raises(ValidationError):
        GatewayState.model_validate({"subsystems": [{"anaStates": ["optimized"]}]})


def test_gateway_state_rejects_negative_group_id() -> None:
    with pytest.raises(ValidationError):
        GatewayState(group_id=-1)


def test_gateway_state_is_frozen() -> None:
    state = GatewayState(group_id=1)
    with pytest.raises(ValidationError):
        state.group_id = 2  # type: ignore[misc]


def test_group_map_update_indexes_by_key() -> None:
    update = GroupMapUpdate.model_validate(
        {
            "epoch": 7,
            "groups": [
                {
                    "pool": "rbd",
                    "group": "g1",
                    "gateways": {
                        "gw1": {"groupId": 0, "subsystems": [{"nqn": "nqn:a", "anaStates": ["optimized"]}]},
                        "gw2": {"groupId": 1, "subsystems": []},
                    },
                },
                {"pool": "rbd", "group": "g2", "gateways": {}},
            ],
        }
    )

    group_map = update.to_group_map()
    assert update.epoch == 7
    assert set(group_map) == {GroupKey("rbd", "g1"), GroupKey("rbd", "g2")}
    assert group_map[GroupKey("rbd", "g1")]["gw2"].group_id == 1
    assert update.snapshot_for(GroupKey("rbd", "g2")) == {}
    assert update.snapshot_for(GroupKey("rbd", "missing")) is None


def test_ana_info_wire_shape() -> None:
    info = AnaInfo(
        states=[NqnAnaStates(nqn="nqn:a", states=[AnaGroupState(grp_id=2, state=AnaState.OPTIMIZED)])]
    )

    assert info.to_wire() == {"states": [{"nqn": "nqn:a", "states": [{"grpId": 2, "state": "optimized"}]}]}
    assert len(info) == 1
    assert bool(info)
    assert not AnaInfo()


def test_ana_group_state_rejects_zero_id() -> None:
    with pytest.raises(ValidationError):
        AnaGroupState(grp_id=0, state=AnaState.OPTIMIZED)


def test_beacon_subsystems_maps_listeners_and_namespaces() -> None:
    info = SubsystemsInfo.model_validate(
        {
            "status": 0,
            "subsystems": [
                {
                    "nqn": "nqn.2016-06.io.spdk:cnode1",
                    "namespaces": [{"nsid": 1, "anagrpid": 2, "nonce": 1234}],
                    "listenAddresses": [{"trtype": "TCP", "adrfam": "ipv4", "traddr": "10.0.0.1", "trsvcid": 4420}],
                }
            ],
        }
    )

    (sub,) = beacon_subsystems(info)
    assert sub.nqn == "nqn.2016-06.io.spdk:cnode1"
    assert sub.namespaces[0].anagrpid == 2
    assert sub.namespaces[0].nonce == "1234"
    assert sub.listeners[0].address_family == "ipv4"
    assert sub.listeners[0].address == "10.0.0.1"
    assert sub.listeners[0].svcid == "4420"


def test_unknown_ana_state_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="pynvmeofgw.models.state")

    state = GatewayState.model_validate({"subsystems": [{"nqn": "nqn:a", "anaStates": ["optimised", "optimized"]}]})

    assert state.subsystems["nqn:a"].ana_states == (AnaState.INACCESSIBLE, AnaState.OPTIMIZED)
    assert "Unknown ANA state 'optimised'" in caplog.text
    assert caplog.text.count("Unknown ANA state") == 1
