"""Subsystem inventory reported by the managed gateway."""

from __future__ import annotations

from pydantic import Field, field_validator

from pynvmeofgw.models._base import GwBaseModel


class NamespaceInfo(GwBaseModel):
    nsid: int | None = None
    anagrpid: int = 0
    nonce: str = ""

    @field_validator("nonce", mode="before")
    @classmethod
    def _stringify_nonce(cls, value: object) -> object:
        if value is None:
            return ""
        if isinstance(value, int):
            return str(value)
        return value


class ListenAddress(GwBaseModel):
    trtype: str = "TCP"
    adrfam: str = "ipv4"
    traddr: str = ""
    trsvcid: str = ""

    @field_validator("trsvcid", mode="before")
    @classmethod
    def _stringify_port(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value


class SubsystemInfo(GwBaseModel):
    nqn: str
    namespaces: list[NamespaceInfo] = Field(default_factory=list)
    listen_addresses: list[ListenAddress] = Field(default_factory=list)


class SubsystemsInfo(GwBaseModel):
    """Reply of the gateway's subsystem listing call."""

    status: int = 0
    error_message: str = ""
    subsystems: list[SubsystemInfo] = Field(default_factory=list)
