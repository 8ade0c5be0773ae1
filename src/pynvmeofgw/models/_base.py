"""Base model and enum for gateway monitor wire and state models.

Every model inherits from :class:`GwBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase wire keys map
  automatically to snake_case fields.
* ``frozen=True`` so snapshots can be shared between the cache, the
  diff engine and the beacon reporter without copying.

Wire enums inherit from :class:`GwStrEnum` which matches values
case-insensitively, by value or by member name.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class GwStrEnum(enum.StrEnum):
    """Base for string enums received from the control plane or the gateway.

    Subclasses that need a catch-all member override ``_missing_`` and
    call ``super()._missing_`` first.
    """

    @classmethod
    def _missing_(cls, value: object) -> Any:
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized or member.name.lower() == normalized:
                    return member
        return None


class GwBaseModel(BaseModel):
    """Base for all pynvmeofgw models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump using camelCase wire keys."""
        return self.model_dump(mode="json", by_alias=True)
