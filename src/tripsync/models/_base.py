"""Base model and enum for trip entities.

Every entity model inherits from :class:`TripBaseModel` which provides:

* ``alias_generator=to_camel`` so the camelCase keys of the stored trip
  blob map automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` values so the
  field default is used instead of failing validation on a
  partially-null remote payload.
* ``coerce_numbers_to_str=True`` so numeric ids and labels (``"id": 1``)
  load as strings instead of invalidating the whole trip.
* ``frozen=True``: snapshots are never mutated in place, every edit
  produces a new instance.

Tag enums inherit from :class:`TripEnum` which matches values
case-insensitively and resolves unknown values to the enum's
``default()`` member instead of raising ``ValueError``.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Return a fresh opaque entity id."""
    return str(uuid.uuid4())


class TripEnum(StrEnum):
    """Base for string tag enums stored in trip blobs."""

    @classmethod
    def default(cls) -> Self:
        return next(iter(cls))

    @classmethod
    def _missing_(cls, value: object) -> TripEnum:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value.lower() == lowered:
                    return member
        return cls.default()


class TripBaseModel(BaseModel):
    """Base for stored trip entities."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        if not isinstance(values, Mapping):
            return values
        return {key: value for key, value in values.items() if value is not None}

    @classmethod
    def field_name(cls, key: str) -> str | None:
        """Resolve a snake_case field name or camelCase wire key to a field name."""
        if key in cls.model_fields:
            return key
        for name, info in cls.model_fields.items():
            if info.alias == key:
                return name
        return None

    @classmethod
    def normalize_changes(cls, changes: Mapping[str, Any]) -> dict[str, Any]:
        """Map a partial payload onto field names, dropping unknown keys and ``id``."""
        normalized: dict[str, Any] = {}
        for key, value in changes.items():
            name = cls.field_name(key)
            if name is None or name == "id":
                continue
            normalized[name] = value
        return normalized

    def merged(self, changes: Mapping[str, Any]) -> Self:
        """Return a copy with *changes* validated and applied on top of this instance.

        Only the changed fields are validated; every other field keeps the
        exact object it had.
        """
        normalized = type(self).normalize_changes(changes)
        if not normalized:
            return self
        validated = type(self).model_validate(normalized)
        return self.model_copy(update={name: getattr(validated, name) for name in normalized})

    def to_payload(self) -> dict[str, Any]:
        """Dump to the camelCase JSON shape stored remotely."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
