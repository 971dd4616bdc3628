"""Change-feed ingestion helpers.

Translates raw change-feed messages and table rows into trip blobs for
the sanitizer.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from tripsync.ingestion.normalize import parse_updated_at


class _RowEnvelope(BaseModel):
    """Minimal envelope for a trips-table row (``id``, ``content``, ``updated_at``)."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str | None = None
    content: dict[str, Any]
    updated_at: Any = None


def _as_row(payload: Mapping[str, Any]) -> _RowEnvelope | None:
    try:
        return _RowEnvelope.model_validate(payload)
    except ValidationError:
        return None


def extract_trip_payload(message: Mapping[str, Any]) -> dict[str, Any] | None:
    """Return the trip blob carried by a row or change-feed message.

    Accepted shapes:
    - a table row ``{"id", "content": {...}, "updated_at"}``
    - a change record ``{"new": <row>}`` or ``{"record": <row>}``
    - a bare trip blob ``{"id", "title", ...}``
    """
    if not isinstance(message, Mapping):
        return None
    for key in ("new", "record"):
        nested = message.get(key)
        if isinstance(nested, Mapping):
            return extract_trip_payload(nested)

    row = _as_row(message)
    if row is not None:
        blob = dict(row.content)
        if row.id and not blob.get("id"):
            blob["id"] = row.id
        return blob

    # A row whose content column is not an object carries no trip.
    if "id" in message and "content" not in message:
        return dict(message)
    return None


def row_updated_at(row: Mapping[str, Any]) -> float | None:
    """Epoch seconds of a row's ``updated_at`` column, if present and parseable."""
    if not isinstance(row, Mapping):
        return None
    return parse_updated_at(row.get("updated_at") or row.get("updatedAt"))
