"""Filtering of malformed trip payloads entering the store.

The remote store keeps each trip as a schemaless JSON blob and has
accepted malformed writes in the past (for example ``null`` activity
entries left behind by a failed concurrent write).  Every ingress path
runs :func:`sanitize_trip_payload` unconditionally before a payload is
validated into a :class:`~tripsync.models.Trip`; mutation code never
re-checks for these cases.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from tripsync.ingestion.normalize import as_list, has_id
from tripsync.models.booking import resolve_booking_type
from tripsync.models.trip import Trip

_logger = logging.getLogger(__name__)

# Owned collections whose entries must be objects with an id.
_ENTITY_COLLECTIONS: tuple[str, ...] = ("members", "bookings", "expenses", "plans")
_ITINERARY_KEY = "dailyItinerary"
_ACTIVITIES_KEY = "activities"


def _get(payload: Mapping[str, Any], camel: str, snake: str) -> Any:
    if camel in payload:
        return payload[camel]
    return payload.get(snake)


def _keep_entities(entries: list[Any], *, label: str, trip_id: Any) -> list[Any]:
    kept = [entry for entry in entries if has_id(entry)]
    dropped = len(entries) - len(kept)
    if dropped:
        _logger.debug("Dropped %d malformed %s entries from trip=%s", dropped, label, trip_id)
    return kept


def _sanitize_day(day: Mapping[str, Any], trip_id: Any) -> dict[str, Any]:
    cleaned = dict(day)
    activities = as_list(cleaned.get(_ACTIVITIES_KEY))
    cleaned[_ACTIVITIES_KEY] = _keep_entities(activities, label="activity", trip_id=trip_id)
    return cleaned


def sanitize_trip_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return a cleaned copy of a raw trip blob.

    - every day's ``activities`` loses entries that are null, not objects,
      or have no id
    - null/non-object days are dropped from ``dailyItinerary``
    - ``members``, ``bookings``, ``expenses`` and ``plans`` lose entries
      that are null or have no id; bookings with an unknown ``type`` are
      dropped too
    - null collections become empty lists

    The input is never mutated and the function is idempotent.
    """
    if not isinstance(payload, Mapping):
        return {}

    cleaned = dict(payload)
    trip_id = cleaned.get("id")

    for key in _ENTITY_COLLECTIONS:
        entries = _keep_entities(as_list(cleaned.get(key)), label=key, trip_id=trip_id)
        if key == "bookings":
            typed: list[dict[str, Any]] = []
            for entry in entries:
                booking_type = resolve_booking_type(entry.get("type"))
                if booking_type is not None:
                    typed.append({**entry, "type": booking_type.value})
            if len(typed) != len(entries):
                _logger.debug(
                    "Dropped %d bookings with unknown type from trip=%s",
                    len(entries) - len(typed),
                    trip_id,
                )
            entries = typed
        cleaned[key] = entries

    raw_days = as_list(_get(cleaned, _ITINERARY_KEY, "daily_itinerary"))
    days = [day for day in raw_days if isinstance(day, Mapping)]
    if len(days) != len(raw_days):
        _logger.debug("Dropped %d malformed days from trip=%s", len(raw_days) - len(days), trip_id)
    cleaned.pop("daily_itinerary", None)
    cleaned[_ITINERARY_KEY] = [_sanitize_day(day, trip_id) for day in days]
    return cleaned


def parse_trip(payload: Any) -> Trip | None:
    """Sanitize and validate a raw trip blob.

    Returns ``None`` when the payload is not a trip at all (not an object,
    no id, or still invalid after sanitizing).
    """
    if not has_id(payload):
        _logger.debug("Ignoring trip payload without id: %r", type(payload).__name__)
        return None
    try:
        return Trip.model_validate(sanitize_trip_payload(payload))
    except ValidationError:
        _logger.debug("Ignoring invalid trip payload id=%s", payload.get("id"), exc_info=True)
        return None


def parse_trips(payloads: Iterable[Any]) -> list[Trip]:
    """Parse a bulk payload, skipping entries that are not valid trips."""
    trips: list[Trip] = []
    for payload in payloads:
        trip = parse_trip(payload)
        if trip is not None:
            trips.append(trip)
    return trips
