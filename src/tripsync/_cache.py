"""Local durable cache of the trip list.

The file holds a single JSON object keyed by the schema version string::

    {"trip-storage-v3": {"trips": [...], "activeTripId": "..."}}

A file written under any other key is treated as absent.  There is no
migration between versions.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tripsync.ingestion.normalize import safe_str
from tripsync.ingestion.sanitize import parse_trips
from tripsync.models.trip import Trip
from tripsync.state.events import StoreSnapshot

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedState:
    """Trips and active id restored from the cache (already sanitized)."""

    trips: tuple[Trip, ...] = ()
    active_trip_id: str | None = None


class LocalCache:
    """JSON file cache for the whole store snapshot."""

    def __init__(self, path: str | os.PathLike[str], schema_version: str) -> None:
        self._path = Path(path)
        self._schema_version = schema_version

    @property
    def path(self) -> Path:
        return self._path

    @property
    def schema_version(self) -> str:
        return self._schema_version

    def _read(self) -> dict[str, Any] | None:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError:
            _logger.debug("Cache file unreadable path=%s", self._path, exc_info=True)
            return None
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            _logger.debug("Cache file is not JSON path=%s", self._path, exc_info=True)
            return None
        return parsed if isinstance(parsed, dict) else None

    def load(self) -> CachedState:
        """Return the cached state, or an empty one when missing or from another schema version."""
        document = self._read()
        if document is None:
            return CachedState()
        entry = document.get(self._schema_version)
        if not isinstance(entry, dict):
            _logger.debug(
                "Cache schema mismatch path=%s expected=%s found=%s",
                self._path,
                self._schema_version,
                sorted(document),
            )
            return CachedState()

        raw_trips = entry.get("trips")
        trips = tuple(parse_trips(raw_trips if isinstance(raw_trips, list) else []))
        active = safe_str(entry.get("activeTripId"))
        if active is not None and all(trip.id != active for trip in trips):
            active = None
        return CachedState(trips=trips, active_trip_id=active)

    def save(self, snapshot: StoreSnapshot) -> None:
        """Atomically write *snapshot* under the current schema version."""
        document = {
            self._schema_version: {
                "trips": [trip.to_payload() for trip in snapshot.trips],
                "activeTripId": snapshot.active_trip_id,
            }
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise
        _logger.debug("Cache saved path=%s trips=%d", self._path, len(snapshot.trips))

    def clear(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            return

