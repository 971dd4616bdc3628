"""Store snapshots and change notifications.

Every visible transition of the :class:`~tripsync.state.store.StateStore`
produces a new :class:`StoreSnapshot`; listeners receive a
:class:`StoreChange` carrying both the previous and the current snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from tripsync.models.trip import Trip


class ChangeSource(StrEnum):
    LOCAL = "local"
    FEED = "feed"
    LOAD = "load"
    IMPORT = "import"
    CACHE = "cache"
    SYNC = "sync"


@dataclass(frozen=True, slots=True)
class StoreSnapshot:
    """Immutable view of the whole tree at one point in time."""

    trips: tuple[Trip, ...] = ()
    active_trip_id: str | None = None
    is_syncing: bool = False

    def get_trip(self, trip_id: str | None) -> Trip | None:
        if trip_id is None:
            return None
        for trip in self.trips:
            if trip.id == trip_id:
                return trip
        return None

    @property
    def active_trip(self) -> Trip | None:
        return self.get_trip(self.active_trip_id)


@dataclass(frozen=True, slots=True)
class StoreChange:
    previous: StoreSnapshot
    current: StoreSnapshot
    source: ChangeSource
    trip_id: str | None = None
