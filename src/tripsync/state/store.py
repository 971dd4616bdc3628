"""Authoritative in-memory trip tree.

This is the only component allowed to swap the tree.  Every visible
transition builds a new :class:`StoreSnapshot`; trips that did not change
keep their object identity, so consumers can detect change by reference.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from tripsync.models.trip import Trip
from tripsync.state.events import ChangeSource, StoreChange, StoreSnapshot
from tripsync.state.policy import should_accept_push

_logger = logging.getLogger(__name__)

StoreListener = Callable[[StoreChange], None]

_UNSET: object = object()


class StateStore:
    """In-memory store for the trip list, the active trip id and the sync flag.

    The sync flag is a coarse indicator that some remote call is
    outstanding.  It is not a lock and never blocks a mutation.
    """

    def __init__(
        self,
        trips: Iterable[Trip] = (),
        *,
        active_trip_id: str | None = None,
        revision_guard: bool = False,
    ) -> None:
        self._snapshot = StoreSnapshot(trips=tuple(trips), active_trip_id=active_trip_id)
        self._revision_guard = revision_guard
        self._sync_depth = 0
        self._listeners: list[StoreListener] = []

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> StoreSnapshot:
        return self._snapshot

    @property
    def trips(self) -> tuple[Trip, ...]:
        return self._snapshot.trips

    @property
    def active_trip_id(self) -> str | None:
        return self._snapshot.active_trip_id

    @property
    def active_trip(self) -> Trip | None:
        """The active trip, or ``None`` when unset or pointing at a deleted trip."""
        return self._snapshot.active_trip

    @property
    def is_syncing(self) -> bool:
        return self._snapshot.is_syncing

    @property
    def revision_guard(self) -> bool:
        return self._revision_guard

    def get_trip(self, trip_id: str | None) -> Trip | None:
        return self._snapshot.get_trip(trip_id)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a listener called after every replace. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                _logger.debug("Store listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # Replace primitives
    # ------------------------------------------------------------------

    def replace(
        self,
        trips: Iterable[Trip],
        *,
        active_trip_id: str | None | object = _UNSET,
        source: ChangeSource = ChangeSource.LOCAL,
        trip_id: str | None = None,
    ) -> StoreSnapshot:
        """Swap in a new tree. The single primitive every transition goes through."""
        previous = self._snapshot
        next_active = previous.active_trip_id if active_trip_id is _UNSET else active_trip_id
        current = StoreSnapshot(
            trips=tuple(trips),
            active_trip_id=next_active,  # type: ignore[arg-type]
            is_syncing=self._sync_depth > 0,
        )
        self._snapshot = current
        self._notify(StoreChange(previous=previous, current=current, source=source, trip_id=trip_id))
        return current

    def replace_trip(self, trip: Trip, *, source: ChangeSource = ChangeSource.LOCAL) -> StoreSnapshot:
        """Replace one trip wholesale, keyed by id.

        Other trips keep their identity.  Unknown ids are a no-op, as are
        feed pushes rejected by the revision guard.
        """
        previous = self._snapshot
        local = previous.get_trip(trip.id)
        if local is None:
            _logger.debug("replace_trip for unknown trip=%s ignored (source=%s)", trip.id, source)
            return previous
        if local is trip:
            return previous
        if source == ChangeSource.FEED and not should_accept_push(
            local=local,
            incoming=trip,
            revision_guard=self._revision_guard,
        ):
            _logger.debug(
                "Discarding stale push trip=%s revision=%d local=%d",
                trip.id,
                trip.revision,
                local.revision,
            )
            return previous
        trips = tuple(trip if existing.id == trip.id else existing for existing in previous.trips)
        return self.replace(trips, source=source, trip_id=trip.id)

    def add_trip(self, trip: Trip, *, activate: bool = True, source: ChangeSource = ChangeSource.LOCAL) -> StoreSnapshot:
        previous = self._snapshot
        active = trip.id if activate else previous.active_trip_id
        return self.replace(previous.trips + (trip,), active_trip_id=active, source=source, trip_id=trip.id)

    def remove_trip(self, trip_id: str, *, source: ChangeSource = ChangeSource.LOCAL) -> StoreSnapshot:
        """Drop a trip; the active id moves to the first remaining trip when it pointed here."""
        previous = self._snapshot
        trips = tuple(trip for trip in previous.trips if trip.id != trip_id)
        if len(trips) == len(previous.trips):
            return previous
        active = previous.active_trip_id
        if active == trip_id:
            active = trips[0].id if trips else None
        return self.replace(trips, active_trip_id=active, source=source, trip_id=trip_id)

    def set_active_trip(self, trip_id: str | None) -> StoreSnapshot:
        if trip_id == self._snapshot.active_trip_id:
            return self._snapshot
        return self.replace(self._snapshot.trips, active_trip_id=trip_id)

    # ------------------------------------------------------------------
    # Sync indicator
    # ------------------------------------------------------------------

    def begin_sync(self) -> None:
        self._sync_depth += 1
        if self._sync_depth == 1:
            self.replace(self._snapshot.trips, source=ChangeSource.SYNC)

    def end_sync(self) -> None:
        if self._sync_depth == 0:
            return
        self._sync_depth -= 1
        if self._sync_depth == 0:
            self.replace(self._snapshot.trips, source=ChangeSource.SYNC)
