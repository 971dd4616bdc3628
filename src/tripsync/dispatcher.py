"""Mutation dispatcher.

Named operations that transform the :class:`~tripsync.state.store.StateStore`
and persist the affected trip.  Every operation:

1. locates the trip by id (unknown id: no-op, unchanged snapshot returned);
2. applies a pure transform from :mod:`tripsync.state.mutations` to that
   trip only, leaving every other trip reference-identical;
3. swaps the result into the store synchronously;
4. schedules a fire-and-forget upsert of the *whole* trip.

Persistence failures are neither retried nor rolled back: they are logged
and handed to ``on_sync_error`` so the UI can show a non-blocking notice.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from tripsync.ingestion.sanitize import parse_trips
from tripsync.models.activity import Activity
from tripsync.models.booking import Booking
from tripsync.models.expense import Expense
from tripsync.models.plan import PlanItem
from tripsync.models.trip import Member, Trip, TripStatus
from tripsync.repository import TripRepository
from tripsync.state import mutations
from tripsync.state.events import ChangeSource, StoreSnapshot
from tripsync.state.policy import next_revision
from tripsync.state.store import StateStore

_logger = logging.getLogger(__name__)

SyncErrorHandler = Callable[[str | None, Exception], None]
Payload = Mapping[str, Any]


class TripDispatcher:
    """The only writer of trip content.

    Usage::

        dispatcher = TripDispatcher(store, repository)
        dispatcher.add_activity(trip_id, 0, {"time": "09:00", "location": "Museum"})
        await dispatcher.drain()
    """

    def __init__(
        self,
        store: StateStore,
        repository: TripRepository,
        *,
        on_sync_error: SyncErrorHandler | None = None,
    ) -> None:
        self._store = store
        self._repository = repository
        self._on_sync_error = on_sync_error
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def pending(self) -> int:
        """Number of persistence calls still in flight."""
        return len(self._pending)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _report(self, trip_id: str | None, exc: Exception) -> None:
        if self._on_sync_error is None:
            return
        try:
            self._on_sync_error(trip_id, exc)
        except Exception:
            _logger.debug("on_sync_error callback failed", exc_info=True)

    async def _run_remote(self, label: str, trip_id: str, call: Callable[[], Awaitable[None]]) -> None:
        self._store.begin_sync()
        try:
            await call()
        except Exception as exc:
            _logger.warning("%s failed for trip=%s: %s", label, trip_id, exc)
            self._report(trip_id, exc)
        else:
            _logger.debug("%s done for trip=%s", label, trip_id)
        finally:
            self._store.end_sync()

    def _schedule(self, label: str, trip_id: str, call: Callable[[], Awaitable[None]]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.warning("No running event loop; %s for trip=%s not sent", label, trip_id)
            return
        task = loop.create_task(self._run_remote(label, trip_id, call))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _persist(self, trip: Trip) -> None:
        self._schedule("Upsert", trip.id, lambda: self._repository.upsert(trip))

    async def drain(self) -> None:
        """Wait until every scheduled persistence call has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Core commit path
    # ------------------------------------------------------------------

    def _commit(self, trip_id: str, transform: Callable[[Trip], Trip]) -> StoreSnapshot:
        trip = self._store.get_trip(trip_id)
        if trip is None:
            _logger.debug("Trip id=%s not found; operation ignored", trip_id)
            return self._store.snapshot
        updated = transform(trip)
        if updated is trip:
            return self._store.snapshot
        updated = updated.model_copy(update={"revision": next_revision(trip)})
        snapshot = self._store.replace_trip(updated, source=ChangeSource.LOCAL)
        self._persist(updated)
        return snapshot

    # ------------------------------------------------------------------
    # Trips
    # ------------------------------------------------------------------

    def set_active_trip(self, trip_id: str | None) -> StoreSnapshot:
        return self._store.set_active_trip(trip_id)

    def add_trip(
        self,
        title: str,
        start_date: str,
        end_date: str,
        *,
        cover_image: str | None = None,
        status: TripStatus | str = TripStatus.PLANNING,
    ) -> StoreSnapshot:
        """Create a trip (seeded with the default packing list) and make it active."""
        trip = mutations.new_trip(
            title=title,
            start_date=start_date,
            end_date=end_date,
            cover_image=cover_image,
            status=status,
        )
        snapshot = self._store.add_trip(trip, activate=True)
        self._persist(trip)
        return snapshot

    def delete_trip(self, trip_id: str) -> StoreSnapshot:
        """Remove a trip locally and issue the remote delete."""
        if self._store.get_trip(trip_id) is None:
            return self._store.snapshot
        snapshot = self._store.remove_trip(trip_id)
        self._schedule("Delete", trip_id, lambda: self._repository.delete(trip_id))
        return snapshot

    def import_trips(self, payloads: Iterable[Any]) -> StoreSnapshot:
        """Replace the whole trip list with sanitized imported trips and persist each one."""
        trips = parse_trips(payloads)
        active = self._store.active_trip_id
        if active is None or all(trip.id != active for trip in trips):
            active = trips[0].id if trips else None
        snapshot = self._store.replace(trips, active_trip_id=active, source=ChangeSource.IMPORT)
        for trip in trips:
            self._persist(trip)
        return snapshot

    def update_trip(self, trip_id: str, changes: Payload | None = None, **fields: Any) -> StoreSnapshot:
        merged = {**(changes or {}), **fields}
        return self._commit(trip_id, lambda trip: mutations.update_trip(trip, merged))

    def update_trip_settings(
        self,
        trip_id: str,
        title: str,
        start_date: str,
        cover_image: str | None = None,
    ) -> StoreSnapshot:
        """Rename, move the start date (re-dating every day) and set the cover.

        Raises ``ValueError`` for a malformed start date before anything changes.
        """
        mutations.parse_iso_date(start_date)
        return self._commit(
            trip_id,
            lambda trip: mutations.update_trip_settings(
                trip,
                title=title,
                start_date=start_date,
                cover_image=cover_image,
            ),
        )

    def update_budget_total(self, trip_id: str, total: float) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.update_trip(trip, {"budget_total": total}))

    def update_exchange_rate(self, trip_id: str, rate: float) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.update_trip(trip, {"exchange_rate": rate}))

    # ------------------------------------------------------------------
    # Days
    # ------------------------------------------------------------------

    def add_day(self, trip_id: str) -> StoreSnapshot:
        return self._commit(trip_id, mutations.add_day)

    def insert_day(self, trip_id: str, day_index: int) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.insert_day(trip, day_index))

    def delete_day(self, trip_id: str, day_index: int) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.delete_day(trip, day_index))

    def update_day_location(self, trip_id: str, day_index: int, location: str | None) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.update_day_location(trip, day_index, location))

    def update_day_cover_image(self, trip_id: str, day_index: int, cover_image: str | None) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.update_day_cover_image(trip, day_index, cover_image))

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    def add_activity(self, trip_id: str, day_index: int, activity: Activity | Payload) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.add_activity(trip, day_index, activity))

    def update_activity(
        self,
        trip_id: str,
        day_index: int,
        activity_id: str,
        changes: Payload | None = None,
        **fields: Any,
    ) -> StoreSnapshot:
        merged = {**(changes or {}), **fields}
        return self._commit(
            trip_id,
            lambda trip: mutations.update_activity(trip, day_index, activity_id, merged),
        )

    def delete_activity(self, trip_id: str, day_index: int, activity_id: str) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.delete_activity(trip, day_index, activity_id))

    def update_activity_order(
        self,
        trip_id: str,
        day_index: int,
        ordered: Iterable[Activity | str | Payload],
        *,
        strict: bool = False,
    ) -> StoreSnapshot:
        """Apply a drag-reorder. See :func:`tripsync.state.ordering.apply_manual_order`."""
        items = list(ordered)
        return self._commit(
            trip_id,
            lambda trip: mutations.update_activity_order(trip, day_index, items, strict=strict),
        )

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def add_member(self, trip_id: str, member: Member | Payload) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.add_member(trip, member))

    def update_member(self, trip_id: str, member_id: str, changes: Payload | None = None, **fields: Any) -> StoreSnapshot:
        merged = {**(changes or {}), **fields}
        return self._commit(trip_id, lambda trip: mutations.update_member(trip, member_id, merged))

    def delete_member(self, trip_id: str, member_id: str) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.delete_member(trip, member_id))

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def add_booking(self, trip_id: str, booking: Booking | Payload) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.add_booking(trip, booking))

    def update_booking(
        self,
        trip_id: str,
        booking_id: str,
        changes: Payload | None = None,
        **fields: Any,
    ) -> StoreSnapshot:
        merged = {**(changes or {}), **fields}
        return self._commit(trip_id, lambda trip: mutations.update_booking(trip, booking_id, merged))

    def delete_booking(self, trip_id: str, booking_id: str) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.delete_booking(trip, booking_id))

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def add_expense(self, trip_id: str, expense: Expense | Payload) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.add_expense(trip, expense))

    def update_expense(
        self,
        trip_id: str,
        expense_id: str,
        changes: Payload | None = None,
        **fields: Any,
    ) -> StoreSnapshot:
        merged = {**(changes or {}), **fields}
        return self._commit(trip_id, lambda trip: mutations.update_expense(trip, expense_id, merged))

    def delete_expense(self, trip_id: str, expense_id: str) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.delete_expense(trip, expense_id))

    # ------------------------------------------------------------------
    # Plan items
    # ------------------------------------------------------------------

    def add_plan_item(self, trip_id: str, item: PlanItem | Payload) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.add_plan_item(trip, item))

    def update_plan_item(
        self,
        trip_id: str,
        item_id: str,
        changes: Payload | None = None,
        **fields: Any,
    ) -> StoreSnapshot:
        merged = {**(changes or {}), **fields}
        return self._commit(trip_id, lambda trip: mutations.update_plan_item(trip, item_id, merged))

    def toggle_plan_item(self, trip_id: str, item_id: str) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.toggle_plan_item(trip, item_id))

    def delete_plan_item(self, trip_id: str, item_id: str) -> StoreSnapshot:
        return self._commit(trip_id, lambda trip: mutations.delete_plan_item(trip, item_id))

    def reorder_plan_items(
        self,
        trip_id: str,
        ordered: Iterable[PlanItem | str | Payload],
        *,
        strict: bool = False,
    ) -> StoreSnapshot:
        items = list(ordered)
        return self._commit(trip_id, lambda trip: mutations.reorder_plan_items(trip, items, strict=strict))
