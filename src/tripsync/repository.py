"""Trip repository boundary.

The core only depends on the :class:`TripRepository` protocol: bulk load,
whole-trip upsert, delete, and a per-trip change subscription.  Payloads
handed back by a repository are *raw* blobs; the caller runs them through
:mod:`tripsync.ingestion.sanitize` before they reach the store.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from tripsync._mqtt import ChangeFeedRuntime, FeedMessage, topic_for
from tripsync._transport import Transport
from tripsync.config import TripSyncConfig
from tripsync.exceptions import TripSyncRepositoryError, TripSyncTransportError
from tripsync.ingestion.feed import extract_trip_payload
from tripsync.models.trip import Trip

_logger = logging.getLogger(__name__)

TripChangeHandler = Callable[[dict[str, Any]], None]


class Subscription(Protocol):
    def close(self) -> None: ...


class TripRepository(Protocol):
    """Contract the core consumes for remote persistence."""

    async def load_all(self) -> list[dict[str, Any]]:
        """Return the raw blob of every stored trip."""
        ...

    async def upsert(self, trip: Trip) -> None:
        """Replace the whole stored trip keyed by ``trip.id``.

        Raises :class:`TripSyncRepositoryError` on failure.
        """
        ...

    async def delete(self, trip_id: str) -> None: ...

    def subscribe(self, trip_id: str, on_change: TripChangeHandler) -> Subscription:
        """Deliver the raw blob of *trip_id* whenever it changes remotely (at least once)."""
        ...


def build_row(trip: Trip, *, now: datetime | None = None) -> dict[str, Any]:
    """Row stored for a trip: id, title, full blob and a last-updated timestamp."""
    stamp = now or datetime.now(UTC)
    return {
        "id": trip.id,
        "title": trip.title,
        "content": trip.to_payload(),
        "updated_at": stamp.isoformat(),
    }


@dataclass
class _HandlerSubscription:
    trip_id: str
    handler: TripChangeHandler
    _close: Callable[[_HandlerSubscription], None]
    closed: bool = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._close(self)


class _HandlerRegistry:
    """Per-trip change handlers shared by the repository implementations."""

    def __init__(self, on_empty: Callable[[str], None] | None = None) -> None:
        self._handlers: dict[str, list[_HandlerSubscription]] = {}
        self._on_empty = on_empty

    @property
    def trip_ids(self) -> list[str]:
        return sorted(self._handlers)

    def add(self, trip_id: str, handler: TripChangeHandler) -> tuple[_HandlerSubscription, bool]:
        """Register a handler. The flag is True when this is the first handler for the trip."""
        subscription = _HandlerSubscription(trip_id=trip_id, handler=handler, _close=self._remove)
        subscriptions = self._handlers.setdefault(trip_id, [])
        subscriptions.append(subscription)
        return subscription, len(subscriptions) == 1

    def _remove(self, subscription: _HandlerSubscription) -> None:
        subscriptions = self._handlers.get(subscription.trip_id, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)
        if not subscriptions and self._handlers.pop(subscription.trip_id, None) is not None:
            if self._on_empty is not None:
                self._on_empty(subscription.trip_id)

    def dispatch(self, trip_id: str, payload: dict[str, Any]) -> None:
        for subscription in list(self._handlers.get(trip_id, [])):
            try:
                subscription.handler(copy.deepcopy(payload))
            except Exception:
                _logger.debug("Change handler failed for trip=%s", trip_id, exc_info=True)


class RestTripRepository:
    """Repository backed by a REST table with one row per trip and an MQTT change feed."""

    def __init__(self, config: TripSyncConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport
        self._handlers = _HandlerRegistry(on_empty=self._unsubscribe_topic)
        self._feed: ChangeFeedRuntime | None = None

    @property
    def _path(self) -> str:
        return f"/{self._config.table}"

    @property
    def feed(self) -> ChangeFeedRuntime | None:
        return self._feed

    async def load_rows(self) -> list[dict[str, Any]]:
        try:
            rows = await self._transport.request("GET", self._path, params={"select": "*"})
        except TripSyncTransportError as exc:
            raise TripSyncRepositoryError(f"Loading trips failed: {exc}", operation="load_all") from exc
        if not isinstance(rows, list):
            raise TripSyncRepositoryError("Loading trips returned a non-list body", operation="load_all")
        return [row for row in rows if isinstance(row, dict)]

    async def load_all(self) -> list[dict[str, Any]]:
        blobs: list[dict[str, Any]] = []
        for row in await self.load_rows():
            blob = extract_trip_payload(row)
            if blob is None:
                _logger.debug("Skipping row without trip content id=%s", row.get("id"))
                continue
            blobs.append(blob)
        return blobs

    async def upsert(self, trip: Trip) -> None:
        try:
            await self._transport.request(
                "POST",
                self._path,
                params={"on_conflict": "id"},
                body=build_row(trip),
                headers={"prefer": "resolution=merge-duplicates,return=minimal"},
            )
        except TripSyncTransportError as exc:
            raise TripSyncRepositoryError(
                f"Saving trip {trip.id} failed: {exc}",
                operation="upsert",
                trip_id=trip.id,
            ) from exc

    async def delete(self, trip_id: str) -> None:
        try:
            await self._transport.request("DELETE", self._path, params={"id": f"eq.{trip_id}"})
        except TripSyncTransportError as exc:
            raise TripSyncRepositoryError(
                f"Deleting trip {trip_id} failed: {exc}",
                operation="delete",
                trip_id=trip_id,
            ) from exc

    # ------------------------------------------------------------------
    # Change feed
    # ------------------------------------------------------------------

    async def start_feed(self) -> None:
        """Best-effort change-feed startup (failures must not break REST flow)."""
        if not self._config.feed_enabled:
            return
        if self._feed is not None and self._feed.is_running:
            return
        loop = asyncio.get_running_loop()
        runtime = ChangeFeedRuntime(
            loop=loop,
            config=self._config.feed,
            on_message=self.handle_feed_message,
            client_id=f"tripsync-{uuid.uuid4().hex[:12]}",
            logger=_logger,
        )
        for trip_id in self._handlers.trip_ids:
            runtime.subscribe(topic_for(self._config.feed.topic_prefix, trip_id))
        try:
            await loop.run_in_executor(None, runtime.start)
        except Exception:
            _logger.debug("Change feed startup failed", exc_info=True)
            return
        self._feed = runtime

    async def stop_feed(self) -> None:
        runtime = self._feed
        self._feed = None
        if runtime is None:
            return
        try:
            await asyncio.get_running_loop().run_in_executor(None, runtime.stop)
        except Exception:
            _logger.debug("Change feed stop failed", exc_info=True)

    def handle_feed_message(self, message: FeedMessage) -> None:
        """Dispatch a decoded feed message to the handlers of its trip."""
        blob = extract_trip_payload(message.payload)
        if blob is None:
            _logger.debug("Change-feed message without trip content topic=%s", message.topic)
            return
        blob.setdefault("id", message.trip_id)
        self._handlers.dispatch(message.trip_id, blob)

    def subscribe(self, trip_id: str, on_change: TripChangeHandler) -> Subscription:
        subscription, first = self._handlers.add(trip_id, on_change)
        if first and self._feed is not None:
            self._feed.subscribe(topic_for(self._config.feed.topic_prefix, trip_id))
        return subscription

    def _unsubscribe_topic(self, trip_id: str) -> None:
        if self._feed is not None:
            self._feed.unsubscribe(topic_for(self._config.feed.topic_prefix, trip_id))


@dataclass
class InMemoryTripRepository:
    """Dict-backed repository for tests and offline use.

    ``push()`` simulates a change-feed message; ``fail_next`` queues
    exceptions raised by the next calls; ``hold`` (when set) keeps upserts
    in flight until the event is set; ``echo_upserts`` broadcasts each
    successful upsert back to subscribers, like a realtime channel does.
    """

    rows: dict[str, dict[str, Any]] = field(default_factory=dict)
    calls: list[tuple[str, str | None]] = field(default_factory=list)
    fail_next: list[Exception] = field(default_factory=list)
    hold: asyncio.Event | None = None
    echo_upserts: bool = False
    _handlers: _HandlerRegistry = field(default_factory=_HandlerRegistry, init=False, repr=False)

    def _maybe_fail(self) -> None:
        if self.fail_next:
            raise self.fail_next.pop(0)

    def seed(self, payload: dict[str, Any]) -> None:
        """Store a raw blob as-is (may be malformed on purpose)."""
        trip_id = str(payload.get("id"))
        self.rows[trip_id] = {"id": trip_id, "title": payload.get("title"), "content": copy.deepcopy(payload)}

    async def load_all(self) -> list[dict[str, Any]]:
        self.calls.append(("load_all", None))
        self._maybe_fail()
        return [copy.deepcopy(row["content"]) for row in self.rows.values()]

    async def upsert(self, trip: Trip) -> None:
        self.calls.append(("upsert", trip.id))
        if self.hold is not None:
            await self.hold.wait()
        self._maybe_fail()
        row = build_row(trip)
        self.rows[trip.id] = row
        if self.echo_upserts:
            self._handlers.dispatch(trip.id, copy.deepcopy(row["content"]))

    async def delete(self, trip_id: str) -> None:
        self.calls.append(("delete", trip_id))
        self._maybe_fail()
        self.rows.pop(trip_id, None)

    def subscribe(self, trip_id: str, on_change: TripChangeHandler) -> Subscription:
        subscription, _first = self._handlers.add(trip_id, on_change)
        return subscription

    def push(self, trip_id: str, payload: Any) -> None:
        """Deliver *payload* to subscribers of *trip_id* as a feed message would."""
        blob = extract_trip_payload(payload) if isinstance(payload, dict) else None
        if blob is None:
            _logger.debug("push() without trip content for trip=%s", trip_id)
            return
        self._handlers.dispatch(trip_id, blob)

    def stored_trip(self, trip_id: str) -> dict[str, Any] | None:
        row = self.rows.get(trip_id)
        return copy.deepcopy(row["content"]) if row is not None else None
