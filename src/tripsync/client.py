"""High-level async client wiring store, dispatcher, repository and cache."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from tripsync._cache import LocalCache
from tripsync._transport import RestTransport
from tripsync.config import TripSyncConfig
from tripsync.dispatcher import SyncErrorHandler, TripDispatcher
from tripsync.exceptions import TripSyncError
from tripsync.ingestion.sanitize import parse_trip, parse_trips
from tripsync.repository import RestTripRepository, Subscription, TripRepository
from tripsync.state.events import ChangeSource, StoreSnapshot
from tripsync.state.store import StateStore

_logger = logging.getLogger(__name__)


class TripSyncClient:
    """Application root for trip synchronization.

    Owns the :class:`StateStore` and the :class:`TripDispatcher`; builds a
    REST repository with an MQTT change feed unless one is injected.

    Usage::

        async with TripSyncClient(TripSyncConfig.from_env()) as client:
            await client.load_trips()
            client.subscribe(client.store.active_trip_id)
            client.dispatcher.add_day(client.store.active_trip_id)
    """

    def __init__(
        self,
        config: TripSyncConfig,
        *,
        repository: TripRepository | None = None,
        session: aiohttp.ClientSession | None = None,
        on_sync_error: SyncErrorHandler | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._repository = repository
        self._on_sync_error = on_sync_error
        self._store = StateStore(revision_guard=config.revision_guard)
        self._dispatcher: TripDispatcher | None = None
        self._cache = LocalCache(config.cache_path, config.cache_schema_version) if config.cache_path else None
        self._subscriptions: dict[str, Subscription] = {}

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TripSyncClient:
        if self._repository is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            transport = RestTransport(self._config, self._http_session)
            self._repository = RestTripRepository(self._config, transport)
        self._dispatcher = TripDispatcher(self._store, self._repository, on_sync_error=self._report)
        if isinstance(self._repository, RestTripRepository):
            await self._repository.start_feed()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._dispatcher is not None:
            await self._dispatcher.drain()
        for trip_id in list(self._subscriptions):
            self.unsubscribe(trip_id)
        if isinstance(self._repository, RestTripRepository):
            await self._repository.stop_feed()
        if self._cache is not None:
            try:
                self.save_cache()
            except OSError:
                _logger.warning("Saving trip cache failed path=%s", self._cache.path, exc_info=True)
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._dispatcher = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> TripSyncConfig:
        return self._config

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def dispatcher(self) -> TripDispatcher:
        if self._dispatcher is None:
            raise TripSyncError("Client not initialized. Use 'async with TripSyncClient(...) as client:'")
        return self._dispatcher

    @property
    def repository(self) -> TripRepository | None:
        return self._repository

    @property
    def subscribed_trip_ids(self) -> list[str]:
        return sorted(self._subscriptions)

    def _require_repository(self) -> TripRepository:
        if self._repository is None:
            raise TripSyncError("Client not initialized. Use 'async with TripSyncClient(...) as client:'")
        return self._repository

    def _report(self, trip_id: str | None, exc: Exception) -> None:
        if self._on_sync_error is None:
            return
        try:
            self._on_sync_error(trip_id, exc)
        except Exception:
            _logger.debug("on_sync_error callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Remote load and change feed
    # ------------------------------------------------------------------

    async def load_trips(self) -> StoreSnapshot:
        """Replace the trip list with the sanitized remote copy.

        On failure the local state is left untouched and the error is
        reported through ``on_sync_error`` with a ``None`` trip id.
        """
        repository = self._require_repository()
        self._store.begin_sync()
        try:
            try:
                payloads = await repository.load_all()
            except Exception as exc:
                _logger.warning("Loading trips failed: %s", exc)
                self._report(None, exc)
                return self._store.snapshot
            trips = parse_trips(payloads)
            active = self._store.active_trip_id
            if active is None or all(trip.id != active for trip in trips):
                active = trips[0].id if trips else None
            _logger.debug("Loaded %d trips (active=%s)", len(trips), active)
            return self._store.replace(trips, active_trip_id=active, source=ChangeSource.LOAD)
        finally:
            self._store.end_sync()

    def _on_remote_change(self, trip_id: str, payload: dict[str, Any]) -> None:
        trip = parse_trip(payload)
        if trip is None:
            _logger.debug("Change-feed payload for trip=%s is not a trip", trip_id)
            return
        if trip.id != trip_id:
            _logger.debug("Change-feed payload id=%s does not match subscription trip=%s", trip.id, trip_id)
            return
        self._store.replace_trip(trip, source=ChangeSource.FEED)

    def subscribe(self, trip_id: str) -> None:
        """Apply remote pushes for *trip_id* as whole-trip replacements."""
        if trip_id in self._subscriptions:
            return
        repository = self._require_repository()
        self._subscriptions[trip_id] = repository.subscribe(
            trip_id,
            lambda payload: self._on_remote_change(trip_id, payload),
        )

    def unsubscribe(self, trip_id: str) -> None:
        subscription = self._subscriptions.pop(trip_id, None)
        if subscription is not None:
            subscription.close()

    # ------------------------------------------------------------------
    # Local cache and export
    # ------------------------------------------------------------------

    def restore_cache(self) -> StoreSnapshot:
        """Seed the store from the local cache (a no-op without a configured cache path)."""
        if self._cache is None:
            return self._store.snapshot
        cached = self._cache.load()
        return self._store.replace(
            cached.trips,
            active_trip_id=cached.active_trip_id,
            source=ChangeSource.CACHE,
        )

    def save_cache(self) -> None:
        if self._cache is None:
            return
        self._cache.save(self._store.snapshot)

    def export_trips(self) -> list[dict[str, Any]]:
        """JSON-ready copy of every trip, in the stored wire format."""
        return [trip.to_payload() for trip in self._store.trips]
