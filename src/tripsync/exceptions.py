"""Custom exception hierarchy for tripsync."""

from __future__ import annotations


class TripSyncError(Exception):
    """Base exception for all tripsync errors."""


class TripSyncConfigError(TripSyncError):
    """Invalid or missing configuration."""


class TripSyncTransportError(TripSyncError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class TripSyncRepositoryError(TripSyncError):
    """A repository call (load, upsert, delete) was rejected or failed.

    Raised by :class:`tripsync.repository.TripRepository` implementations.
    The dispatcher never retries these; it reports them through the
    ``on_sync_error`` callback and leaves local state untouched.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        trip_id: str | None = None,
    ) -> None:
        self.operation = operation
        self.trip_id = trip_id
        super().__init__(message)


class ReorderMismatchError(TripSyncError, ValueError):
    """A strict manual reorder did not contain exactly the original entities."""

    def __init__(
        self,
        message: str,
        *,
        missing: frozenset[str] = frozenset(),
        unexpected: frozenset[str] = frozenset(),
    ) -> None:
        self.missing = missing
        self.unexpected = unexpected
        super().__init__(message)
