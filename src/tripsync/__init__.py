"""tripsync - Client-side state synchronization for a collaborative trip planner."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tripsync")
except PackageNotFoundError:
    __version__ = "0+local"
from tripsync.client import TripSyncClient
from tripsync.config import FeedConfig, TripSyncConfig
from tripsync.dispatcher import TripDispatcher
from tripsync.exceptions import (
    ReorderMismatchError,
    TripSyncConfigError,
    TripSyncError,
    TripSyncRepositoryError,
    TripSyncTransportError,
)
from tripsync.ingestion.sanitize import parse_trip, parse_trips, sanitize_trip_payload
from tripsync.models import (
    Activity,
    Booking,
    BookingType,
    DailyItinerary,
    Expense,
    ExpenseCategory,
    FlightBooking,
    HotelBooking,
    Member,
    PlanCategory,
    PlanItem,
    Priority,
    RentalBooking,
    TicketBooking,
    Trip,
    TripStatus,
)
from tripsync.repository import InMemoryTripRepository, RestTripRepository, TripRepository
from tripsync.state.events import ChangeSource, StoreChange, StoreSnapshot
from tripsync.state.store import StateStore

__all__ = [
    "__version__",
    "Activity",
    "Booking",
    "BookingType",
    "ChangeSource",
    "DailyItinerary",
    "Expense",
    "ExpenseCategory",
    "FeedConfig",
    "FlightBooking",
    "HotelBooking",
    "InMemoryTripRepository",
    "Member",
    "PlanCategory",
    "PlanItem",
    "Priority",
    "RentalBooking",
    "ReorderMismatchError",
    "RestTripRepository",
    "StateStore",
    "StoreChange",
    "StoreSnapshot",
    "TicketBooking",
    "Trip",
    "TripDispatcher",
    "TripRepository",
    "TripStatus",
    "TripSyncClient",
    "TripSyncConfig",
    "TripSyncConfigError",
    "TripSyncError",
    "TripSyncRepositoryError",
    "TripSyncTransportError",
    "parse_trip",
    "parse_trips",
    "sanitize_trip_payload",
]
