"""Trip aggregate model."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from tripsync._constants import DEFAULT_EXCHANGE_RATE
from tripsync.ingestion.normalize import safe_float, safe_int
from tripsync.models._base import TripBaseModel, TripEnum, new_id
from tripsync.models.activity import Activity
from tripsync.models.booking import Booking
from tripsync.models.expense import Expense
from tripsync.models.plan import PlanItem


class TripStatus(TripEnum):
    PLANNING = "planning"
    ONGOING = "ongoing"
    COMPLETED = "completed"


class Member(TripBaseModel):
    """A trip participant."""

    id: str = Field(default_factory=new_id)
    name: str = ""
    avatar: str = ""


class DailyItinerary(TripBaseModel):
    """One day of the itinerary.

    ``day`` is 1-based and contiguous across ``Trip.daily_itinerary``;
    ``date`` is derived from the trip start date and the day's position.
    """

    day: int = 1
    date: str = ""
    weather: str | None = None
    cover_image: str | None = None
    custom_location: str | None = None
    activities: tuple[Activity, ...] = ()

    @field_validator("day", mode="before")
    @classmethod
    def _coerce_day(cls, value: Any) -> int:
        parsed = safe_int(value)
        return parsed if parsed is not None and parsed > 0 else 1

    def find_activity(self, activity_id: str) -> Activity | None:
        for activity in self.activities:
            if activity.id == activity_id:
                return activity
        return None


class Trip(TripBaseModel):
    """Top-level planning unit.

    Parameters
    ----------
    id : str
        Opaque trip id; also the key of the remote row.
    start_date, end_date : str
        ISO ``YYYY-MM-DD`` dates. ``end_date`` tracks the last itinerary day.
    budget_total : float
        Planned budget in the trip currency.
    exchange_rate : float
        Home-currency units per trip-currency unit.
    revision : int
        Monotonic local edit counter, carried in the blob so change-feed
        pushes can be compared when the revision guard is enabled.
    """

    id: str = Field(default_factory=new_id)
    title: str = ""
    start_date: str = ""
    end_date: str = ""
    cover_image: str | None = None
    status: TripStatus = TripStatus.PLANNING
    budget_total: float = 0.0
    exchange_rate: float = DEFAULT_EXCHANGE_RATE
    revision: int = 0
    members: tuple[Member, ...] = ()
    bookings: tuple[Booking, ...] = ()
    expenses: tuple[Expense, ...] = ()
    plans: tuple[PlanItem, ...] = ()
    daily_itinerary: tuple[DailyItinerary, ...] = ()

    @field_validator("budget_total", mode="before")
    @classmethod
    def _coerce_budget(cls, value: Any) -> float:
        parsed = safe_float(value)
        return parsed if parsed is not None else 0.0

    @field_validator("exchange_rate", mode="before")
    @classmethod
    def _coerce_rate(cls, value: Any) -> float:
        parsed = safe_float(value)
        return parsed if parsed is not None and parsed > 0 else DEFAULT_EXCHANGE_RATE

    @field_validator("revision", mode="before")
    @classmethod
    def _coerce_revision(cls, value: Any) -> int:
        parsed = safe_int(value)
        return parsed if parsed is not None and parsed > 0 else 0

    @property
    def day_count(self) -> int:
        return len(self.daily_itinerary)

    def has_day(self, day_index: int) -> bool:
        """Whether *day_index* (0-based) addresses an existing day."""
        return 0 <= day_index < len(self.daily_itinerary)

    def find_member(self, member_id: str | None) -> Member | None:
        """Resolve a member reference; dangling or empty ids resolve to ``None``."""
        if not member_id:
            return None
        for member in self.members:
            if member.id == member_id:
                return member
        return None
