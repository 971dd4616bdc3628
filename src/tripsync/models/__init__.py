"""Data models for stored trips."""

from tripsync.models._base import TripBaseModel, TripEnum, new_id
from tripsync.models.activity import Activity
from tripsync.models.booking import (
    Booking,
    BookingType,
    FlightBooking,
    HotelBooking,
    RentalBooking,
    TicketBooking,
    merge_booking,
    parse_booking,
    resolve_booking_type,
)
from tripsync.models.expense import Expense, ExpenseCategory
from tripsync.models.plan import PlanCategory, PlanItem, Priority
from tripsync.models.trip import DailyItinerary, Member, Trip, TripStatus

__all__ = [
    "Activity",
    "Booking",
    "BookingType",
    "DailyItinerary",
    "Expense",
    "ExpenseCategory",
    "FlightBooking",
    "HotelBooking",
    "Member",
    "PlanCategory",
    "PlanItem",
    "Priority",
    "RentalBooking",
    "TicketBooking",
    "Trip",
    "TripBaseModel",
    "TripEnum",
    "TripStatus",
    "merge_booking",
    "new_id",
    "parse_booking",
    "resolve_booking_type",
]
