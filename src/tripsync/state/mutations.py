"""Pure trip transforms.

Each function takes a :class:`~tripsync.models.Trip` snapshot and returns
a new one; untouched sub-entities are shared with the input.  When the
target (day, entity) does not exist the input trip itself is returned,
so callers detect a no-op with ``result is trip``.

Persistence and store bookkeeping live in :mod:`tripsync.dispatcher`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import date, timedelta
from typing import Any, TypeVar

from tripsync._constants import DEFAULT_DAY_WEATHER, DEFAULT_PACKING_LIST
from tripsync.models._base import TripBaseModel
from tripsync.models.activity import Activity
from tripsync.models.booking import Booking, merge_booking, parse_booking
from tripsync.models.expense import Expense
from tripsync.models.plan import PlanCategory, PlanItem, Priority
from tripsync.models.trip import DailyItinerary, Member, Trip, TripStatus
from tripsync.state.ordering import apply_manual_order, sort_activities_by_time

_logger = logging.getLogger(__name__)

TModel = TypeVar("TModel", bound=TripBaseModel)

Payload = Mapping[str, Any]


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def parse_iso_date(value: str) -> date:
    """Parse ``YYYY-MM-DD`` (a trailing time part is ignored)."""
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise ValueError(f"invalid ISO date: {value!r}") from exc


def _create(model_cls: type[TModel], payload: TModel | Payload) -> TModel:
    if isinstance(payload, model_cls):
        return payload
    return model_cls.model_validate(dict(payload))


def _touches_time(changes: Payload) -> bool:
    return "time" in Activity.normalize_changes(changes)


def _update_by_id(
    entities: tuple[TModel, ...],
    entity_id: str,
    transform: Callable[[TModel], TModel],
) -> tuple[TModel, ...] | None:
    """Replace the entity with *entity_id*; ``None`` when it is absent."""
    for index, entity in enumerate(entities):
        if entity.id == entity_id:
            return entities[:index] + (transform(entity),) + entities[index + 1 :]
    return None


def _remove_by_id(entities: tuple[TModel, ...], entity_id: str) -> tuple[TModel, ...] | None:
    kept = tuple(entity for entity in entities if entity.id != entity_id)
    if len(kept) == len(entities):
        return None
    return kept


def _with_day(trip: Trip, day_index: int, transform: Callable[[DailyItinerary], DailyItinerary]) -> Trip:
    if not trip.has_day(day_index):
        _logger.debug("Day index %d out of range for trip=%s (%d days)", day_index, trip.id, trip.day_count)
        return trip
    current = trip.daily_itinerary[day_index]
    updated = transform(current)
    if updated is current:
        return trip
    days = trip.daily_itinerary[:day_index] + (updated,) + trip.daily_itinerary[day_index + 1 :]
    return trip.model_copy(update={"daily_itinerary": days})


def _renumber(days: Iterable[DailyItinerary]) -> tuple[DailyItinerary, ...]:
    renumbered: list[DailyItinerary] = []
    for index, day in enumerate(days):
        number = index + 1
        renumbered.append(day if day.day == number else day.model_copy(update={"day": number}))
    return tuple(renumbered)


def _redate(days: Iterable[DailyItinerary], start: date) -> tuple[DailyItinerary, ...]:
    redated: list[DailyItinerary] = []
    for index, day in enumerate(days):
        iso = (start + timedelta(days=index)).isoformat()
        redated.append(day if day.date == iso else day.model_copy(update={"date": iso}))
    return tuple(redated)


def _next_day_date(trip: Trip) -> str:
    if not trip.daily_itinerary:
        return trip.start_date
    try:
        last = parse_iso_date(trip.daily_itinerary[-1].date)
    except ValueError:
        try:
            last = parse_iso_date(trip.start_date) + timedelta(days=trip.day_count - 1)
        except ValueError:
            return ""
    return (last + timedelta(days=1)).isoformat()


# ------------------------------------------------------------------
# Trip-level
# ------------------------------------------------------------------


def new_trip(
    *,
    title: str,
    start_date: str,
    end_date: str,
    cover_image: str | None = None,
    status: TripStatus | str = TripStatus.PLANNING,
) -> Trip:
    """Build a fresh trip seeded with the default packing checklist."""
    plans = tuple(
        PlanItem(category=PlanCategory.PACKING, text=text, priority=Priority.HIGH) for text in DEFAULT_PACKING_LIST
    )
    return Trip(
        title=title,
        start_date=start_date,
        end_date=end_date,
        cover_image=cover_image,
        status=TripStatus(status),
        plans=plans,
    )


def update_trip(trip: Trip, changes: Payload) -> Trip:
    """Shallow field update; ``id`` cannot change."""
    return trip.merged(changes)


def recompute_dates(trip: Trip, start_date: str) -> Trip:
    """Date every day as ``start_date + index`` and align ``end_date``.

    Idempotent: recomputing with the same start date yields an equal trip.
    """
    start = parse_iso_date(start_date)
    days = _redate(trip.daily_itinerary, start)
    end = start + timedelta(days=max(len(days) - 1, 0))
    return trip.model_copy(
        update={
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "daily_itinerary": days,
        }
    )


def update_trip_settings(trip: Trip, *, title: str, start_date: str, cover_image: str | None) -> Trip:
    updated = trip.model_copy(update={"title": title, "cover_image": cover_image})
    return recompute_dates(updated, start_date)


# ------------------------------------------------------------------
# Days
# ------------------------------------------------------------------


def add_day(trip: Trip) -> Trip:
    """Append a day dated one after the last day (the start date when empty)."""
    next_date = _next_day_date(trip)
    day = DailyItinerary(day=trip.day_count + 1, date=next_date, weather=DEFAULT_DAY_WEATHER)
    return trip.model_copy(update={"end_date": next_date, "daily_itinerary": trip.daily_itinerary + (day,)})


def insert_day(trip: Trip, day_index: int) -> Trip:
    """Insert an empty day before *day_index* (clamped), renumbering and re-dating all days."""
    index = min(max(day_index, 0), trip.day_count)
    day = DailyItinerary(weather=DEFAULT_DAY_WEATHER)
    days = _renumber(trip.daily_itinerary[:index] + (day,) + trip.daily_itinerary[index:])
    inserted = trip.model_copy(update={"daily_itinerary": days})
    if not trip.start_date:
        return inserted
    return recompute_dates(inserted, trip.start_date)


def delete_day(trip: Trip, day_index: int) -> Trip:
    """Remove a day and renumber the rest contiguously from 1.

    Calendar dates of the remaining days are left as they were.
    """
    if not trip.has_day(day_index):
        _logger.debug("Day index %d out of range for trip=%s", day_index, trip.id)
        return trip
    remaining = trip.daily_itinerary[:day_index] + trip.daily_itinerary[day_index + 1 :]
    return trip.model_copy(update={"daily_itinerary": _renumber(remaining)})


def update_day_location(trip: Trip, day_index: int, location: str | None) -> Trip:
    return _with_day(trip, day_index, lambda day: day.model_copy(update={"custom_location": location}))


def update_day_cover_image(trip: Trip, day_index: int, cover_image: str | None) -> Trip:
    return _with_day(trip, day_index, lambda day: day.model_copy(update={"cover_image": cover_image}))


# ------------------------------------------------------------------
# Activities
# ------------------------------------------------------------------


def add_activity(trip: Trip, day_index: int, payload: Activity | Payload) -> Trip:
    """Append an activity to a day; re-sorts by time when the payload sets ``time``.

    New activities always start unvisited.  A missing id is generated.
    """
    activity = _create(Activity, payload)
    if activity.is_visited:
        activity = activity.model_copy(update={"is_visited": False})
    resort = isinstance(payload, Activity) or _touches_time(payload)

    def _append(day: DailyItinerary) -> DailyItinerary:
        activities = day.activities + (activity,)
        if resort:
            activities = sort_activities_by_time(activities)
        return day.model_copy(update={"activities": activities})

    return _with_day(trip, day_index, _append)


def update_activity(trip: Trip, day_index: int, activity_id: str, changes: Payload) -> Trip:
    resort = _touches_time(changes)

    def _update(day: DailyItinerary) -> DailyItinerary:
        activities = _update_by_id(day.activities, activity_id, lambda activity: activity.merged(changes))
        if activities is None:
            _logger.debug("Activity id=%s not found on day %d", activity_id, day.day)
            return day
        if resort:
            activities = sort_activities_by_time(activities)
        return day.model_copy(update={"activities": activities})

    return _with_day(trip, day_index, _update)


def delete_activity(trip: Trip, day_index: int, activity_id: str) -> Trip:
    def _delete(day: DailyItinerary) -> DailyItinerary:
        activities = _remove_by_id(day.activities, activity_id)
        if activities is None:
            return day
        return day.model_copy(update={"activities": activities})

    return _with_day(trip, day_index, _delete)


def update_activity_order(
    trip: Trip,
    day_index: int,
    ordered: Iterable[Activity | str | Payload],
    *,
    strict: bool = False,
) -> Trip:
    """Replace a day's activities with a manual order (no time sort)."""

    def _reorder(day: DailyItinerary) -> DailyItinerary:
        activities = apply_manual_order(day.activities, ordered, strict=strict)
        return day.model_copy(update={"activities": activities})

    return _with_day(trip, day_index, _reorder)


# ------------------------------------------------------------------
# Members
# ------------------------------------------------------------------


def add_member(trip: Trip, payload: Member | Payload) -> Trip:
    return trip.model_copy(update={"members": trip.members + (_create(Member, payload),)})


def update_member(trip: Trip, member_id: str, changes: Payload) -> Trip:
    members = _update_by_id(trip.members, member_id, lambda member: member.merged(changes))
    return trip if members is None else trip.model_copy(update={"members": members})


def delete_member(trip: Trip, member_id: str) -> Trip:
    """Remove a member; expense and plan references to it are left dangling."""
    members = _remove_by_id(trip.members, member_id)
    return trip if members is None else trip.model_copy(update={"members": members})


# ------------------------------------------------------------------
# Bookings
# ------------------------------------------------------------------


def add_booking(trip: Trip, payload: Booking | Payload) -> Trip:
    booking = payload if isinstance(payload, TripBaseModel) else parse_booking(payload)
    return trip.model_copy(update={"bookings": trip.bookings + (booking,)})


def update_booking(trip: Trip, booking_id: str, changes: Payload) -> Trip:
    bookings = _update_by_id(trip.bookings, booking_id, lambda booking: merge_booking(booking, changes))
    return trip if bookings is None else trip.model_copy(update={"bookings": bookings})


def delete_booking(trip: Trip, booking_id: str) -> Trip:
    bookings = _remove_by_id(trip.bookings, booking_id)
    return trip if bookings is None else trip.model_copy(update={"bookings": bookings})


# ------------------------------------------------------------------
# Expenses
# ------------------------------------------------------------------


def add_expense(trip: Trip, payload: Expense | Payload) -> Trip:
    """Prepend an expense (the list is kept newest first)."""
    return trip.model_copy(update={"expenses": (_create(Expense, payload),) + trip.expenses})


def update_expense(trip: Trip, expense_id: str, changes: Payload) -> Trip:
    expenses = _update_by_id(trip.expenses, expense_id, lambda expense: expense.merged(changes))
    return trip if expenses is None else trip.model_copy(update={"expenses": expenses})


def delete_expense(trip: Trip, expense_id: str) -> Trip:
    expenses = _remove_by_id(trip.expenses, expense_id)
    return trip if expenses is None else trip.model_copy(update={"expenses": expenses})


# ------------------------------------------------------------------
# Plan items
# ------------------------------------------------------------------


def add_plan_item(trip: Trip, payload: PlanItem | Payload) -> Trip:
    return trip.model_copy(update={"plans": trip.plans + (_create(PlanItem, payload),)})


def update_plan_item(trip: Trip, item_id: str, changes: Payload) -> Trip:
    plans = _update_by_id(trip.plans, item_id, lambda item: item.merged(changes))
    return trip if plans is None else trip.model_copy(update={"plans": plans})


def toggle_plan_item(trip: Trip, item_id: str) -> Trip:
    plans = _update_by_id(
        trip.plans,
        item_id,
        lambda item: item.model_copy(update={"is_completed": not item.is_completed}),
    )
    return trip if plans is None else trip.model_copy(update={"plans": plans})


def delete_plan_item(trip: Trip, item_id: str) -> Trip:
    plans = _remove_by_id(trip.plans, item_id)
    return trip if plans is None else trip.model_copy(update={"plans": plans})


def reorder_plan_items(
    trip: Trip,
    ordered: Iterable[PlanItem | str | Payload],
    *,
    strict: bool = False,
) -> Trip:
    plans = apply_manual_order(trip.plans, ordered, strict=strict)
    return trip.model_copy(update={"plans": plans})
