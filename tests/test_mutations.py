"""Tests for the pure trip transforms."""

from __future__ import annotations

import pytest

from tripsync._constants import DEFAULT_PACKING_LIST
from tripsync.models import (
    Activity,
    DailyItinerary,
    Expense,
    FlightBooking,
    Member,
    PlanCategory,
    PlanItem,
    Priority,
    TicketBooking,
    Trip,
)
from tripsync.state import mutations


def _trip(days: int = 3, start: str = "2026-03-01") -> Trip:
    itinerary = tuple(
        DailyItinerary(
            day=index + 1,
            date=f"2026-03-{index + 1:02d}",
            activities=(Activity(id=f"d{index}-a", time="10:00"),),
        )
        for index in range(days)
    )
    return Trip(id="t1", title="Spring", start_date=start, end_date=f"2026-03-{days:02d}", daily_itinerary=itinerary)


# ------------------------------------------------------------------
# Trip-level
# ------------------------------------------------------------------


def test_new_trip_seeds_packing_list() -> None:
    trip = mutations.new_trip(title="Seoul", start_date="2026-06-01", end_date="2026-06-04")
    assert [item.text for item in trip.plans] == list(DEFAULT_PACKING_LIST)
    assert all(item.category == PlanCategory.PACKING for item in trip.plans)
    assert all(item.priority == Priority.HIGH for item in trip.plans)
    assert len({item.id for item in trip.plans}) == len(trip.plans)


def test_update_trip_never_changes_id() -> None:
    trip = _trip()
    updated = mutations.update_trip(trip, {"id": "other", "title": "Renamed", "budgetTotal": 900})
    assert updated.id == "t1"
    assert updated.title == "Renamed"
    assert updated.budget_total == 900.0
    assert updated.daily_itinerary is trip.daily_itinerary


class TestRecomputeDates:
    def test_days_follow_start_date(self) -> None:
        trip = mutations.update_trip_settings(_trip(), title="Moved", start_date="2026-04-29", cover_image="c.jpg")
        assert [day.date for day in trip.daily_itinerary] == ["2026-04-29", "2026-04-30", "2026-05-01"]
        assert trip.start_date == "2026-04-29"
        assert trip.end_date == "2026-05-01"
        assert trip.title == "Moved"
        assert trip.cover_image == "c.jpg"

    def test_idempotent(self) -> None:
        once = mutations.recompute_dates(_trip(), "2026-07-01")
        twice = mutations.recompute_dates(once, "2026-07-01")
        assert twice == once
        assert twice.daily_itinerary[0] is once.daily_itinerary[0]

    def test_no_days_end_equals_start(self) -> None:
        trip = mutations.recompute_dates(_trip(days=0), "2026-07-01")
        assert trip.end_date == "2026-07-01"

    def test_invalid_date_raises(self) -> None:
        with pytest.raises(ValueError):
            mutations.recompute_dates(_trip(), "next tuesday")


# ------------------------------------------------------------------
# Days
# ------------------------------------------------------------------


class TestDays:
    @pytest.mark.parametrize("k", [0, 1, 2, 4])
    def test_delete_day_renumbers_contiguously(self, k: int) -> None:
        trip = _trip(days=5)
        result = mutations.delete_day(trip, k)
        assert [day.day for day in result.daily_itinerary] == [1, 2, 3, 4]

    def test_delete_day_keeps_remaining_dates(self) -> None:
        result = mutations.delete_day(_trip(days=3), 0)
        assert [day.date for day in result.daily_itinerary] == ["2026-03-02", "2026-03-03"]

    def test_delete_day_out_of_range_is_noop(self) -> None:
        trip = _trip()
        assert mutations.delete_day(trip, 3) is trip
        assert mutations.delete_day(trip, -1) is trip

    def test_add_day_appends_next_date(self) -> None:
        result = mutations.add_day(_trip(days=2))
        last = result.daily_itinerary[-1]
        assert last.day == 3
        assert last.date == "2026-03-03"
        assert last.weather == "Sun"
        assert last.activities == ()
        assert result.end_date == "2026-03-03"

    def test_add_day_on_empty_trip_uses_start_date(self) -> None:
        result = mutations.add_day(_trip(days=0))
        assert result.daily_itinerary[0].date == "2026-03-01"
        assert result.daily_itinerary[0].day == 1

    def test_insert_day_renumbers_and_redates(self) -> None:
        trip = _trip(days=3)
        result = mutations.insert_day(trip, 1)
        assert [day.day for day in result.daily_itinerary] == [1, 2, 3, 4]
        assert [day.date for day in result.daily_itinerary] == [
            "2026-03-01",
            "2026-03-02",
            "2026-03-03",
            "2026-03-04",
        ]
        assert result.daily_itinerary[1].activities == ()
        assert result.daily_itinerary[2].activities == trip.daily_itinerary[1].activities
        assert result.end_date == "2026-03-04"

    def test_insert_day_clamps_index(self) -> None:
        result = mutations.insert_day(_trip(days=2), 99)
        assert result.day_count == 3
        assert result.daily_itinerary[-1].activities == ()

    def test_day_location_and_cover(self) -> None:
        trip = _trip()
        located = mutations.update_day_location(trip, 1, "Nara")
        covered = mutations.update_day_cover_image(located, 1, "nara.jpg")
        assert covered.daily_itinerary[1].custom_location == "Nara"
        assert covered.daily_itinerary[1].cover_image == "nara.jpg"
        assert covered.daily_itinerary[0] is trip.daily_itinerary[0]
        assert mutations.update_day_location(trip, 7, "Nowhere") is trip


# ------------------------------------------------------------------
# Activities
# ------------------------------------------------------------------


class TestActivities:
    def test_add_to_out_of_range_day_is_noop(self) -> None:
        trip = _trip(days=5)
        assert mutations.add_activity(trip, 99, {"time": "09:00"}) is trip
        assert mutations.add_activity(trip, -1, {"time": "09:00"}) is trip

    def test_add_forces_unvisited_and_sorts_by_time(self) -> None:
        trip = _trip(days=1)
        result = mutations.add_activity(trip, 0, {"time": "08:00", "location": "Cafe", "isVisited": True})
        activities = result.daily_itinerary[0].activities
        assert [activity.time for activity in activities] == ["08:00", "10:00"]
        assert activities[0].is_visited is False
        assert activities[0].id

    def test_add_without_time_appends(self) -> None:
        trip = _trip(days=1)
        result = mutations.add_activity(trip, 0, {"location": "Somewhere"})
        assert result.daily_itinerary[0].activities[-1].location == "Somewhere"

    def test_update_time_resorts(self) -> None:
        trip = mutations.add_activity(_trip(days=1), 0, {"id": "x", "time": "12:00"})
        result = mutations.update_activity(trip, 0, "x", {"time": "07:30"})
        assert [activity.id for activity in result.daily_itinerary[0].activities] == ["x", "d0-a"]

    def test_update_other_field_keeps_order(self) -> None:
        trip = mutations.add_activity(_trip(days=1), 0, {"id": "x", "time": "12:00"})
        manual = mutations.update_activity_order(trip, 0, ["x", "d0-a"])
        result = mutations.update_activity(manual, 0, "d0-a", {"note": "bring cash"})
        assert [activity.id for activity in result.daily_itinerary[0].activities] == ["x", "d0-a"]
        assert result.daily_itinerary[0].activities[1].note == "bring cash"

    def test_update_unknown_activity_is_noop(self) -> None:
        trip = _trip()
        assert mutations.update_activity(trip, 0, "ghost", {"time": "01:00"}) is trip

    def test_delete_activity(self) -> None:
        trip = _trip()
        result = mutations.delete_activity(trip, 2, "d2-a")
        assert result.daily_itinerary[2].activities == ()
        assert result.daily_itinerary[0] is trip.daily_itinerary[0]
        assert mutations.delete_activity(trip, 2, "ghost") is trip


# ------------------------------------------------------------------
# Members / bookings / expenses / plans
# ------------------------------------------------------------------


def test_member_lifecycle_does_not_cascade() -> None:
    trip = mutations.add_member(_trip(), {"id": "m1", "name": "Aki"})
    trip = mutations.add_expense(trip, Expense(id="e1", amount=10, payer_id="m1", split_with_ids=("m1",)))
    trip = mutations.update_member(trip, "m1", {"name": "Akira"})
    assert trip.members[0].name == "Akira"
    trip = mutations.delete_member(trip, "m1")
    assert trip.members == ()
    assert trip.expenses[0].payer_id == "m1"
    assert trip.find_member(trip.expenses[0].payer_id) is None


def test_member_unknown_id_is_noop() -> None:
    trip = mutations.add_member(_trip(), Member(id="m1"))
    assert mutations.update_member(trip, "m2", {"name": "x"}) is trip
    assert mutations.delete_member(trip, "m2") is trip


def test_booking_update_switches_variant() -> None:
    trip = mutations.add_booking(_trip(), {"id": "b1", "type": "Flight", "details": {"airline": "JL"}})
    assert isinstance(trip.bookings[0], FlightBooking)
    trip = mutations.update_booking(trip, "b1", {"type": "Ticket", "title": "Museum"})
    assert isinstance(trip.bookings[0], TicketBooking)
    assert trip.bookings[0].title == "Museum"
    trip = mutations.delete_booking(trip, "b1")
    assert trip.bookings == ()


def test_expenses_are_prepended() -> None:
    trip = mutations.add_expense(_trip(), {"id": "e1", "amount": 5})
    trip = mutations.add_expense(trip, {"id": "e2", "amount": 7})
    assert [expense.id for expense in trip.expenses] == ["e2", "e1"]
    trip = mutations.update_expense(trip, "e1", {"amount": "8.5"})
    assert trip.expenses[1].amount == 8.5
    trip = mutations.delete_expense(trip, "e2")
    assert [expense.id for expense in trip.expenses] == ["e1"]


class TestPlans:
    def test_toggle_flips_completion(self) -> None:
        trip = mutations.add_plan_item(_trip(), PlanItem(id="p1", text="Adapter"))
        toggled = mutations.toggle_plan_item(trip, "p1")
        assert toggled.plans[0].is_completed is True
        assert mutations.toggle_plan_item(toggled, "p1").plans[0].is_completed is False

    def test_update_and_delete(self) -> None:
        trip = mutations.add_plan_item(_trip(), {"id": "p1", "text": "Adapter"})
        trip = mutations.update_plan_item(trip, "p1", {"priority": "Low", "assigneeId": "m1"})
        assert trip.plans[0].priority == Priority.LOW
        assert trip.plans[0].assignee_id == "m1"
        assert mutations.delete_plan_item(trip, "p1").plans == ()

    def test_reorder_is_stored_as_given(self) -> None:
        trip = _trip()
        for item_id in ("p1", "p2", "p3"):
            trip = mutations.add_plan_item(trip, {"id": item_id})
        result = mutations.reorder_plan_items(trip, ["p3", "p1", "p2"])
        assert [item.id for item in result.plans] == ["p3", "p1", "p2"]
