from __future__ import annotations

import copy
from typing import Any

from tripsync.ingestion.sanitize import parse_trip, parse_trips, sanitize_trip_payload
from tripsync.models import FlightBooking, HotelBooking


def _raw_trip() -> dict[str, Any]:
    return {
        "id": "t1",
        "title": "Hokkaido",
        "startDate": "2026-01-10",
        "members": [{"id": "m1", "name": "Aki"}, None, {"name": "no id"}],
        "bookings": [
            {"id": "b1", "type": "Hotel", "title": "Inn"},
            {"id": "b2", "type": "Spaceship"},
            None,
        ],
        "expenses": None,
        "plans": [{"id": "p1", "text": "Gloves"}, {"id": ""}],
        "dailyItinerary": [
            {
                "day": 1,
                "date": "2026-01-10",
                "activities": [None, {"id": "a1", "time": "09:00"}, {"id": "a2", "time": "11:00"}],
            },
            None,
            {"day": 2, "date": "2026-01-11", "activities": None},
        ],
    }


def test_null_activity_is_dropped_and_valid_ones_kept() -> None:
    cleaned = sanitize_trip_payload(_raw_trip())
    activities = cleaned["dailyItinerary"][0]["activities"]
    assert [activity["id"] for activity in activities] == ["a1", "a2"]


def test_activities_without_id_or_not_objects_are_dropped() -> None:
    raw = {"id": "t1", "dailyItinerary": [{"activities": [{"time": "10:00"}, "junk", 7, {"id": "  "}, {"id": "ok"}]}]}
    cleaned = sanitize_trip_payload(raw)
    assert cleaned["dailyItinerary"][0]["activities"] == [{"id": "ok"}]


def test_other_collections_are_cleaned() -> None:
    cleaned = sanitize_trip_payload(_raw_trip())
    assert cleaned["members"] == [{"id": "m1", "name": "Aki"}]
    assert [booking["id"] for booking in cleaned["bookings"]] == ["b1"]
    assert cleaned["expenses"] == []
    assert cleaned["plans"] == [{"id": "p1", "text": "Gloves"}]
    assert len(cleaned["dailyItinerary"]) == 2
    assert cleaned["dailyItinerary"][1]["activities"] == []


def test_sanitize_is_idempotent() -> None:
    once = sanitize_trip_payload(_raw_trip())
    twice = sanitize_trip_payload(once)
    assert twice == once


def test_sanitize_does_not_mutate_input() -> None:
    raw = _raw_trip()
    snapshot = copy.deepcopy(raw)
    sanitize_trip_payload(raw)
    assert raw == snapshot


def test_snake_case_itinerary_key_is_normalized() -> None:
    cleaned = sanitize_trip_payload({"id": "t1", "daily_itinerary": [{"day": 1, "activities": [None]}]})
    assert "daily_itinerary" not in cleaned
    assert cleaned["dailyItinerary"] == [{"day": 1, "activities": []}]


def test_non_mapping_payload_sanitizes_to_empty() -> None:
    assert sanitize_trip_payload(None) == {}  # type: ignore[arg-type]


class TestParseTrip:
    def test_malformed_blob_still_parses(self) -> None:
        trip = parse_trip(_raw_trip())
        assert trip is not None
        assert [activity.id for activity in trip.daily_itinerary[0].activities] == ["a1", "a2"]
        assert isinstance(trip.bookings[0], HotelBooking)
        assert trip.expenses == ()

    def test_not_a_trip_returns_none(self) -> None:
        assert parse_trip(None) is None
        assert parse_trip("t1") is None
        assert parse_trip({"title": "no id"}) is None

    def test_parse_trips_skips_invalid_entries(self) -> None:
        trips = parse_trips([_raw_trip(), None, {"id": "t2"}, {"title": "nope"}])
        assert [trip.id for trip in trips] == ["t1", "t2"]

    def test_numeric_ids_are_kept_as_strings(self) -> None:
        trip = parse_trip(
            {
                "id": 7,
                "members": [{"id": 3, "name": "Aki"}],
                "dailyItinerary": [
                    {"day": 1, "activities": [{"id": 1, "time": "10:00"}, {"id": "a2", "time": "11:00"}]}
                ],
            }
        )
        assert trip is not None
        assert trip.id == "7"
        assert trip.members[0].id == "3"
        assert [activity.id for activity in trip.daily_itinerary[0].activities] == ["1", "a2"]

    def test_numeric_scalars_do_not_discard_the_trip(self) -> None:
        trip = parse_trip({"id": "t1", "title": 42, "dailyItinerary": [{"day": 1, "activities": []}]})
        assert trip is not None
        assert trip.title == "42"


def test_booking_type_casing_is_normalized() -> None:
    raw = {
        "id": "t1",
        "bookings": [
            {"id": "b1", "type": "flight", "title": "Out"},
            {"id": "b2", "type": " HOTEL ", "title": "Inn"},
            {"id": "b3", "type": "cruise"},
        ],
    }
    cleaned = sanitize_trip_payload(raw)
    assert [(booking["id"], booking["type"]) for booking in cleaned["bookings"]] == [("b1", "Flight"), ("b2", "Hotel")]
    assert raw["bookings"][0]["type"] == "flight"
    assert sanitize_trip_payload(cleaned) == cleaned

    trip = parse_trip(raw)
    assert trip is not None
    assert isinstance(trip.bookings[0], FlightBooking)
    assert isinstance(trip.bookings[1], HotelBooking)
