"""Booking models.

A booking is a tagged union selected by ``type``.  The stored blob keeps
``id``, ``type``, ``title`` and ``date`` at the top level and everything
else inside a ``details`` object; the models flatten ``details`` on input
and nest it again on dump so the remote format is preserved.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import Field, SerializerFunctionWrapHandler, TypeAdapter, field_validator, model_serializer, model_validator

from tripsync.ingestion.normalize import safe_float
from tripsync.models._base import TripBaseModel, TripEnum, new_id

_TOP_LEVEL_KEYS = frozenset({"id", "type", "title", "date"})


class BookingType(TripEnum):
    FLIGHT = "Flight"
    HOTEL = "Hotel"
    RENTAL = "Rental"
    TICKET = "Ticket"


class _BookingBase(TripBaseModel):
    id: str = Field(default_factory=new_id)
    title: str = ""
    date: str = ""
    price: float | None = None
    address: str | None = None
    file_url: str | None = None
    note: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_details(cls, values: Any) -> Any:
        if not isinstance(values, Mapping):
            return values
        details = values.get("details")
        if not isinstance(details, Mapping):
            return {key: value for key, value in values.items() if key != "details"}
        merged = {key: value for key, value in details.items() if value is not None}
        for key, value in values.items():
            if key != "details" and value is not None:
                merged[key] = value
        return merged

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value: Any) -> float | None:
        return safe_float(value)

    @model_serializer(mode="wrap")
    def _nest_details(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        flat: dict[str, Any] = handler(self)
        nested: dict[str, Any] = {}
        details: dict[str, Any] = {}
        for key, value in flat.items():
            if key in _TOP_LEVEL_KEYS:
                nested[key] = value
            else:
                details[key] = value
        nested["details"] = details
        return nested


class FlightBooking(_BookingBase):
    type: Literal["Flight"] = "Flight"
    airline: str | None = None
    flight_num: str | None = None
    seat: str | None = None
    gate: str | None = None
    origin: str | None = None
    destination: str | None = None
    depart_time: str | None = None
    arrive_time: str | None = None


class HotelBooking(_BookingBase):
    type: Literal["Hotel"] = "Hotel"
    check_in: str | None = None
    check_out: str | None = None


class RentalBooking(_BookingBase):
    type: Literal["Rental"] = "Rental"
    pickup_location: str | None = None
    dropoff_location: str | None = None
    depart_time: str | None = None
    arrive_time: str | None = None


class TicketBooking(_BookingBase):
    type: Literal["Ticket"] = "Ticket"


Booking = Annotated[
    FlightBooking | HotelBooking | RentalBooking | TicketBooking,
    Field(discriminator="type"),
]
"""Any booking variant, discriminated by ``type``."""

BOOKING_ADAPTER: TypeAdapter[Booking] = TypeAdapter(Booking)


def resolve_booking_type(value: Any) -> BookingType | None:
    """Match a stored ``type`` tag case-insensitively; ``None`` when unknown."""
    if not isinstance(value, str):
        return None
    lowered = value.strip().lower()
    for member in BookingType:
        if member.value.lower() == lowered:
            return member
    return None


def parse_booking(payload: Mapping[str, Any]) -> Booking:
    """Validate a raw booking payload into its variant model."""
    data = dict(payload)
    booking_type = resolve_booking_type(data.get("type"))
    if booking_type is not None:
        data["type"] = booking_type.value
    return BOOKING_ADAPTER.validate_python(data)


def merge_booking(booking: Booking, changes: Mapping[str, Any]) -> Booking:
    """Apply a partial update; a changed ``type`` re-selects the variant.

    Fields that do not exist on the new variant are dropped.
    """
    current = booking.model_dump()
    details = current.get("details")
    for key, value in changes.items():
        name = type(booking).field_name(key) or key
        if name == "id":
            continue
        if isinstance(details, dict):
            details.pop(name, None)
        current[name] = value
    return parse_booking(current)
