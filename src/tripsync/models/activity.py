"""Itinerary activity model."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from tripsync._constants import MAX_ACTIVITY_PHOTOS
from tripsync.ingestion.normalize import as_list, normalize_hhmm, safe_bool, safe_float, safe_int
from tripsync.models._base import TripBaseModel, new_id


class Activity(TripBaseModel):
    """A single scheduled item within one day of an itinerary.

    ``time`` is a zero-padded ``HH:MM`` string so that plain string
    comparison orders activities chronologically.  ``photos`` holds at
    most three upload references; the first one is used as the cover.
    """

    id: str = Field(default_factory=new_id)
    time: str = ""
    type: str = ""
    location: str = ""
    address: str | None = None
    lat: float | None = None
    lng: float | None = None
    cost: float = 0.0
    note: str | None = None
    rating: int | None = None
    comment: str | None = None
    is_visited: bool = False
    photos: tuple[str, ...] = ()

    @field_validator("time", mode="before")
    @classmethod
    def _pad_time(cls, value: Any) -> str:
        return normalize_hhmm(value)

    @field_validator("cost", mode="before")
    @classmethod
    def _coerce_cost(cls, value: Any) -> float:
        parsed = safe_float(value)
        return parsed if parsed is not None else 0.0

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def _coerce_coordinates(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("rating", mode="before")
    @classmethod
    def _coerce_rating(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("is_visited", mode="before")
    @classmethod
    def _coerce_visited(cls, value: Any) -> bool:
        return safe_bool(value)

    @field_validator("photos", mode="before")
    @classmethod
    def _limit_photos(cls, value: Any) -> tuple[str, ...]:
        refs = [str(ref) for ref in as_list(value) if ref]
        return tuple(refs[:MAX_ACTIVITY_PHOTOS])

    @property
    def cover_photo(self) -> str | None:
        return self.photos[0] if self.photos else None
