"""Preparation checklist items."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from tripsync.ingestion.normalize import safe_bool, safe_float
from tripsync.models._base import TripBaseModel, TripEnum, new_id


class PlanCategory(TripEnum):
    TODO = "Todo"
    PACKING = "Packing"
    SHOPPING = "Shopping"


class Priority(TripEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def default(cls) -> Priority:
        return cls.MEDIUM

    @property
    def rank(self) -> int:
        """Sort rank for the default priority view (High first)."""
        return list(type(self)).index(self)


class PlanItem(TripBaseModel):
    """A todo, packing or shopping item.

    The position of an item inside ``Trip.plans`` is its manual display
    order; ``priority`` only drives the default view sort.
    """

    id: str = Field(default_factory=new_id)
    category: PlanCategory = PlanCategory.TODO
    text: str = ""
    priority: Priority = Priority.MEDIUM
    location: str | None = None
    estimated_cost: float | None = None
    is_completed: bool = False
    assignee_id: str | None = None
    image_url: str | None = None

    @field_validator("estimated_cost", mode="before")
    @classmethod
    def _coerce_cost(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("is_completed", mode="before")
    @classmethod
    def _coerce_completed(cls, value: Any) -> bool:
        return safe_bool(value)
