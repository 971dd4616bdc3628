"""Shared expense model."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from tripsync.ingestion.normalize import as_list, safe_float
from tripsync.models._base import TripBaseModel, TripEnum, new_id


class ExpenseCategory(TripEnum):
    FOOD = "Food"
    TRANSPORT = "Transport"
    ACCOMMODATION = "Accommodation"
    SIGHTSEEING = "Sightseeing"
    SHOPPING = "Shopping"
    OTHER = "Other"

    @classmethod
    def default(cls) -> ExpenseCategory:
        return cls.OTHER


class Expense(TripBaseModel):
    """An expense paid by one member and split across others.

    ``payer_id`` and ``split_with_ids`` are weak references to
    ``Trip.members``; they may dangle after a member is deleted.
    ``custom_split`` maps member id to the amount owed when the split
    is not even.
    """

    id: str = Field(default_factory=new_id)
    amount: float = 0.0
    category: ExpenseCategory = ExpenseCategory.OTHER
    item_name: str = ""
    note: str = ""
    date: str = ""
    payer_id: str = ""
    split_with_ids: tuple[str, ...] = ()
    custom_split: dict[str, float] | None = None
    receipt_url: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float:
        parsed = safe_float(value)
        return parsed if parsed is not None else 0.0

    @field_validator("split_with_ids", mode="before")
    @classmethod
    def _coerce_split(cls, value: Any) -> tuple[str, ...]:
        return tuple(str(member_id) for member_id in as_list(value) if member_id)

    @field_validator("custom_split", mode="before")
    @classmethod
    def _coerce_custom_split(cls, value: Any) -> dict[str, float] | None:
        if not isinstance(value, dict):
            return None
        split: dict[str, float] = {}
        for member_id, amount in value.items():
            parsed = safe_float(amount)
            if parsed is not None:
                split[str(member_id)] = parsed
        return split
