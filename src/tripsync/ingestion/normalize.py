"""Normalization helpers.

Centralizes defensive parsing of loosely typed remote values.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def safe_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    parsed = safe_int(value)
    return bool(parsed)


def has_id(value: Any) -> bool:
    """Return True if *value* is an object carrying a non-empty ``id``."""
    if not isinstance(value, Mapping):
        return False
    entity_id = value.get("id")
    if entity_id is None:
        return False
    return bool(str(entity_id).strip())


def as_list(value: Any) -> list[Any]:
    """Coerce a possibly-null sequence field to a list."""
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return []


def normalize_hhmm(value: Any) -> str:
    """Zero-pad ``H:M`` / ``H:MM`` to ``HH:MM`` so lexicographic order is time order.

    Values that do not look like a clock time are returned unchanged (as str).
    """
    if value is None:
        return ""
    text = str(value).strip()
    hours, sep, minutes = text.partition(":")
    if not sep or not hours.isdigit() or not minutes[:1].isdigit():
        return text
    if minutes.isdigit() and len(minutes) == 1:
        minutes = f"0{minutes}"
    return f"{int(hours):02d}:{minutes}"


def parse_updated_at(value: Any) -> float | None:
    """Normalize a row ``updated_at`` (ISO string or epoch) to epoch seconds.

    - Empty/missing -> None
    - <= 0 -> None
    - Milliseconds (> 1e11) -> seconds
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
        return dt.timestamp()
    if isinstance(value, str) and not value.strip().replace(".", "", 1).isdigit():
        text = value.strip().replace("Z", "+00:00")
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt.timestamp()
    ts = safe_float(value)
    if ts is None or ts <= 0:
        return None
    if ts > 1e11:
        ts /= 1000.0
    return ts
