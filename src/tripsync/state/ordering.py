"""Ordering rules for activities and plan items.

Two independent mechanisms, never combined on one collection:

* manual order: the caller hands over the complete reordered sequence
  (produced by the drag-gesture layer) and it replaces the collection
  as-is;
* time order: activities are stably sorted by their ``HH:MM`` string
  whenever an edit touches ``time``.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeVar

from tripsync.exceptions import ReorderMismatchError
from tripsync.models.activity import Activity
from tripsync.models.plan import PlanItem

_logger = logging.getLogger(__name__)

TEntity = TypeVar("TEntity")


def sort_activities_by_time(activities: Iterable[Activity]) -> tuple[Activity, ...]:
    """Sort by ``time`` ascending; same-time activities keep their relative order."""
    # sorted() is guaranteed stable.
    return tuple(sorted(activities, key=lambda activity: activity.time))


def sort_plans_by_priority(plans: Iterable[PlanItem]) -> tuple[PlanItem, ...]:
    """Default view order (High, Medium, Low). Never stored back into the trip."""
    return tuple(sorted(plans, key=lambda item: item.priority.rank))


def _entity_id(entity: Any) -> str:
    return str(getattr(entity, "id", ""))


def apply_manual_order(
    current: Sequence[TEntity],
    ordered: Iterable[TEntity | str | Mapping[str, Any]],
    *,
    strict: bool = False,
) -> tuple[TEntity, ...]:
    """Return the caller-supplied order as the new collection.

    Items in *ordered* may be entities (used as given), plain ids or raw
    mappings.  Ids and the ``id`` of a mapping are resolved against
    *current*; unknown ids and mappings without an id are skipped, so a
    reorder never creates an entity.

    No completeness check is done by default: an incomplete sequence
    silently drops the missing entities.  With ``strict=True`` a
    :class:`ReorderMismatchError` is raised unless the result holds
    exactly the ids of *current*.
    """
    by_id = {_entity_id(entity): entity for entity in current}
    result: list[TEntity] = []
    for item in ordered:
        if isinstance(item, Mapping):
            ref = item.get("id")
            if ref is None or ref == "":
                _logger.debug("Manual order entry without id; skipped")
                continue
            item = str(ref)
        if isinstance(item, str):
            entity = by_id.get(item)
            if entity is None:
                _logger.debug("Manual order references unknown id=%s; skipped", item)
                continue
            result.append(entity)
        else:
            result.append(item)

    if strict:
        expected = Counter(map(_entity_id, current))
        actual = Counter(map(_entity_id, result))
        if expected != actual:
            missing = frozenset((expected - actual).keys())
            unexpected = frozenset((actual - expected).keys())
            raise ReorderMismatchError(
                f"Manual order mismatch: missing={sorted(missing)} unexpected={sorted(unexpected)}",
                missing=missing,
                unexpected=unexpected,
            )
    elif len(result) != len(current):
        _logger.debug("Manual order changed collection size %d -> %d", len(current), len(result))

    return tuple(result)
