"""Change-feed acceptance policy.

The default contract is last-write-wins: whatever replaces a trip last,
a local mutation or a feed push, becomes the local state.  The optional
revision guard discards pushes that are not newer than what we hold.
"""

from __future__ import annotations

from tripsync.models.trip import Trip


def should_accept_push(
    *,
    local: Trip | None,
    incoming: Trip,
    revision_guard: bool,
) -> bool:
    """Decide whether a change-feed push may replace the local trip.

    Policy:
    - Without the guard every push is accepted (last write wins).
    - With the guard a push is accepted only if its revision is strictly
      newer than the local one.  Unknown local trips always accept.
    """
    if not revision_guard or local is None:
        return True
    return incoming.revision > local.revision


def next_revision(trip: Trip) -> int:
    return trip.revision + 1
