"""Budget summaries derived from a trip's expenses.

All values are in the trip currency unless noted.  Member ids are weak
references: a balance can be reported for an id that no longer resolves
to a member.
"""

from __future__ import annotations

from collections import defaultdict

from tripsync.models.expense import Expense, ExpenseCategory
from tripsync.models.trip import Trip


def total_spent(trip: Trip) -> float:
    return sum((expense.amount for expense in trip.expenses), 0.0)


def remaining_budget(trip: Trip) -> float:
    """Budget left; negative when the trip is over budget."""
    return trip.budget_total - total_spent(trip)


def is_over_budget(trip: Trip) -> bool:
    return remaining_budget(trip) < 0


def spent_by_category(trip: Trip) -> dict[ExpenseCategory, float]:
    """Totals per category, only for categories with at least one expense."""
    totals: dict[ExpenseCategory, float] = defaultdict(float)
    for expense in trip.expenses:
        totals[expense.category] += expense.amount
    return dict(totals)


def member_shares(expense: Expense) -> dict[str, float]:
    """Amount each member id owes for *expense*.

    Uses ``custom_split`` when present, otherwise splits evenly across
    ``split_with_ids``.  With nobody to split with, the payer carries the
    whole amount.
    """
    if expense.custom_split:
        return dict(expense.custom_split)
    participants = list(dict.fromkeys(expense.split_with_ids))
    if not participants:
        return {expense.payer_id: expense.amount} if expense.payer_id else {}
    share = expense.amount / len(participants)
    return {member_id: share for member_id in participants}


def balances(trip: Trip) -> dict[str, float]:
    """Paid minus owed per member id (positive: the member is owed money)."""
    result: dict[str, float] = {member.id: 0.0 for member in trip.members}
    for expense in trip.expenses:
        if expense.payer_id:
            result[expense.payer_id] = result.get(expense.payer_id, 0.0) + expense.amount
        for member_id, owed in member_shares(expense).items():
            result[member_id] = result.get(member_id, 0.0) - owed
    return result


def convert_to_home(amount: float, trip: Trip) -> float:
    """Convert a trip-currency amount to the home currency using the trip's rate."""
    return amount * trip.exchange_rate
