from __future__ import annotations

import pytest

from tripsync.exceptions import ReorderMismatchError
from tripsync.models import Activity, PlanItem, Priority
from tripsync.state.ordering import apply_manual_order, sort_activities_by_time, sort_plans_by_priority


def _activity(activity_id: str, time: str) -> Activity:
    return Activity(id=activity_id, time=time, location=activity_id)


def test_time_sort_is_stable_for_equal_times() -> None:
    a = _activity("A", "09:00")
    b = _activity("B", "09:00")
    c = _activity("C", "08:00")
    assert [activity.id for activity in sort_activities_by_time([a, b, c])] == ["C", "A", "B"]


def test_time_sort_handles_unpadded_input_via_model() -> None:
    late = _activity("late", "10:00")
    early = _activity("early", "9:30")
    assert [activity.id for activity in sort_activities_by_time([late, early])] == ["early", "late"]


def test_time_sort_puts_untimed_first() -> None:
    untimed = _activity("untimed", "")
    timed = _activity("timed", "07:00")
    assert sort_activities_by_time([timed, untimed])[0] is untimed


def test_plan_priority_view_is_stable() -> None:
    low = PlanItem(id="low", priority=Priority.LOW)
    high1 = PlanItem(id="h1", priority=Priority.HIGH)
    medium = PlanItem(id="med")
    high2 = PlanItem(id="h2", priority=Priority.HIGH)
    ordered = sort_plans_by_priority([low, high1, medium, high2])
    assert [item.id for item in ordered] == ["h1", "h2", "med", "low"]


class TestManualOrder:
    def setup_method(self) -> None:
        self.one = _activity("1", "09:00")
        self.two = _activity("2", "10:00")
        self.three = _activity("3", "11:00")
        self.current = (self.one, self.two, self.three)

    def test_entities_are_used_exactly(self) -> None:
        result = apply_manual_order(self.current, [self.three, self.one, self.two])
        assert result == (self.three, self.one, self.two)
        assert result[0] is self.three

    def test_ids_are_resolved_and_unknown_ids_skipped(self) -> None:
        result = apply_manual_order(self.current, ["2", "ghost", "1", "3"])
        assert result == (self.two, self.one, self.three)

    def test_incomplete_sequence_drops_entities_when_permissive(self) -> None:
        result = apply_manual_order(self.current, ["3", "1"])
        assert result == (self.three, self.one)

    def test_strict_rejects_missing_entities(self) -> None:
        with pytest.raises(ReorderMismatchError) as excinfo:
            apply_manual_order(self.current, ["3", "1"], strict=True)
        assert excinfo.value.missing == frozenset({"2"})
        assert excinfo.value.unexpected == frozenset()

    def test_strict_rejects_duplicates(self) -> None:
        with pytest.raises(ReorderMismatchError) as excinfo:
            apply_manual_order(self.current, [self.one, self.one, self.two, self.three], strict=True)
        assert excinfo.value.unexpected == frozenset({"1"})

    def test_strict_accepts_complete_permutation(self) -> None:
        result = apply_manual_order(self.current, ["3", "2", "1"], strict=True)
        assert result == (self.three, self.two, self.one)

    def test_mismatch_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            apply_manual_order(self.current, [], strict=True)

    def test_mappings_are_resolved_by_id(self) -> None:
        result = apply_manual_order(self.current, [{"id": "3", "time": "7:00"}, {"id": "1"}, {"id": "2"}])
        assert result == (self.three, self.one, self.two)
        assert result[0] is self.three

    def test_mappings_never_create_entities(self) -> None:
        result = apply_manual_order(self.current, [{"time": "7:00"}, {"id": "9"}, {"id": ""}, {"id": "2"}])
        assert result == (self.two,)

    def test_mapping_without_id_fails_strict_order(self) -> None:
        with pytest.raises(ReorderMismatchError) as excinfo:
            apply_manual_order(self.current, [{"location": "new"}, "1", "2"], strict=True)
        assert excinfo.value.missing == frozenset({"3"})
