"""Tests for the snapshot differ: literal scenarios and diff properties."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from zcnotify.differ import apply_changes, diff
from zcnotify.models import ChangeEvent, ChangeType

from conftest import snap

ADD, REMOVE, MODIFY = ChangeType.ADD, ChangeType.REMOVE, ChangeType.MODIFY


def kinds(events: list[ChangeEvent]) -> list[tuple[ChangeType, str]]:
    return [(e.change_type, e.entry.instance_key) for e in events]


def same_collection(a, b) -> bool:
    if sorted(s.instance_key for s in a) != sorted(s.instance_key for s in b):
        return False
    by_key = {s.instance_key: s for s in b}
    return all(s.same_payload(by_key[s.instance_key]) for s in a)


# Hand-picked (previous, current) pairs covering adds, removes, modifies,
# reorders and mixed cycles.
PAIRS = [
    ([], []),
    ([], [snap("A")]),
    ([snap("A"), snap("B", "h2", 81)], [snap("A")]),
    ([snap("A")], [snap("A", ttl=61)]),
    ([snap("A")], [snap("B", "h2", 81)]),
    ([snap("A"), snap("B"), snap("C")], [snap("C"), snap("A")]),
    (
        [snap("A"), snap("B", text_records=("x",)), snap("C")],
        [snap("D"), snap("B", text_records=("y",)), snap("A"), snap("E")],
    ),
    ([snap("A", addresses_v4={"10.0.0.1"})], [snap("A", addresses_v4={"10.0.0.2"})]),
]


class TestScenarios:
    def test_new_instance_is_added(self):
        a = snap("A", "h1", 80, 60)
        assert kinds(diff([], [a])) == [(ADD, "A")]

    def test_missing_instance_is_removed(self):
        a, b = snap("A", "h1", 80, 60), snap("B", "h2", 81, 60)
        events = diff([a, b], [snap("A", "h1", 80, 60)])
        assert kinds(events) == [(REMOVE, "B")]
        assert events[0].entry is b

    def test_ttl_change_is_modify(self):
        events = diff([snap("A", "h1", 80, 60)], [snap("A", "h1", 80, 61)])
        assert kinds(events) == [(MODIFY, "A")]
        assert events[0].entry.ttl == 61

    def test_identical_yields_nothing(self):
        assert diff([snap("A", "h1", 80, 60)], [snap("A", "h1", 80, 60)]) == []

    def test_adds_precede_removes(self):
        events = diff([snap("A", "h1", 80, 60)], [snap("B", "h2", 81, 60)])
        assert kinds(events) == [(ADD, "B"), (REMOVE, "A")]


class TestOrdering:
    def test_adds_and_modifies_follow_current_order(self):
        prev = [snap("A"), snap("B")]
        cur = [snap("C"), snap("B", port=1), snap("D")]
        assert kinds(diff(prev, cur)) == [(ADD, "C"), (MODIFY, "B"), (ADD, "D"), (REMOVE, "A")]

    def test_removes_walk_previous_backwards(self):
        prev = [snap("A"), snap("B"), snap("C")]
        assert kinds(diff(prev, [])) == [(REMOVE, "C"), (REMOVE, "B"), (REMOVE, "A")]

    def test_shared_timestamp(self):
        ts = datetime(2026, 5, 1, tzinfo=timezone.utc)
        events = diff([snap("A")], [snap("B")], timestamp=ts)
        assert {e.timestamp for e in events} == {ts}

    def test_default_timestamp_is_utc(self):
        (event,) = diff([], [snap("A")])
        assert event.timestamp.tzinfo is not None
        assert event.timestamp.utcoffset().total_seconds() == 0


class TestProperties:
    @pytest.mark.parametrize("previous,current", PAIRS)
    def test_round_trip(self, previous, current):
        assert same_collection(apply_changes(previous, diff(previous, current)), current)

    @pytest.mark.parametrize("previous,current", PAIRS)
    def test_idempotent(self, previous, current):
        assert diff(current, current) == []
        assert diff(previous, previous) == []

    @pytest.mark.parametrize("previous,current", PAIRS)
    def test_disjoint(self, previous, current):
        events = diff(previous, current)
        upserted = {e.entry.instance_key for e in events if e.change_type is not REMOVE}
        removed = {e.entry.instance_key for e in events if e.change_type is REMOVE}
        assert not upserted & removed

    @pytest.mark.parametrize("previous,current", PAIRS)
    def test_removes_last(self, previous, current):
        types = [e.change_type for e in diff(previous, current)]
        first_remove = types.index(REMOVE) if REMOVE in types else len(types)
        assert all(t is REMOVE for t in types[first_remove:])

    @pytest.mark.parametrize("previous,current", PAIRS)
    def test_unknown_keys_never_appear(self, previous, current):
        keys = {s.instance_key for s in previous} | {s.instance_key for s in current}
        assert {e.entry.instance_key for e in diff(previous, current)} <= keys

    def test_reordered_scan_is_unchanged(self):
        prev = [snap("A"), snap("B"), snap("C")]
        assert diff(prev, list(reversed(prev))) == []

    def test_repeated_key_in_current_uses_first(self):
        events = diff([], [snap("A", port=1), snap("A", port=2)])
        assert kinds(events) == [(ADD, "A")]
        assert events[0].entry.port == 1

    def test_inputs_not_mutated(self):
        prev = [snap("A"), snap("B")]
        cur = [snap("B", port=5)]
        before_prev, before_cur = list(prev), list(cur)
        diff(prev, cur)
        assert prev == before_prev and cur == before_cur


class TestApplyChanges:
    def test_modify_keeps_position(self):
        prev = [snap("A"), snap("B"), snap("C")]
        retained = apply_changes(prev, diff(prev, [snap("A"), snap("B", ttl=1), snap("C")]))
        assert [s.instance_key for s in retained] == ["A", "B", "C"]
        assert retained[1].ttl == 1

    def test_adds_appended_removes_dropped(self):
        prev = [snap("A"), snap("B")]
        retained = apply_changes(prev, diff(prev, [snap("C"), snap("B")]))
        assert [s.instance_key for s in retained] == ["B", "C"]

    def test_retained_order_drives_remove_order(self):
        # A, B retained; C added later; all vanish -> removed newest first
        first = [snap("A"), snap("B")]
        prev = apply_changes(first, diff(first, [snap("A"), snap("B"), snap("C")]))
        assert kinds(diff(prev, [])) == [(REMOVE, "C"), (REMOVE, "B"), (REMOVE, "A")]

    def test_ignores_events_for_absent_keys(self):
        stray = diff([snap("Z")], [])  # REMOVE Z
        assert apply_changes([snap("A")], stray) == [snap("A")]
