"""Tests for wardley/changes.py: change cues between parses."""
from __future__ import annotations

import pytest
from models import MapElement
from wardley.changes import GlitchTracker, detect_changes
from wardley.parser import parse


def _el(name, vis=0.5, mat=0.5):
    return MapElement(1, name, vis, mat)


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


class TestDetectChanges:

    def test_first_parse_has_no_cues(self):
        assert detect_changes(None, [_el("A"), _el("B")]) == []

    def test_new_element(self):
        cues = detect_changes([_el("A")], [_el("A"), _el("B")], now=5.0)
        assert [(c.element_name, c.is_new, c.start_time) for c in cues] == [("B", True, 5.0)]

    def test_moved_element(self):
        cues = detect_changes([_el("A", 0.5, 0.5)], [_el("A", 0.5, 0.6)])
        assert [(c.element_name, c.is_new) for c in cues] == [("A", False)]

    def test_small_move_ignored(self):
        assert detect_changes([_el("A", 0.5, 0.5)], [_el("A", 0.5005, 0.5)]) == []

    def test_active_cue_skipped(self):
        assert detect_changes([], [_el("A")], active_names=["A"]) == []

    def test_duplicate_previous_keeps_first(self):
        previous = [_el("A", 0.1, 0.1), _el("A", 0.9, 0.9)]
        assert detect_changes(previous, [_el("A", 0.1, 0.1)]) == []

    def test_removed_element_gives_no_cue(self):
        assert detect_changes([_el("A"), _el("B")], [_el("A")]) == []


class TestGlitchTracker:

    @pytest.fixture()
    def clock(self):
        return FakeClock()

    @pytest.fixture()
    def tracker(self, clock):
        return GlitchTracker(duration=0.8, clock=clock)

    def test_initial_load_is_silent(self, tracker):
        wmap, _ = parse("component A [0.5, 0.5]")
        assert tracker.record(None, wmap) == []
        assert tracker.sample() == {}

    def test_moved_element_progress(self, tracker, clock):
        before, _ = parse("component A [0.5, 0.5]")
        after, _ = parse("component A [0.5, 0.7]")
        tracker.record(before, after)
        assert tracker.is_active("A")

        clock.now += 0.4
        info = tracker.sample()
        assert info["A"].progress == pytest.approx(0.5)
        assert not info["A"].is_new

    def test_expiry_is_lazy(self, tracker, clock):
        before, _ = parse("")
        after, _ = parse("component A [0.5, 0.5]")
        tracker.record(before, after)
        clock.now += 1.0
        assert tracker.is_active("A")
        assert tracker.sample() == {}
        assert not tracker.is_active("A")

    def test_active_element_not_restarted(self, tracker, clock):
        first, _ = parse("component A [0.1, 0.1]")
        second, _ = parse("component A [0.2, 0.2]")
        third, _ = parse("component A [0.3, 0.3]")
        tracker.record(first, second)
        clock.now += 0.3
        assert tracker.record(second, third) == []
        assert [e.start_time for e in tracker.entries] == [100.0]

    def test_cue_restarts_after_expiry(self, tracker, clock):
        first, _ = parse("component A [0.1, 0.1]")
        second, _ = parse("component A [0.2, 0.2]")
        third, _ = parse("component A [0.3, 0.3]")
        tracker.record(first, second)
        clock.now += 1.0
        cues = tracker.record(second, third)
        assert [c.start_time for c in cues] == [101.0]

    def test_explicit_time(self, tracker):
        wmap, _ = parse("component A [0.5, 0.5]")
        tracker.record(parse("")[0], wmap, now=3.0)
        assert tracker.sample(now=3.2)["A"].is_new
        assert tracker.active_names() == ["A"]
        tracker.clear()
        assert tracker.active_names() == []
