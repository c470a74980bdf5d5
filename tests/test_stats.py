"""Unit tests for the rolling seven-day stats window and session ids."""

import re
from datetime import date

from breakbuddy.timer.models import DayStats
from breakbuddy.timer.session_tracker import SessionTracker, create_session_id
from breakbuddy.timer.stats import (
    add_break,
    add_focus,
    create_initial_week,
    format_day_key,
    normalize_week,
    trailing_day_keys,
    upsert_day,
    week_totals,
)

TODAY = date(2026, 3, 10)


class TestDayKeys:
    def test_zero_padded(self):
        assert format_day_key(date(2026, 1, 5)) == "2026-01-05"

    def test_trailing_keys_oldest_first(self):
        keys = trailing_day_keys(TODAY)
        assert keys[0] == "2026-03-04"
        assert keys[-1] == "2026-03-10"
        assert len(keys) == 7

    def test_window_crosses_month(self):
        keys = trailing_day_keys(date(2026, 3, 2))
        assert keys[:3] == ["2026-02-24", "2026-02-25", "2026-02-26"]


class TestUpsertDay:
    def test_initial_week_is_zeroed(self):
        week = create_initial_week(TODAY)
        assert list(week) == trailing_day_keys(TODAY)
        assert all(day == DayStats() for day in week.values())

    def test_add_focus_and_break(self):
        week = create_initial_week(TODAY)
        week = add_focus(week, "2026-03-10", 1500)
        week = add_focus(week, "2026-03-10", 1500)
        week = add_break(week, "2026-03-10", 300)
        assert week["2026-03-10"] == DayStats(focus_seconds=3000, break_seconds=300, focus_count=2, break_count=1)

    def test_does_not_mutate_input(self):
        week = create_initial_week(TODAY)
        add_focus(week, "2026-03-10", 1500)
        assert week["2026-03-10"] == DayStats()

    def test_new_day_evicts_oldest(self):
        week = create_initial_week(TODAY)
        week = add_focus(week, "2026-03-11", 600)
        assert len(week) == 7
        assert "2026-03-04" not in week
        assert week["2026-03-11"].focus_count == 1

    def test_updater_receives_existing(self):
        week = {"2026-03-10": DayStats(focus_count=3)}
        week = upsert_day(week, "2026-03-10", lambda d: DayStats(focus_count=d.focus_count * 2))
        assert week["2026-03-10"].focus_count == 6


class TestNormalizeWeek:
    def test_fills_missing_and_drops_stale(self):
        raw = {
            "2026-02-01": DayStats(focus_count=9),
            "2026-03-09": DayStats(focus_count=2),
        }
        week = normalize_week(raw, TODAY)
        assert list(week) == trailing_day_keys(TODAY)
        assert week["2026-03-09"].focus_count == 2
        assert "2026-02-01" not in week
        assert week["2026-03-10"] == DayStats()

    def test_none_gives_empty_week(self):
        assert normalize_week(None, TODAY) == create_initial_week(TODAY)

    def test_totals(self):
        week = add_focus(create_initial_week(TODAY), "2026-03-08", 1500)
        week = add_break(week, "2026-03-10", 900)
        assert week_totals(week) == DayStats(focus_seconds=1500, break_seconds=900, focus_count=1, break_count=1)


class TestSessionTracker:
    def test_id_format(self):
        assert re.fullmatch(r"1700000000000-[0-9a-z]{6}", create_session_id(1_700_000_000_000))

    def test_mark_logged_clears_active(self):
        tracker = SessionTracker()
        session_id = tracker.ensure_active()
        assert tracker.ensure_active() == session_id
        tracker.mark_logged(session_id)
        assert tracker.active_session_id is None
        assert tracker.is_logged(session_id)
        assert tracker.needs_fresh_id()

    def test_begin_new_replaces_active(self):
        tracker = SessionTracker()
        first = tracker.begin_new(1000)
        second = tracker.begin_new(2000)
        assert first != second
        assert not tracker.needs_fresh_id()

    def test_clear(self):
        tracker = SessionTracker()
        tracker.mark_logged(tracker.ensure_active())
        tracker.clear()
        assert tracker.active_session_id is None
        assert tracker.last_logged_session_id is None
