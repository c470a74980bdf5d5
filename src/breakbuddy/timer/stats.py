"""Rolling seven-day focus/break statistics."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Callable, Mapping

from .models import WEEK_DAYS, DayStats, WeeklyStats


def format_day_key(day: date) -> str:
    """Fixed-width YYYY-MM-DD key, so lexicographic order is chronological."""
    return day.strftime("%Y-%m-%d")


def day_key_for_ms(epoch_ms: int) -> str:
    """Local calendar day of an epoch-milliseconds instant."""
    return format_day_key(datetime.fromtimestamp(epoch_ms / 1000).date())


def trailing_day_keys(today: date) -> list[str]:
    """The seven keys ending today, oldest first."""
    return [format_day_key(today - timedelta(days=offset)) for offset in range(WEEK_DAYS - 1, -1, -1)]


def create_initial_week(today: date) -> WeeklyStats:
    return {key: DayStats() for key in trailing_day_keys(today)}


def upsert_day(
    stats: Mapping[str, DayStats],
    day_key: str,
    updater: Callable[[DayStats], DayStats],
) -> WeeklyStats:
    """Return a new mapping with ``day_key`` replaced by ``updater(existing)``.

    The result keeps only the seven most recent keys.
    """
    updated = dict(stats)
    updated[day_key] = updater(stats.get(day_key, DayStats()))
    if len(updated) <= WEEK_DAYS:
        return updated
    return {key: updated[key] for key in sorted(updated)[-WEEK_DAYS:]}


def normalize_week(raw: Mapping[str, DayStats] | None, today: date) -> WeeklyStats:
    """Rebuild exactly the trailing seven days relative to ``today``.

    Missing days default to zero; anything outside the window is dropped, which
    also reconciles a snapshot saved during a previous week.
    """
    source = raw or {}
    return {key: source.get(key, DayStats()) for key in trailing_day_keys(today)}


def add_focus(stats: Mapping[str, DayStats], day_key: str, seconds: int) -> WeeklyStats:
    return upsert_day(
        stats,
        day_key,
        lambda day: DayStats(
            focus_seconds=day.focus_seconds + seconds,
            break_seconds=day.break_seconds,
            focus_count=day.focus_count + 1,
            break_count=day.break_count,
        ),
    )


def add_break(stats: Mapping[str, DayStats], day_key: str, seconds: int) -> WeeklyStats:
    return upsert_day(
        stats,
        day_key,
        lambda day: DayStats(
            focus_seconds=day.focus_seconds,
            break_seconds=day.break_seconds + seconds,
            focus_count=day.focus_count,
            break_count=day.break_count + 1,
        ),
    )


def week_totals(stats: Mapping[str, DayStats]) -> DayStats:
    """Sum every day in the window."""
    return DayStats(
        focus_seconds=sum(day.focus_seconds for day in stats.values()),
        break_seconds=sum(day.break_seconds for day in stats.values()),
        focus_count=sum(day.focus_count for day in stats.values()),
        break_count=sum(day.break_count for day in stats.values()),
    )
