"""Defensive parsing of the persisted snapshot.

Every helper is total: it returns a clean value or ``None`` (or a fallback)
and never raises, so one bad field cannot sink the whole load.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any

from .models import HISTORY_LIMIT, DayStats, Durations, Mood, SessionHistoryEntry, WeeklyStats
from .stats import normalize_week

VALID_MOODS = {mood.value for mood in Mood}


def sanitize_number(value: Any) -> float | None:
    """Finite number, or a numeric string. Booleans are not numbers here."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def sanitize_count(value: Any) -> int | None:
    """Non-negative integer (rounded), or ``None``."""
    number = sanitize_number(value)
    if number is None or number < 0:
        return None
    return int(round(number))


def sanitize_boolean(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized == "true":
            return True
        if normalized == "false":
            return False
    return fallback


def sanitize_mood(value: Any) -> Mood | None:
    if isinstance(value, str) and value in VALID_MOODS:
        return Mood(value)
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into aware UTC."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def format_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def sanitize_durations(value: Any) -> Durations | None:
    """Per-key fallback to defaults. ``None`` when no key is usable."""
    if not isinstance(value, dict):
        return None

    defaults = Durations()
    clean: dict[str, int] = {}
    for attr, key in (("focus", "focus"), ("short_break", "shortBreak"), ("long_break", "longBreak")):
        number = sanitize_number(value.get(key))
        if number is not None and number > 0 and math.floor(number) > 0:
            clean[attr] = int(math.floor(number))

    if not clean:
        return None
    return Durations(
        focus=clean.get("focus", defaults.focus),
        short_break=clean.get("short_break", defaults.short_break),
        long_break=clean.get("long_break", defaults.long_break),
    )


def sanitize_day_stats(value: Any) -> DayStats | None:
    if not isinstance(value, dict):
        return None

    def _seconds(key: str) -> int:
        number = sanitize_number(value.get(key))
        return int(number) if number is not None and number >= 0 else 0

    def _count(key: str) -> int:
        count = sanitize_count(value.get(key))
        return count if count is not None else 0

    return DayStats(
        focus_seconds=_seconds("focusSeconds"),
        break_seconds=_seconds("breakSeconds"),
        focus_count=_count("focusCount"),
        break_count=_count("breakCount"),
    )


def sanitize_weekly_stats(value: Any, today: date) -> WeeklyStats | None:
    if not isinstance(value, dict):
        return None

    parsed: WeeklyStats = {}
    for key, raw_day in value.items():
        day = sanitize_day_stats(raw_day)
        if isinstance(key, str) and day is not None:
            parsed[key] = day
    return normalize_week(parsed, today)


def sanitize_history_entry(value: Any) -> SessionHistoryEntry | None:
    if not isinstance(value, dict):
        return None

    entry_id = value.get("id")
    if not isinstance(entry_id, str) or not entry_id.strip():
        return None

    completed = parse_timestamp(value.get("completedAt"))
    if completed is None:
        return None

    focus_minutes = sanitize_number(value.get("focusMinutes"))
    if focus_minutes is None or focus_minutes < 0:
        return None

    cycle = sanitize_number(value.get("cycle"))
    if cycle is None or cycle < 0:
        return None

    suggestion = value.get("suggestion")
    return SessionHistoryEntry(
        id=entry_id,
        completed_at=format_timestamp(completed),
        focus_minutes=round(focus_minutes, 1),
        mood=sanitize_mood(value.get("mood")),
        suggestion=suggestion if isinstance(suggestion, str) else None,
        cycle=max(0, int(round(cycle))),
    )


def sanitize_session_history(value: Any) -> list[SessionHistoryEntry] | None:
    """Validate entry by entry, newest first, capped at ``HISTORY_LIMIT``."""
    if not isinstance(value, list):
        return None

    entries = [entry for entry in (sanitize_history_entry(item) for item in value) if entry is not None]
    entries.sort(key=lambda entry: parse_timestamp(entry.completed_at), reverse=True)
    return entries[:HISTORY_LIMIT]
