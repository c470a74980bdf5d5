"""Local snapshot of durations, stats, history and counters.

The on-disk record uses camelCase keys (same shape the web build kept in
localStorage) wrapped in a versioned envelope. Loading never fails: a bad file
or a bad field falls back to defaults.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from .models import LONG_BREAK_INTERVAL, Durations, SessionHistoryEntry, TimerState, WeeklyStats
from .sanitizers import (
    sanitize_boolean,
    sanitize_count,
    sanitize_durations,
    sanitize_session_history,
    sanitize_weekly_stats,
)

logger = logging.getLogger("breakbuddy.timer")

STORAGE_KEY = "breakbuddy:focus-timer:v1"
DEFAULT_STATE_PATH = Path.home() / ".breakbuddy" / "focus-timer.json"


@dataclass
class PersistedSnapshot:
    """Fields recovered from disk. ``None`` means "use the default"."""

    durations: Durations | None = None
    weekly_stats: WeeklyStats | None = None
    session_history: list[SessionHistoryEntry] | None = None
    completed_focus_sessions: int | None = None
    total_focus_seconds: int | None = None
    total_break_seconds: int | None = None
    cycle_streak: int | None = None
    auto_brew_enabled: bool = True

    def overrides(self) -> dict[str, Any]:
        """Non-default fields, ready to merge into a ``TimerState``."""
        values = {
            "durations": self.durations,
            "weekly_stats": self.weekly_stats,
            "session_history": self.session_history,
            "completed_focus_sessions": self.completed_focus_sessions,
            "total_focus_seconds": self.total_focus_seconds,
            "total_break_seconds": self.total_break_seconds,
            "cycle_streak": self.cycle_streak,
        }
        result = {key: value for key, value in values.items() if value is not None}
        result["auto_brew_enabled"] = self.auto_brew_enabled
        return result


# ---- Codec ----

def encode_snapshot(state: TimerState) -> dict:
    """Serialize the durable subset of ``state``."""
    return {
        "durations": {
            "focus": state.durations.focus,
            "shortBreak": state.durations.short_break,
            "longBreak": state.durations.long_break,
        },
        "weeklyStats": {
            key: {
                "focusSeconds": day.focus_seconds,
                "breakSeconds": day.break_seconds,
                "focusCount": day.focus_count,
                "breakCount": day.break_count,
            }
            for key, day in state.weekly_stats.items()
        },
        "sessionHistory": [
            {
                "id": entry.id,
                "completedAt": entry.completed_at,
                "focusMinutes": entry.focus_minutes,
                "mood": entry.mood.value if entry.mood is not None else None,
                "suggestion": entry.suggestion,
                "cycle": entry.cycle,
            }
            for entry in state.session_history
        ],
        "completedFocusSessions": state.completed_focus_sessions,
        "totalFocusSeconds": state.total_focus_seconds,
        "totalBreakSeconds": state.total_break_seconds,
        "cycleStreak": state.cycle_streak,
        "autoBrewEnabled": state.auto_brew_enabled,
    }


def decode_snapshot(raw: Any, today: date) -> PersistedSnapshot:
    """Sanitize each field independently."""
    if not isinstance(raw, dict):
        return PersistedSnapshot()

    streak = sanitize_count(raw.get("cycleStreak"))
    if streak is not None and streak >= LONG_BREAK_INTERVAL:
        streak = None

    return PersistedSnapshot(
        durations=sanitize_durations(raw.get("durations")),
        weekly_stats=sanitize_weekly_stats(raw.get("weeklyStats"), today),
        session_history=sanitize_session_history(raw.get("sessionHistory")),
        completed_focus_sessions=sanitize_count(raw.get("completedFocusSessions")),
        total_focus_seconds=sanitize_count(raw.get("totalFocusSeconds")),
        total_break_seconds=sanitize_count(raw.get("totalBreakSeconds")),
        cycle_streak=streak,
        auto_brew_enabled=sanitize_boolean(raw.get("autoBrewEnabled"), True),
    )


# ---- Storage ----

class SnapshotStore:
    """Reads and writes the snapshot file. All failures are absorbed."""

    def __init__(self, path: Path | str = DEFAULT_STATE_PATH):
        self.path = Path(path)

    def load(self, today: date) -> PersistedSnapshot:
        if not self.path.exists():
            return PersistedSnapshot()

        try:
            with open(self.path, encoding="utf-8") as f:
                envelope = json.load(f)
        except (OSError, ValueError, RecursionError) as e:
            # ValueError covers bad JSON and bad UTF-8
            logger.warning(f"Snapshot: unreadable {self.path}, using defaults: {e}")
            return PersistedSnapshot()

        if isinstance(envelope, dict) and envelope.get("key") == STORAGE_KEY:
            return decode_snapshot(envelope.get("state"), today)

        logger.warning(f"Snapshot: unexpected format in {self.path}, using defaults")
        return PersistedSnapshot()

    def save(self, state: TimerState) -> bool:
        """Atomically replace the snapshot file. Returns success."""
        payload = {"key": STORAGE_KEY, "state": encode_snapshot(state)}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".focus-timer-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.warning(f"Snapshot: failed to write {self.path}: {e}")
            return False
        return True


class MemorySnapshotStore(SnapshotStore):
    """In-memory store for tests and throwaway engines."""

    def __init__(self, initial: dict | None = None) -> None:
        super().__init__(Path(os.devnull))
        self.initial = initial
        self.saved: list[dict] = []

    def load(self, today: date) -> PersistedSnapshot:
        return decode_snapshot(self.initial, today)

    def save(self, state: TimerState) -> bool:
        self.saved.append(encode_snapshot(state))
        return True
