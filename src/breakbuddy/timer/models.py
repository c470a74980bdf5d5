"""Data model for the focus/break cycle engine.

Plain dataclasses with no I/O. All timestamps are integer epoch
milliseconds unless a field says otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Phase(str, Enum):
    FOCUS = "focus"
    SHORT_BREAK = "short-break"
    LONG_BREAK = "long-break"

    @property
    def is_break(self) -> bool:
        return self is not Phase.FOCUS


class Mood(str, Enum):
    COOL = "😎"
    SLEEPY = "😴"
    ANGRY = "😠"
    FOCUSED = "🧠"
    LOVING = "❤️"


DEFAULT_FOCUS_SECONDS = 25 * 60
DEFAULT_SHORT_BREAK_SECONDS = 5 * 60
DEFAULT_LONG_BREAK_SECONDS = 15 * 60

LONG_BREAK_INTERVAL = 4  # Focus sprints before the break gate
HISTORY_LIMIT = 50
WEEK_DAYS = 7
MAX_CATCH_UP_ITERATIONS = 24  # Runaway guard for huge clock jumps


@dataclass(frozen=True)
class Durations:
    focus: int = DEFAULT_FOCUS_SECONDS
    short_break: int = DEFAULT_SHORT_BREAK_SECONDS
    long_break: int = DEFAULT_LONG_BREAK_SECONDS

    def for_phase(self, phase: Phase) -> int:
        if phase is Phase.FOCUS:
            return self.focus
        if phase is Phase.SHORT_BREAK:
            return self.short_break
        return self.long_break


@dataclass(frozen=True)
class DayStats:
    focus_seconds: int = 0
    break_seconds: int = 0
    focus_count: int = 0
    break_count: int = 0


WeeklyStats = dict[str, DayStats]


@dataclass(frozen=True)
class SessionHistoryEntry:
    """One completed focus sprint.

    Only ``suggestion`` changes after creation, via ``dataclasses.replace``.
    """

    id: str
    completed_at: str  # ISO-8601, UTC
    focus_minutes: float
    mood: Mood | None = None
    suggestion: str | None = None
    cycle: int = 1


@dataclass
class TimerState:
    """Everything the engine knows. Observers only ever see copies.

    Collections are replaced on change, never mutated in place, so a shallow
    copy is a consistent snapshot.
    """

    durations: Durations = field(default_factory=Durations)
    phase: Phase = Phase.FOCUS
    seconds_remaining: int = DEFAULT_FOCUS_SECONDS
    is_running: bool = False
    target_timestamp: int | None = None

    completed_focus_sessions: int = 0
    total_focus_seconds: int = 0
    total_break_seconds: int = 0
    pending_break_suggestions: int = 0
    cycle_streak: int = 0
    show_break_gate: bool = False

    latest_mood: Mood | None = None
    last_focus_seconds: int | None = None
    session_count: int = 0

    break_suggestion: str | None = None
    is_generating_suggestion: bool = False
    suggestion_error: str | None = None

    focus_session_complete: bool = False
    awaiting_break: bool = False
    auto_prompt_visible: bool = False
    queued_suggestion: str | None = None
    is_prefetching_auto_suggestion: bool = False
    auto_suggestion_error: str | None = None
    snooze_until: int | None = None
    auto_brew_enabled: bool = True

    session_history: list[SessionHistoryEntry] = field(default_factory=list)
    weekly_stats: WeeklyStats = field(default_factory=dict)


# Fields written to the local snapshot. Any change to one triggers a save.
PERSISTED_FIELDS: tuple[str, ...] = (
    "weekly_stats",
    "session_history",
    "durations",
    "completed_focus_sessions",
    "total_focus_seconds",
    "total_break_seconds",
    "cycle_streak",
    "auto_brew_enabled",
)

# Auto-suggestion transient state, cleared together on most transitions.
AUTO_SUGGESTION_RESET: dict[str, object] = {
    "auto_prompt_visible": False,
    "queued_suggestion": None,
    "is_prefetching_auto_suggestion": False,
    "auto_suggestion_error": None,
    "snooze_until": None,
}
