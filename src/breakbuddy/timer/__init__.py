"""Focus/break cycle: data model, phase ticker, stats, persistence and state store.

The engine facade and suggestion controller live in ``engine`` and
``suggestions`` and are imported from there directly.
"""

from .models import (
    DayStats,
    Durations,
    Mood,
    Phase,
    SessionHistoryEntry,
    TimerState,
    WeeklyStats,
)
from .persistence import MemorySnapshotStore, PersistedSnapshot, SnapshotStore
from .session_tracker import SessionTracker, create_session_id
from .stats import create_initial_week, normalize_week, upsert_day, week_totals
from .store import StateStore
from .ticker import AsyncioTicker, TickResult, TimerEvent, compute_tick

__all__ = [
    "AsyncioTicker",
    "DayStats",
    "Durations",
    "MemorySnapshotStore",
    "Mood",
    "PersistedSnapshot",
    "Phase",
    "SessionHistoryEntry",
    "SessionTracker",
    "SnapshotStore",
    "StateStore",
    "TickResult",
    "TimerEvent",
    "TimerState",
    "WeeklyStats",
    "compute_tick",
    "create_initial_week",
    "create_session_id",
    "normalize_week",
    "upsert_day",
    "week_totals",
]
