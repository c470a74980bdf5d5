"""Phase state machine and the periodic tick handle.

``compute_tick`` is pure apart from the session tracker it is handed: it
reads a ``TimerState`` and an injected epoch-ms timestamp and returns the
changes to apply. ``AsyncioTicker`` just calls a callback on a fixed interval.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from .models import (
    AUTO_SUGGESTION_RESET,
    HISTORY_LIMIT,
    LONG_BREAK_INTERVAL,
    MAX_CATCH_UP_ITERATIONS,
    Phase,
    SessionHistoryEntry,
    TimerState,
)
from .sanitizers import format_timestamp
from .session_tracker import SessionTracker
from .stats import add_break, add_focus, day_key_for_ms

logger = logging.getLogger("breakbuddy.timer")

DEFAULT_TICK_INTERVAL_MS = 250


class TimerEvent(Enum):
    COUNTDOWN_CHANGED = "countdown_changed"
    FOCUS_COMPLETED = "focus_completed"
    BREAK_COMPLETED = "break_completed"
    BREAK_GATE_RAISED = "break_gate_raised"


@dataclass
class TickResult:
    changes: dict[str, Any] = field(default_factory=dict)
    events: list[TimerEvent] = field(default_factory=list)
    stop_ticker: bool = False


def seconds_until(target_ms: int, now_ms: int) -> int:
    """Whole seconds left, rounded up, never negative."""
    return max(0, -(-(target_ms - now_ms) // 1000))


def compute_tick(
    state: TimerState,
    tracker: SessionTracker,
    now_ms: int,
    max_catch_up: int = MAX_CATCH_UP_ITERATIONS,
) -> TickResult:
    """Advance the state machine to ``now_ms``.

    If the target has not been reached only the displayed countdown moves.
    Otherwise every phase boundary crossed since the target is completed in
    order (catch-up), crediting each focus sprint at most once.
    """
    if not state.is_running:
        return TickResult(stop_ticker=True)

    if state.show_break_gate:
        return TickResult(changes={"is_running": False, "target_timestamp": None}, stop_ticker=True)

    target = state.target_timestamp
    if target is None:
        target = now_ms + state.seconds_remaining * 1000
    remaining_ms = target - now_ms

    if remaining_ms > 0:
        result = TickResult()
        if target != state.target_timestamp:
            result.changes["target_timestamp"] = target
        seconds = seconds_until(target, now_ms)
        if seconds != state.seconds_remaining:
            result.changes["seconds_remaining"] = seconds
            result.events.append(TimerEvent.COUNTDOWN_CHANGED)
        return result

    durations = state.durations
    result = TickResult()

    deficit_ms = -remaining_ms
    phase = state.phase
    seconds_remaining = state.seconds_remaining
    target_timestamp: int | None = target
    is_running = True
    completed = state.completed_focus_sessions
    total_focus = state.total_focus_seconds
    total_break = state.total_break_seconds
    pending = state.pending_break_suggestions
    last_focus = state.last_focus_seconds
    streak = state.cycle_streak
    history = state.session_history
    weekly = state.weekly_stats
    flags: dict[str, Any] = {
        "focus_session_complete": state.focus_session_complete,
        "awaiting_break": state.awaiting_break,
    }
    show_gate = False

    settled = False
    for _ in range(max_catch_up):
        ended_at = now_ms - deficit_ms

        if phase is Phase.FOCUS:
            session_id = tracker.ensure_active(ended_at)
            if not tracker.is_logged(session_id):
                weekly = add_focus(weekly, day_key_for_ms(ended_at), durations.focus)
                total_focus += durations.focus
                entry = SessionHistoryEntry(
                    id=session_id,
                    completed_at=format_timestamp(datetime.fromtimestamp(ended_at / 1000, tz=timezone.utc)),
                    focus_minutes=round(durations.focus / 60, 1),
                    mood=state.latest_mood,
                    suggestion=None,
                    cycle=streak + 1,
                )
                history = ([entry] + [e for e in history if e.id != session_id])[:HISTORY_LIMIT]
                streak += 1
            tracker.mark_logged(session_id)

            completed += 1
            pending += 1
            last_focus = durations.focus
            flags.update(AUTO_SUGGESTION_RESET, focus_session_complete=True, awaiting_break=True)
            result.events.append(TimerEvent.FOCUS_COMPLETED)

            if streak >= LONG_BREAK_INTERVAL:
                phase = Phase.LONG_BREAK
                seconds_remaining = durations.long_break
                target_timestamp = None
                is_running = False
                streak = 0
                show_gate = True
                flags.update(focus_session_complete=False, awaiting_break=False)
                result.events.append(TimerEvent.BREAK_GATE_RAISED)
                result.stop_ticker = True
                settled = True
                break

            phase = Phase.SHORT_BREAK
        else:
            break_seconds = durations.for_phase(phase)
            total_break += break_seconds
            weekly = add_break(weekly, day_key_for_ms(ended_at), break_seconds)
            flags.update(AUTO_SUGGESTION_RESET, focus_session_complete=False, awaiting_break=False)
            result.events.append(TimerEvent.BREAK_COMPLETED)
            phase = Phase.FOCUS
            tracker.begin_new(ended_at)

        phase_ms = durations.for_phase(phase) * 1000
        if deficit_ms < phase_ms:
            left_ms = phase_ms - deficit_ms
            seconds_remaining = -(-left_ms // 1000)
            target_timestamp = now_ms + left_ms
            settled = True
            break
        deficit_ms -= phase_ms

    if not settled:
        logger.warning(f"Ticker: catch-up stopped after {max_catch_up} phases, restarting {phase.value}")
        seconds_remaining = durations.for_phase(phase)
        target_timestamp = now_ms + seconds_remaining * 1000

    result.changes.update(
        flags,
        phase=phase,
        seconds_remaining=seconds_remaining,
        target_timestamp=target_timestamp,
        is_running=is_running,
        completed_focus_sessions=completed,
        total_focus_seconds=total_focus,
        total_break_seconds=total_break,
        pending_break_suggestions=pending,
        last_focus_seconds=last_focus,
        cycle_streak=streak,
        session_history=history,
        weekly_stats=weekly,
        show_break_gate=show_gate,
    )
    return result


class AsyncioTicker:
    """Engine-owned periodic tick handle.

    Starting always stops a previous loop first. Without a running event loop
    the ticker only records that it is armed; the owner drives ticks itself.
    """

    def __init__(self, interval_ms: int = DEFAULT_TICK_INTERVAL_MS):
        self.interval_ms = interval_ms
        self._task: asyncio.Task | None = None
        self._armed = False

    @property
    def is_active(self) -> bool:
        return self._armed

    def start(self, callback: Callable[[], Any]) -> None:
        self.stop()
        self._armed = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("Ticker: no running event loop, ticks are driven manually")
            return
        self._task = loop.create_task(self._run(callback))

    def stop(self) -> None:
        self._armed = False
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def _run(self, callback: Callable[[], Any]) -> None:
        while True:
            await asyncio.sleep(self.interval_ms / 1000)
            try:
                callback()
            except Exception:
                logger.exception("Ticker: tick failed")
