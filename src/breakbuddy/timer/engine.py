"""FocusEngine: the public operation surface of the focus/break cycle.

Wires the state store, phase ticker, session tracker, suggestion controller,
snapshot persistence and desktop side effects together. Every operation is
synchronous and atomic except the two suggestion fetches, which are
coroutines.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from datetime import date, datetime
from typing import Any, Callable

from ..notifier import Notifier, NullNotifier
from ..suggest.models import SuggestionError, SuggestionGenerator, SuggestionRequest
from .models import (
    AUTO_SUGGESTION_RESET,
    MAX_CATCH_UP_ITERATIONS,
    PERSISTED_FIELDS,
    Durations,
    Mood,
    Phase,
    TimerState,
)
from .persistence import SnapshotStore
from .session_tracker import SessionTracker
from .stats import create_initial_week, normalize_week
from .store import Listener, StateStore
from .suggestions import SuggestionController
from .ticker import AsyncioTicker, TickResult, TimerEvent, compute_tick, seconds_until

logger = logging.getLogger("breakbuddy.timer")

GATE_ACCEPT_NOTIFICATION = ("BreakBuddy ☕", "Long break engaged. Hydrate before your keyboard unionizes.")
GATE_SKIP_NOTIFICATION = ("BreakBuddy 😒", "Skipping the long break? Fine. Stretch later, if your neck survives.")

# Fields that survive reset() untouched
RESET_PRESERVED_FIELDS = (
    "durations",
    "weekly_stats",
    "session_history",
    "completed_focus_sessions",
    "total_focus_seconds",
    "total_break_seconds",
    "auto_brew_enabled",
)


def epoch_ms() -> int:
    return int(time.time() * 1000)


def _unconfigured_generator(request: SuggestionRequest) -> str:
    raise SuggestionError("No suggestion generator configured.")


def build_initial_state(durations: Durations, today: date) -> TimerState:
    return TimerState(
        durations=durations,
        seconds_remaining=durations.focus,
        weekly_stats=create_initial_week(today),
    )


class FocusEngine:
    """Pomodoro-style focus/break engine with break-suggestion lifecycle.

    Args:
        generator: Turns a ``SuggestionRequest`` into text. May be a plain
            callable (run in a worker thread) or a coroutine function.
        snapshot_store: Where the durable snapshot is read once and written
            on every persisted-field change.
        notifier: Best-effort sound/notification sink.
        clock: Returns the current epoch milliseconds.
        ticker: Periodic tick handle; the engine starts and stops it.
        max_catch_up: Phase boundaries a single tick may cross.
    """

    def __init__(
        self,
        generator: SuggestionGenerator | None = None,
        snapshot_store: SnapshotStore | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], int] = epoch_ms,
        ticker: AsyncioTicker | None = None,
        max_catch_up: int = MAX_CATCH_UP_ITERATIONS,
    ):
        self._clock = clock
        self.tracker = SessionTracker()
        self.ticker = ticker or AsyncioTicker()
        self.snapshot_store = snapshot_store or SnapshotStore()
        self.notifier = notifier or NullNotifier()
        self.max_catch_up = max_catch_up

        today = self._today()
        persisted = self.snapshot_store.load(today)
        state = build_initial_state(persisted.durations or Durations(), today)
        for name, value in persisted.overrides().items():
            setattr(state, name, value)
        state.weekly_stats = normalize_week(state.weekly_stats, today)

        self._store = StateStore(state)
        self.suggestions = SuggestionController(
            self._store, self.tracker, generator or _unconfigured_generator, clock
        )
        self._persisted = self._persisted_values(state)
        self._store.subscribe(self._persist_if_changed)

        logger.info(
            f"Engine: loaded {len(state.session_history)} history entries, "
            f"durations {state.durations.focus}/{state.durations.short_break}/{state.durations.long_break}s"
        )

    # ---- Observation ----

    def snapshot(self) -> TimerState:
        return self._store.snapshot()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._store.subscribe(listener)

    def now(self) -> int:
        return self._clock()

    # ---- Timer control ----

    def start(self) -> None:
        state = self._store.state
        if state.is_running or state.show_break_gate:
            logger.debug("Engine: start ignored (running or gated)")
            return

        now = self._clock()
        changes: dict[str, Any] = {}
        phase = state.phase
        seconds = state.seconds_remaining
        if seconds == 0:
            phase = Phase.FOCUS
            seconds = state.durations.focus
            changes.update(
                phase=phase,
                seconds_remaining=seconds,
                completed_focus_sessions=0,
                pending_break_suggestions=0,
            )

        if phase is Phase.FOCUS and self.tracker.needs_fresh_id():
            self.tracker.begin_new(now)

        self.suggestions.invalidate_auto()
        changes.update(
            AUTO_SUGGESTION_RESET,
            is_running=True,
            target_timestamp=now + seconds * 1000,
            focus_session_complete=False,
            awaiting_break=False,
        )
        self._store.update(**changes)
        logger.info(f"Engine: started {phase.value}, {seconds}s left")
        self._start_ticker()

    def pause(self) -> None:
        state = self._store.state
        if not state.is_running or state.show_break_gate:
            return

        # Settle any boundary already passed so a finished sprint is credited first
        self.tick()
        state = self._store.state
        if not state.is_running:
            return

        self.ticker.stop()
        seconds = state.seconds_remaining
        if state.target_timestamp is not None:
            seconds = seconds_until(state.target_timestamp, self._clock())
        self._store.update(is_running=False, target_timestamp=None, seconds_remaining=seconds)
        logger.info(f"Engine: paused with {seconds}s left")

    def resume(self) -> None:
        state = self._store.state
        if state.is_running or state.show_break_gate:
            return

        changes: dict[str, Any] = {}
        seconds = state.seconds_remaining
        if seconds == 0:
            seconds = state.durations.focus
            changes.update(phase=Phase.FOCUS, seconds_remaining=seconds)
        changes.update(is_running=True, target_timestamp=self._clock() + seconds * 1000)
        self._store.update(**changes)
        self._start_ticker()

    def reset(self) -> None:
        self.ticker.stop()
        self.tracker.clear()
        self.suggestions.invalidate_all()

        state = self._store.state
        fresh = build_initial_state(state.durations, self._today())
        changes = {f.name: getattr(fresh, f.name) for f in dataclasses.fields(fresh)}
        for name in RESET_PRESERVED_FIELDS:
            changes[name] = getattr(state, name)
        self._store.update(**changes)
        logger.info("Engine: reset")

    def set_durations(
        self,
        focus: int | None = None,
        short_break: int | None = None,
        long_break: int | None = None,
    ) -> None:
        """Merge valid positive integer durations (seconds); ignore the rest."""
        valid: dict[str, int] = {}
        for name, value in (("focus", focus), ("short_break", short_break), ("long_break", long_break)):
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                logger.debug(f"Engine: ignoring invalid {name} duration {value!r}")
                continue
            valid[name] = value
        if not valid:
            return

        state = self._store.state
        durations = dataclasses.replace(state.durations, **valid)
        seconds = state.seconds_remaining
        if not state.is_running:
            active_key = {
                Phase.FOCUS: "focus",
                Phase.SHORT_BREAK: "short_break",
                Phase.LONG_BREAK: "long_break",
            }[state.phase]
            if active_key in valid:
                seconds = valid[active_key]
        self._store.update(durations=durations, seconds_remaining=seconds)

    def tick(self, now_ms: int | None = None) -> TickResult:
        """Advance to ``now_ms`` (default: the clock). Called by the ticker."""
        now = self._clock() if now_ms is None else now_ms
        result = compute_tick(self._store.state, self.tracker, now, self.max_catch_up)

        if TimerEvent.FOCUS_COMPLETED in result.events or TimerEvent.BREAK_COMPLETED in result.events:
            self.suggestions.invalidate_auto()
        if result.changes:
            self._store.update(**result.changes)
        if result.stop_ticker:
            self.ticker.stop()

        completions = [e.value for e in result.events if e is not TimerEvent.COUNTDOWN_CHANGED]
        if completions:
            logger.info(f"Engine: tick crossed {', '.join(completions)}")
        return result

    def close(self) -> None:
        self.ticker.stop()

    # ---- Mood ----

    def set_mood(self, mood: Mood | str) -> None:
        try:
            value = Mood(mood)
        except ValueError:
            logger.debug(f"Engine: ignoring unknown mood {mood!r}")
            return
        self._store.update(latest_mood=value)

    def clear_mood(self) -> None:
        self._store.update(latest_mood=None)

    # ---- Suggestions ----

    async def generate_break_suggestion(self) -> None:
        await self.suggestions.generate_break_suggestion()

    def clear_break_suggestion(self) -> None:
        self.suggestions.clear_break_suggestion()

    async def prefetch_auto_suggestion(self) -> None:
        await self.suggestions.prefetch_auto_suggestion()

    def trigger_auto_prompt(self) -> None:
        self.suggestions.trigger_auto_prompt()

    def apply_queued_suggestion(self) -> None:
        self.suggestions.apply_queued_suggestion()

    def abort_auto_suggestion(self) -> None:
        self.suggestions.abort_auto_suggestion()

    def snooze_auto_suggestion(self, minutes: float = 5) -> None:
        self.suggestions.snooze_auto_suggestion(minutes)

    def resume_awaiting_break(self) -> None:
        self.suggestions.resume_awaiting_break()

    def set_auto_brew_enabled(self, enabled: bool) -> None:
        self.suggestions.set_auto_brew_enabled(enabled)

    # ---- Break gate ----

    def accept_break_gate(self) -> None:
        state = self._store.state
        if not state.show_break_gate:
            return

        now = self._clock()
        self.tracker.active_session_id = None
        self._store.update(
            phase=Phase.LONG_BREAK,
            seconds_remaining=state.durations.long_break,
            is_running=True,
            show_break_gate=False,
            cycle_streak=0,
            target_timestamp=now + state.durations.long_break * 1000,
            focus_session_complete=False,
            auto_prompt_visible=False,
        )
        logger.info("Engine: long break accepted")
        self._side_effect(self.notifier.play_sound)
        self._side_effect(self.notifier.notify, *GATE_ACCEPT_NOTIFICATION)
        self._start_ticker()

    def skip_break_gate(self) -> None:
        state = self._store.state
        if not state.show_break_gate:
            return

        now = self._clock()
        self.tracker.begin_new(now)
        self._store.update(
            phase=Phase.FOCUS,
            seconds_remaining=state.durations.focus,
            is_running=True,
            show_break_gate=False,
            cycle_streak=0,
            target_timestamp=now + state.durations.focus * 1000,
            focus_session_complete=False,
            auto_prompt_visible=False,
        )
        logger.info("Engine: long break skipped")
        self._side_effect(self.notifier.notify, *GATE_SKIP_NOTIFICATION)
        self._start_ticker()

    # ---- Internal ----

    def _today(self) -> date:
        return datetime.fromtimestamp(self._clock() / 1000).date()

    def _start_ticker(self) -> None:
        self.tick()
        if self._store.state.is_running:
            self.ticker.start(self.tick)

    def _side_effect(self, func: Callable[..., Any], *args: Any) -> None:
        """Run a notifier call off the event loop when there is one."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._run_side_effect(func, *args)
            return
        loop.run_in_executor(None, self._run_side_effect, func, *args)

    @staticmethod
    def _run_side_effect(func: Callable[..., Any], *args: Any) -> None:
        try:
            result = func(*args)
        except Exception as e:
            logger.debug(f"Engine: side effect failed: {e}")
            return
        if isinstance(result, dict) and not result.get("success"):
            logger.debug(f"Engine: side effect skipped: {result.get('error')}")

    @staticmethod
    def _persisted_values(state: TimerState) -> tuple:
        return tuple(getattr(state, name) for name in PERSISTED_FIELDS)

    def _persist_if_changed(self, snapshot: TimerState) -> None:
        values = self._persisted_values(snapshot)
        if values == self._persisted:
            return
        self._persisted = values
        self.snapshot_store.save(snapshot)
