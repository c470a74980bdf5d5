"""
Auto-brew scheduler: the timers around a finished focus sprint.

Watches engine state and keeps three one-shot APScheduler jobs in line with it:
prefetching a suggestion as soon as a sprint completes, raising the auto-prompt
after the user has been idle for a while, and re-arming the prompt when a
snooze runs out.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from .config import DEFAULT_IDLE_PROMPT_SECONDS
from .timer.engine import FocusEngine
from .timer.models import TimerState

logger = logging.getLogger("breakbuddy.scheduler")

PREFETCH_JOB_ID = "breakbuddy-prefetch"
IDLE_PROMPT_JOB_ID = "breakbuddy-idle-prompt"
SNOOZE_JOB_ID = "breakbuddy-snooze"

IDLE_NOTIFICATION = ("Focus done ☕", "Time to chill? BreakBuddy brewed a suggestion for you.")


def _to_datetime(epoch_ms: int) -> datetime:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)


class AutoBrewScheduler:
    """Keeps prefetch, idle-prompt and snooze jobs in sync with engine state."""

    def __init__(
        self,
        engine: FocusEngine,
        scheduler: Optional[AsyncIOScheduler] = None,
        idle_prompt_seconds: float = DEFAULT_IDLE_PROMPT_SECONDS,
    ):
        self.engine = engine
        self.scheduler = scheduler or AsyncIOScheduler()
        self.idle_prompt_seconds = idle_prompt_seconds
        self._snooze_target: Optional[int] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
        if self._unsubscribe is None:
            self._unsubscribe = self.engine.subscribe(self.sync)
        self.sync(self.engine.snapshot())
        logger.info(f"AutoBrew: watching engine (idle prompt after {self.idle_prompt_seconds}s)")

    def shutdown(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    # ---- State reconciliation ----

    def sync(self, state: TimerState) -> None:
        """Engine listener. Adds or removes jobs to match ``state``."""
        now = self.engine.now()
        snoozed = state.snooze_until is not None and state.snooze_until > now

        if self.should_prefetch(state, snoozed) and self.scheduler.get_job(PREFETCH_JOB_ID) is None:
            self._schedule(PREFETCH_JOB_ID, self.engine.prefetch_auto_suggestion, now)

        if self.should_arm_idle_prompt(state, snoozed):
            if self.scheduler.get_job(IDLE_PROMPT_JOB_ID) is None:
                self._schedule(
                    IDLE_PROMPT_JOB_ID,
                    self._idle_prompt_elapsed,
                    now + int(self.idle_prompt_seconds * 1000),
                )
        else:
            self._cancel(IDLE_PROMPT_JOB_ID)

        if state.snooze_until != self._snooze_target:
            self._snooze_target = state.snooze_until
            self._cancel(SNOOZE_JOB_ID)
            if state.snooze_until is not None:
                self._schedule(SNOOZE_JOB_ID, self.engine.resume_awaiting_break, max(now, state.snooze_until))

    @staticmethod
    def should_prefetch(state: TimerState, snoozed: bool) -> bool:
        # A failed prefetch is not retried until the next sprint
        return (
            state.auto_brew_enabled
            and state.focus_session_complete
            and not snoozed
            and not state.queued_suggestion
            and not state.is_prefetching_auto_suggestion
            and state.auto_suggestion_error is None
        )

    @staticmethod
    def should_arm_idle_prompt(state: TimerState, snoozed: bool) -> bool:
        return (
            state.auto_brew_enabled
            and state.focus_session_complete
            and state.awaiting_break
            and not snoozed
            and not state.auto_prompt_visible
        )

    # ---- User signals ----

    def user_activity(self) -> None:
        """Any keypress while the idle prompt is armed cancels auto-brew for this sprint."""
        if self.scheduler.get_job(IDLE_PROMPT_JOB_ID) is None:
            return
        self._cancel(IDLE_PROMPT_JOB_ID)
        self.engine.abort_auto_suggestion()

    # ---- Jobs ----

    async def _idle_prompt_elapsed(self) -> None:
        self.engine.trigger_auto_prompt()
        if not self.engine.snapshot().auto_prompt_visible:
            return
        try:
            await asyncio.to_thread(self.engine.notifier.notify, *IDLE_NOTIFICATION)
        except Exception as e:
            logger.debug(f"AutoBrew: idle notification failed: {e}")

    def _schedule(self, job_id: str, func, run_at_ms: int) -> None:
        self.scheduler.add_job(
            func,
            trigger=DateTrigger(run_date=_to_datetime(run_at_ms)),
            id=job_id,
            replace_existing=True,
            misfire_grace_time=None,
        )
        logger.debug(f"AutoBrew: scheduled {job_id}")

    def _cancel(self, job_id: str) -> None:
        if self.scheduler.get_job(job_id):
            self.scheduler.remove_job(job_id)
            logger.debug(f"AutoBrew: cancelled {job_id}")
