"""Break-suggestion lifecycle: manual brews, auto-brew prefetch, queue, snooze.

Fetches are asynchronous and cannot be cancelled once sent. Instead every
fetch remembers an epoch token; anything that invalidates its context bumps
the token, and a completion that finds a different token (or its in-flight
flag cleared) is dropped instead of applied.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from typing import Callable

from ..suggest.models import SuggestionError, SuggestionGenerator, SuggestionRequest
from .models import AUTO_SUGGESTION_RESET, SessionHistoryEntry, TimerState
from .session_tracker import SessionTracker
from .store import StateStore

logger = logging.getLogger("breakbuddy.timer")

MANUAL_FALLBACK_ERROR = "Failed to brew a fresh suggestion."
AUTO_FALLBACK_ERROR = "Gemini needs a refill. Try again soon."


def attach_suggestion(
    history: list[SessionHistoryEntry], session_id: str | None, suggestion: str | None
) -> list[SessionHistoryEntry]:
    """Copy of ``history`` with ``suggestion`` set on the entry whose id matches."""
    if session_id is None:
        return history
    return [
        SessionHistoryEntry(
            id=entry.id,
            completed_at=entry.completed_at,
            focus_minutes=entry.focus_minutes,
            mood=entry.mood,
            suggestion=suggestion,
            cycle=entry.cycle,
        )
        if entry.id == session_id
        else entry
        for entry in history
    ]


class SuggestionController:
    def __init__(
        self,
        store: StateStore,
        tracker: SessionTracker,
        generator: SuggestionGenerator,
        clock: Callable[[], int],
    ):
        self._store = store
        self._tracker = tracker
        self._generator = generator
        self._clock = clock
        self._manual_epoch = 0
        self._auto_epoch = 0

    # ---- Invalidation ----

    def invalidate_auto(self) -> None:
        self._auto_epoch += 1

    def invalidate_all(self) -> None:
        self._manual_epoch += 1
        self._auto_epoch += 1

    # ---- Manual brew ----

    async def generate_break_suggestion(self) -> None:
        state = self._store.state
        if state.is_generating_suggestion:
            logger.debug("Suggestions: brew already in flight")
            return

        request = self._build_request(state)
        epoch = self._manual_epoch
        self._store.update(is_generating_suggestion=True, suggestion_error=None)

        try:
            suggestion = await self._call_generator(request)
        except SuggestionError as e:
            self._fail_manual(epoch, str(e))
            return
        except asyncio.CancelledError:
            self._fail_manual(epoch, None)
            raise
        except Exception:
            logger.exception("Suggestions: generator crashed")
            self._fail_manual(epoch, MANUAL_FALLBACK_ERROR)
            return

        current = self._store.state
        if epoch != self._manual_epoch or not current.is_generating_suggestion:
            logger.info("Suggestions: dropping stale brew result")
            return

        self._store.update(
            break_suggestion=suggestion,
            is_generating_suggestion=False,
            suggestion_error=None,
            pending_break_suggestions=max(0, current.pending_break_suggestions - 1),
            session_count=current.session_count + 1,
            session_history=attach_suggestion(
                current.session_history, self._tracker.last_logged_session_id, suggestion
            ),
        )

    def clear_break_suggestion(self) -> None:
        self._store.update(break_suggestion=None, suggestion_error=None)

    # ---- Auto-brew ----

    async def prefetch_auto_suggestion(self) -> None:
        state = self._store.state
        if (
            not state.auto_brew_enabled
            or not state.focus_session_complete
            or state.is_prefetching_auto_suggestion
            or state.queued_suggestion
            or self._is_snoozed(state)
        ):
            return

        request = self._build_request(state)
        epoch = self._auto_epoch
        self._store.update(is_prefetching_auto_suggestion=True, auto_suggestion_error=None)

        try:
            suggestion = await self._call_generator(request)
        except SuggestionError as e:
            self._fail_auto(epoch, str(e))
            return
        except asyncio.CancelledError:
            self._fail_auto(epoch, None)
            raise
        except Exception:
            logger.exception("Suggestions: generator crashed during prefetch")
            self._fail_auto(epoch, AUTO_FALLBACK_ERROR)
            return

        current = self._store.state
        if (
            epoch != self._auto_epoch
            or not current.is_prefetching_auto_suggestion
            or not current.focus_session_complete
            or not current.auto_brew_enabled
        ):
            logger.info("Suggestions: dropping stale prefetch result")
            return

        self._store.update(
            queued_suggestion=suggestion,
            is_prefetching_auto_suggestion=False,
            auto_suggestion_error=None,
        )

    def trigger_auto_prompt(self) -> None:
        if not self._store.state.focus_session_complete:
            return
        self._store.update(auto_prompt_visible=True, awaiting_break=False)

    def apply_queued_suggestion(self) -> None:
        state = self._store.state
        if not state.queued_suggestion:
            return

        suggestion = state.queued_suggestion
        self.invalidate_auto()
        self._store.update(
            **AUTO_SUGGESTION_RESET,
            break_suggestion=suggestion,
            focus_session_complete=False,
            awaiting_break=False,
            session_count=state.session_count + 1,
            pending_break_suggestions=max(0, state.pending_break_suggestions - 1),
            session_history=attach_suggestion(
                state.session_history, self._tracker.last_logged_session_id, suggestion
            ),
        )

    def abort_auto_suggestion(self) -> None:
        """User is active again: drop the prompt and any prefetch, keep manual brews."""
        self.invalidate_auto()
        self._store.update(
            **AUTO_SUGGESTION_RESET,
            focus_session_complete=False,
            awaiting_break=False,
        )

    def snooze_auto_suggestion(self, minutes: float) -> None:
        duration = max(minutes, 1)
        self._store.update(
            snooze_until=self._clock() + int(duration * 60_000),
            auto_prompt_visible=False,
            awaiting_break=False,
        )

    def resume_awaiting_break(self) -> None:
        """Re-arm the idle prompt once a snooze has run out.

        Safe to call late or repeatedly: does nothing unless the focus sprint
        is still waiting for its break and the snooze has elapsed.
        """
        state = self._store.state
        if not state.focus_session_complete or self._is_snoozed(state):
            return
        self._store.update(awaiting_break=True, auto_prompt_visible=False, snooze_until=None)

    def set_auto_brew_enabled(self, enabled: bool) -> None:
        if enabled:
            self._store.update(auto_brew_enabled=True)
            return
        self.invalidate_auto()
        self._store.update(**AUTO_SUGGESTION_RESET, auto_brew_enabled=False)

    # ---- Internal ----

    def _is_snoozed(self, state: TimerState) -> bool:
        return state.snooze_until is not None and state.snooze_until > self._clock()

    def _build_request(self, state: TimerState) -> SuggestionRequest:
        focus_seconds = state.last_focus_seconds
        if focus_seconds is None:
            focus_seconds = state.durations.focus
        return SuggestionRequest(
            focus_minutes=max(1, math.floor(focus_seconds / 60 + 0.5)),
            mood=state.latest_mood,
            previous_suggestion=state.break_suggestion,
            session_count=state.session_count + 1,
        )

    async def _call_generator(self, request: SuggestionRequest) -> str:
        if inspect.iscoroutinefunction(self._generator) or inspect.iscoroutinefunction(
            getattr(self._generator, "__call__", None)
        ):
            text = await self._generator(request)
        else:
            text = await asyncio.to_thread(self._generator, request)
            if inspect.isawaitable(text):
                text = await text
        if not isinstance(text, str) or not text.strip():
            raise SuggestionError("The suggestion service returned an empty suggestion.")
        return text.strip()

    def _fail_manual(self, epoch: int, message: str | None) -> None:
        if epoch != self._manual_epoch or not self._store.state.is_generating_suggestion:
            return
        self._store.update(is_generating_suggestion=False, suggestion_error=message)

    def _fail_auto(self, epoch: int, message: str | None) -> None:
        if epoch != self._auto_epoch or not self._store.state.is_prefetching_auto_suggestion:
            return
        self._store.update(is_prefetching_auto_suggestion=False, auto_suggestion_error=message)
