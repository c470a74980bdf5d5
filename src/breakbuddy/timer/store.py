"""Single mutable engine state with atomic updates and subscribers."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable

from .models import TimerState

logger = logging.getLogger("breakbuddy.timer")

Listener = Callable[[TimerState], None]


class StateStore:
    """Holds the ``TimerState``.

    ``update`` applies every change before any listener runs, so observers
    never see a half-applied transition. Listeners receive a shallow copy.
    """

    def __init__(self, state: TimerState):
        self._state = state
        self._listeners: list[Listener] = []

    @property
    def state(self) -> TimerState:
        return self._state

    def snapshot(self) -> TimerState:
        return dataclasses.replace(self._state)

    def update(self, **changes: Any) -> bool:
        """Apply ``changes``; notify only if something actually changed."""
        dirty = False
        for name, value in changes.items():
            if not hasattr(self._state, name):
                raise AttributeError(f"Unknown timer field: {name}")
            if getattr(self._state, name) != value:
                setattr(self._state, name, value)
                dirty = True
        if dirty:
            self._notify()
        return dirty

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("StateStore: listener failed")
