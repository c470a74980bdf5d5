"""Shared fixtures: a controllable clock, canned generators, a wired engine."""

import asyncio
from datetime import datetime

import pytest

from breakbuddy.notifier import NullNotifier
from breakbuddy.timer.engine import FocusEngine
from breakbuddy.timer.persistence import MemorySnapshotStore

# 2026-03-10 09:00 local time
START_MS = int(datetime(2026, 3, 10, 9, 0, 0).timestamp() * 1000)
TODAY_KEY = "2026-03-10"


class FakeClock:
    """Epoch-milliseconds clock that only moves when told to."""

    def __init__(self, now_ms: int = START_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> int:
        self.now_ms += int(seconds * 1000)
        return self.now_ms


class StubGenerator:
    """Plain callable generator: returns canned text or raises."""

    def __init__(self, responses=None, error: Exception | None = None):
        self.responses = list(responses or ["Stretch like the build depends on it."])
        self.error = error
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


class GatedGenerator:
    """Coroutine generator that blocks until ``release()`` is called."""

    def __init__(self, text: str = "Hydrate. Coffee doesn't count."):
        self.text = text
        self.requests = []
        self._gate = None

    async def __call__(self, request):
        self.requests.append(request)
        if self._gate is None:
            self._gate = asyncio.Event()
        await self._gate.wait()
        return self.text

    def release(self) -> None:
        if self._gate is None:
            self._gate = asyncio.Event()
        self._gate.set()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def generator():
    return StubGenerator()


@pytest.fixture
def notifier():
    return NullNotifier()


@pytest.fixture
def snapshot_store():
    return MemorySnapshotStore()


@pytest.fixture
def make_engine(clock, notifier, snapshot_store):
    def _make(generator=None, store=None, **kwargs) -> FocusEngine:
        return FocusEngine(
            generator=generator or StubGenerator(),
            snapshot_store=store or snapshot_store,
            notifier=notifier,
            clock=clock,
            **kwargs,
        )
    return _make


@pytest.fixture
def engine(make_engine, generator):
    return make_engine(generator=generator)


def complete_phase(engine: FocusEngine, clock: FakeClock):
    """Run the current phase to its end and tick once."""
    clock.advance(engine.snapshot().seconds_remaining)
    return engine.tick()
