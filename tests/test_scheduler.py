"""AutoBrewScheduler tests. The APScheduler instance is started paused so jobs never fire on their own."""

import pytest
import pytest_asyncio
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from conftest import complete_phase

from breakbuddy.scheduler import (
    IDLE_NOTIFICATION,
    IDLE_PROMPT_JOB_ID,
    PREFETCH_JOB_ID,
    SNOOZE_JOB_ID,
    AutoBrewScheduler,
)
from breakbuddy.suggest.models import SuggestionError


@pytest_asyncio.fixture
async def auto_brew(engine):
    scheduler = AsyncIOScheduler()
    auto_brew = AutoBrewScheduler(engine, scheduler=scheduler, idle_prompt_seconds=60)
    yield auto_brew
    auto_brew.shutdown()
    engine.close()


def start_paused(auto_brew: AutoBrewScheduler) -> None:
    auto_brew.scheduler.start(paused=True)
    auto_brew.start()


@pytest.mark.asyncio
async def test_no_jobs_while_focusing(auto_brew, engine):
    start_paused(auto_brew)
    assert auto_brew.scheduler.get_jobs() == []


@pytest.mark.asyncio
async def test_focus_completion_arms_prefetch_and_idle(auto_brew, engine, clock):
    start_paused(auto_brew)
    engine.start()
    complete_phase(engine, clock)

    assert auto_brew.scheduler.get_job(PREFETCH_JOB_ID) is not None
    idle_job = auto_brew.scheduler.get_job(IDLE_PROMPT_JOB_ID)
    assert idle_job is not None
    assert idle_job.trigger.run_date.timestamp() == pytest.approx(clock() / 1000 + 60, abs=0.01)


@pytest.mark.asyncio
async def test_auto_brew_off_arms_nothing(auto_brew, engine, clock):
    start_paused(auto_brew)
    engine.set_auto_brew_enabled(False)
    engine.start()
    complete_phase(engine, clock)
    assert auto_brew.scheduler.get_jobs() == []


@pytest.mark.asyncio
async def test_user_activity_cancels_idle_and_aborts(auto_brew, engine, clock):
    start_paused(auto_brew)
    engine.start()
    complete_phase(engine, clock)

    auto_brew.user_activity()
    state = engine.snapshot()
    assert auto_brew.scheduler.get_job(IDLE_PROMPT_JOB_ID) is None
    assert not state.focus_session_complete
    assert not state.awaiting_break


@pytest.mark.asyncio
async def test_user_activity_without_idle_job_is_ignored(auto_brew, engine):
    start_paused(auto_brew)
    engine.set_mood("😎")
    auto_brew.user_activity()
    assert engine.snapshot().latest_mood is not None


@pytest.mark.asyncio
async def test_idle_elapsed_shows_prompt_and_notifies(auto_brew, engine, clock, notifier):
    start_paused(auto_brew)
    engine.start()
    complete_phase(engine, clock)

    await auto_brew._idle_prompt_elapsed()

    assert engine.snapshot().auto_prompt_visible
    assert notifier.notifications == [IDLE_NOTIFICATION]
    assert auto_brew.scheduler.get_job(IDLE_PROMPT_JOB_ID) is None


@pytest.mark.asyncio
async def test_snooze_schedules_resume(auto_brew, engine, clock):
    start_paused(auto_brew)
    engine.start()
    complete_phase(engine, clock)
    engine.snooze_auto_suggestion(5)

    snooze_job = auto_brew.scheduler.get_job(SNOOZE_JOB_ID)
    assert snooze_job is not None
    assert snooze_job.trigger.run_date.timestamp() == pytest.approx(clock() / 1000 + 300, abs=0.01)
    assert auto_brew.scheduler.get_job(IDLE_PROMPT_JOB_ID) is None

    clock.advance(301)
    engine.resume_awaiting_break()
    assert auto_brew.scheduler.get_job(SNOOZE_JOB_ID) is None
    assert auto_brew.scheduler.get_job(IDLE_PROMPT_JOB_ID) is not None


@pytest.mark.asyncio
async def test_failed_prefetch_is_not_rescheduled(auto_brew, engine, clock, generator):
    start_paused(auto_brew)
    engine.start()
    complete_phase(engine, clock)
    auto_brew.scheduler.remove_job(PREFETCH_JOB_ID)

    generator.error = SuggestionError("Gemini needs a refill. Try again soon.")
    await engine.prefetch_auto_suggestion()

    assert engine.snapshot().auto_suggestion_error is not None
    assert auto_brew.scheduler.get_job(PREFETCH_JOB_ID) is None


def test_should_prefetch_rules(engine):
    state = engine.snapshot()
    state.focus_session_complete = True
    assert AutoBrewScheduler.should_prefetch(state, snoozed=False)
    assert not AutoBrewScheduler.should_prefetch(state, snoozed=True)
    state.queued_suggestion = "Ready."
    assert not AutoBrewScheduler.should_prefetch(state, snoozed=False)
