"""Tests for RecitationEngine — APScheduler lifecycle."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from recitation.clock import Clock
from recitation.scheduler.engine import SWEEP_JOB_ID, TICK_JOB_ID, RecitationEngine


@pytest.fixture
def scheduler() -> MagicMock:
    sched = MagicMock()
    sched.clock = Clock("Africa/Kinshasa")
    sched.evaluate = AsyncMock()
    sched.sweep_missed = AsyncMock(return_value=[])
    sched.drain = AsyncMock()
    return sched


@pytest.fixture
def engine(scheduler: MagicMock) -> RecitationEngine:
    return RecitationEngine(
        scheduler,
        AsyncIOScheduler(timezone="Africa/Kinshasa"),
        tick_interval_seconds=30,
        sweep_interval_seconds=300,
    )


# -- Lifecycle -----------------------------------------------------------------


async def test_start_and_stop(engine: RecitationEngine, scheduler: MagicMock) -> None:
    await engine.start()
    assert engine.running is True

    await engine.stop()
    assert engine.running is False
    scheduler.drain.assert_awaited()


async def test_start_evaluates_immediately(engine: RecitationEngine, scheduler: MagicMock) -> None:
    evaluation = await engine.start()
    try:
        scheduler.evaluate.assert_awaited_once()
        assert evaluation is scheduler.evaluate.return_value
    finally:
        await engine.stop()


async def test_start_registers_jobs(engine: RecitationEngine) -> None:
    await engine.start()
    try:
        tick = engine._aps.get_job(TICK_JOB_ID)
        sweep = engine._aps.get_job(SWEEP_JOB_ID)
        assert tick is not None
        assert sweep is not None
        assert tick.trigger.interval.total_seconds() == 30
        assert sweep.trigger.interval.total_seconds() == 300
        assert tick.max_instances == 1
    finally:
        await engine.stop()


async def test_stop_when_not_running(engine: RecitationEngine) -> None:
    # Should not raise
    await engine.stop()


def test_tick_interval_over_a_minute_rejected(scheduler: MagicMock) -> None:
    with pytest.raises(ValueError, match="at most 60"):
        RecitationEngine(scheduler, tick_interval_seconds=90)


# -- Jobs ----------------------------------------------------------------------


async def test_tick_failure_is_logged_not_raised(
    engine: RecitationEngine, scheduler: MagicMock
) -> None:
    scheduler.evaluate.side_effect = RuntimeError("boom")
    await engine._tick()


async def test_sweep_calls_scheduler(engine: RecitationEngine, scheduler: MagicMock) -> None:
    await engine._sweep()
    scheduler.sweep_missed.assert_awaited_once()


async def test_sweep_failure_is_logged_not_raised(
    engine: RecitationEngine, scheduler: MagicMock
) -> None:
    scheduler.sweep_missed.side_effect = RuntimeError("boom")
    await engine._sweep()


async def test_start_returns_none_when_first_evaluation_fails(
    engine: RecitationEngine, scheduler: MagicMock
) -> None:
    scheduler.evaluate.side_effect = RuntimeError("boom")
    try:
        assert await engine.start() is None
        assert engine.running is True
    finally:
        await engine.stop()
