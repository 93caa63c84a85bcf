"""Unit tests for the periodic refresh scheduler"""

import asyncio

from budget_insights.scheduler.refresh import RefreshScheduler


class RunRecorder:
    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    async def __call__(self, force: bool) -> None:
        self.calls.append(force)
        if self.fail:
            raise RuntimeError("analysis blew up")


async def test_activate_runs_immediately_and_periodically():
    run = RunRecorder()
    scheduler = RefreshScheduler(run, interval_seconds=0.01)

    await scheduler.activate()
    await asyncio.sleep(0.05)
    await scheduler.deactivate()

    assert len(run.calls) >= 2
    assert not any(run.calls)


async def test_activate_is_idempotent_and_restartable():
    run = RunRecorder()
    scheduler = RefreshScheduler(run, interval_seconds=60)

    await scheduler.activate()
    first_task = scheduler._task
    await scheduler.activate()
    assert scheduler._task is first_task
    assert scheduler.is_active

    await scheduler.deactivate()
    assert not scheduler.is_active
    assert scheduler.is_cancelled()

    await scheduler.activate()
    assert scheduler.is_active
    await scheduler.deactivate()


async def test_loop_survives_failing_runs():
    run = RunRecorder(fail=True)
    scheduler = RefreshScheduler(run, interval_seconds=0.01)

    await scheduler.activate()
    await asyncio.sleep(0.05)

    assert scheduler.is_active
    assert len(run.calls) >= 2
    await scheduler.deactivate()


async def test_period_change_forces_run():
    run = RunRecorder()
    scheduler = RefreshScheduler(run, interval_seconds=60)

    assert await scheduler.set_active_period("2024-06") is False
    assert await scheduler.set_active_period("2024-06") is False
    assert await scheduler.set_active_period("2024-07") is True

    assert run.calls == [True]


async def test_deactivate_without_activate_is_noop():
    scheduler = RefreshScheduler(RunRecorder(), interval_seconds=60)

    await scheduler.deactivate()

    assert not scheduler.is_active
