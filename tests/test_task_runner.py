"""Tests for TaskRunner."""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from src.supervisor.models import TaskDefinition, TaskRuntimeState
from src.supervisor.runner import TaskRunner


def _definition(unit_of_work, name: str = "a") -> TaskDefinition:
    return TaskDefinition(name=name, unit_of_work=unit_of_work, interval_ms=1000)


@pytest.fixture
def runner(clock) -> TaskRunner:
    return TaskRunner(clock)


# -- Success -------------------------------------------------------------------


async def test_success_records_last_run(runner: TaskRunner, clock) -> None:
    work = AsyncMock()
    state = TaskRuntimeState(name="a", last_error="old failure")

    ran = await runner.run(_definition(work), state)

    assert ran is True
    work.assert_awaited_once()
    assert state.last_run_at == clock.wall_time()
    assert state.last_error is None
    assert state.running is False
    assert state.run_count == 1


async def test_sync_callable_is_supported(runner: TaskRunner) -> None:
    calls = []
    state = TaskRuntimeState(name="a")

    await runner.run(_definition(lambda: calls.append(1)), state)

    assert calls == [1]
    assert state.last_run_at is not None


async def test_duration_is_recorded(runner: TaskRunner, clock) -> None:
    async def slow() -> None:
        await clock.sleep(1.5)

    state = TaskRuntimeState(name="a")
    task = asyncio.create_task(runner.run(_definition(slow), state))
    await clock.advance(2)
    await task
    assert state.last_duration_ms == 1500


# -- Failure -------------------------------------------------------------------


async def test_async_failure_is_captured(runner: TaskRunner, caplog) -> None:
    work = AsyncMock(side_effect=RuntimeError("upstream 502"))
    state = TaskRuntimeState(name="a")

    with caplog.at_level(logging.ERROR):
        ran = await runner.run(_definition(work), state)

    assert ran is True
    assert state.last_error == "upstream 502"
    assert state.running is False
    assert state.last_run_at is None
    assert "Task failed: 'a'" in caplog.text


async def test_synchronous_raise_is_captured(runner: TaskRunner) -> None:
    def explode():
        raise ValueError("bad payload")

    state = TaskRuntimeState(name="a")
    await runner.run(_definition(explode), state)

    assert state.last_error == "bad payload"
    assert state.running is False


async def test_empty_message_uses_exception_name(runner: TaskRunner) -> None:
    state = TaskRuntimeState(name="a")
    await runner.run(_definition(AsyncMock(side_effect=TimeoutError())), state)
    assert state.last_error == "TimeoutError"


async def test_failure_keeps_previous_last_run(runner: TaskRunner, clock) -> None:
    state = TaskRuntimeState(name="a")
    await runner.run(_definition(AsyncMock()), state)
    first = state.last_run_at

    await clock.advance(5)
    await runner.run(_definition(AsyncMock(side_effect=RuntimeError("x"))), state)

    assert state.last_run_at == first
    assert state.last_error == "x"


async def test_success_after_failure_clears_error(runner: TaskRunner) -> None:
    state = TaskRuntimeState(name="a")
    await runner.run(_definition(AsyncMock(side_effect=RuntimeError("x"))), state)
    await runner.run(_definition(AsyncMock()), state)
    assert state.last_error is None


async def test_cancellation_propagates_and_resets_running(runner: TaskRunner) -> None:
    started = asyncio.Event()

    async def hang() -> None:
        started.set()
        await asyncio.Event().wait()

    state = TaskRuntimeState(name="a")
    task = asyncio.create_task(runner.run(_definition(hang), state))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert state.running is False


# -- Overlap guard -------------------------------------------------------------


async def test_overlapping_run_is_skipped(runner: TaskRunner, clock) -> None:
    calls = []

    async def slow() -> None:
        calls.append(clock.now())
        await clock.sleep(10)

    state = TaskRuntimeState(name="a")
    definition = _definition(slow)
    first = asyncio.create_task(runner.run(definition, state))
    await clock.advance(1)
    assert state.running is True

    ran = await runner.run(definition, state)

    assert ran is False
    assert calls == [0.0]
    assert state.skip_count == 1
    assert state.last_run_at is None

    await clock.advance(10)
    await first
    assert state.running is False
    assert state.run_count == 1
