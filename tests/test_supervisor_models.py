"""Tests for supervisor data models."""

from datetime import UTC, datetime

import pytest

from src.supervisor.errors import ConfigurationError
from src.supervisor.models import TaskDefinition, TaskRuntimeState, TaskStatus


async def _noop() -> None:
    pass


# -- TaskDefinition validation -------------------------------------------------


def test_valid_definition() -> None:
    d = TaskDefinition(name="a", unit_of_work=_noop, interval_ms=1000, initial_delay_ms=250)
    assert d.interval == 1.0
    assert d.initial_delay == 0.25


def test_initial_delay_defaults_to_zero() -> None:
    d = TaskDefinition(name="a", unit_of_work=_noop, interval_ms=1000)
    assert d.initial_delay_ms == 0


@pytest.mark.parametrize("interval", [0, -1, 1.5, "1000", True, None])
def test_invalid_interval_rejected(interval) -> None:
    with pytest.raises(ConfigurationError, match="interval_ms"):
        TaskDefinition(name="a", unit_of_work=_noop, interval_ms=interval)


@pytest.mark.parametrize("delay", [-1, 0.5, False])
def test_invalid_initial_delay_rejected(delay) -> None:
    with pytest.raises(ConfigurationError, match="initial_delay_ms"):
        TaskDefinition(name="a", unit_of_work=_noop, interval_ms=1000, initial_delay_ms=delay)


@pytest.mark.parametrize("name", ["", "   ", None])
def test_blank_name_rejected(name) -> None:
    with pytest.raises(ConfigurationError):
        TaskDefinition(name=name, unit_of_work=_noop, interval_ms=1000)


def test_non_callable_unit_of_work_rejected() -> None:
    with pytest.raises(ConfigurationError, match="callable"):
        TaskDefinition(name="a", unit_of_work="nope", interval_ms=1000)


def test_definition_is_immutable() -> None:
    d = TaskDefinition(name="a", unit_of_work=_noop, interval_ms=1000)
    with pytest.raises(AttributeError):
        d.interval_ms = 5  # type: ignore[misc]


# -- TaskStatus ----------------------------------------------------------------


def test_status_to_dict_uses_iso_timestamps() -> None:
    state = TaskRuntimeState(name="a")
    state.last_run_at = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
    state.last_error = None
    status = TaskStatus.from_state(state)

    data = status.to_dict()
    assert data["running"] is False
    assert data["lastRun"] == "2026-03-01T12:00:00+00:00"
    assert data["lastError"] is None
    assert data["nextRun"] is None


def test_status_never_run() -> None:
    data = TaskStatus.from_state(TaskRuntimeState(name="a")).to_dict()
    assert data["lastRun"] is None
    assert data["runCount"] == 0


def test_status_has_no_timer_handles() -> None:
    state = TaskRuntimeState(name="a", periodic_handle=object(), startup_handle=object())
    status = TaskStatus.from_state(state)
    assert not hasattr(status, "periodic_handle")
    assert not hasattr(status, "startup_handle")
    assert "periodic_handle" not in status.to_dict()
