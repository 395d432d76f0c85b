"""Tests for StateStore snapshots."""

from datetime import UTC, datetime

import pytest

from src.supervisor.state import StateStore


def test_create_and_get() -> None:
    store = StateStore()
    state = store.create("a")
    assert store.get("a") is state
    assert state.running is False
    assert state.last_run_at is None
    assert state.last_error is None


def test_create_duplicate_raises() -> None:
    store = StateStore()
    store.create("a")
    with pytest.raises(KeyError):
        store.create("a")


def test_get_unknown_returns_none() -> None:
    assert StateStore().get("nope") is None


def test_snapshot_is_a_point_in_time_copy() -> None:
    store = StateStore()
    state = store.create("a")
    state.running = True

    snap = store.snapshot()
    state.running = False
    state.last_error = "later"

    assert snap["a"].running is True
    assert snap["a"].last_error is None


def test_snapshot_has_no_side_effects() -> None:
    store = StateStore()
    state = store.create("a")
    store.snapshot()
    store.to_dict()
    assert state.run_count == 0
    assert state.skip_count == 0


def test_to_dict_shape() -> None:
    store = StateStore()
    state = store.create("a")
    state.last_run_at = datetime(2026, 2, 1, 8, 30, tzinfo=UTC)
    store.create("b").last_error = "timeout"

    data = store.to_dict()

    assert list(data) == ["a", "b"]
    assert data["a"]["lastRun"] == "2026-02-01T08:30:00+00:00"
    assert data["a"]["lastError"] is None
    assert data["b"]["lastRun"] is None
    assert data["b"]["lastError"] == "timeout"
    assert set(data["a"]) >= {"running", "lastRun", "lastError"}


def test_failing_lists_tasks_with_errors() -> None:
    store = StateStore()
    store.create("a")
    store.create("b").last_error = "boom"
    assert store.failing == ["b"]
