"""Per-task runtime state and health snapshots."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from src.supervisor.models import TaskRuntimeState, TaskStatus

if TYPE_CHECKING:
    from collections.abc import Iterator


class StateStore:
    """Holds one :class:`TaskRuntimeState` per task.

    Entries are written only by the owning task's runner and timers; readers
    get copies via :meth:`snapshot`.
    """

    def __init__(self) -> None:
        self._states: dict[str, TaskRuntimeState] = {}

    def create(self, name: str) -> TaskRuntimeState:
        """Create the runtime state for *name*. Raises KeyError if it exists."""
        if name in self._states:
            msg = f"State for task '{name}' already exists"
            raise KeyError(msg)
        state = TaskRuntimeState(name=name)
        self._states[name] = state
        return state

    def get(self, name: str) -> TaskRuntimeState | None:
        return self._states.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._states)

    def __iter__(self) -> Iterator[TaskRuntimeState]:
        return iter(list(self._states.values()))

    def __len__(self) -> int:
        return len(self._states)

    def snapshot(self) -> dict[str, TaskStatus]:
        """Point-in-time copy of every task's status, keyed by name."""
        return {name: TaskStatus.from_state(state) for name, state in self._states.items()}

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Snapshot rendered for JSON."""
        return {name: status.to_dict() for name, status in self.snapshot().items()}

    @property
    def failing(self) -> list[str]:
        """Names of tasks whose last run failed."""
        return [s.name for s in self._states.values() if s.last_error is not None]
