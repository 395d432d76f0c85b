"""Supervisor data model — task definitions and runtime state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from src.supervisor.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


def _require_int(name: str, field_name: str, value: Any, minimum: int) -> None:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"Task '{name}': {field_name} must be an integer, got {value!r}"
        raise ConfigurationError(msg)
    if value < minimum:
        msg = f"Task '{name}': {field_name} must be >= {minimum}, got {value}"
        raise ConfigurationError(msg)


class PeriodicAnchor(str, Enum):
    """Where a task's periodic phase starts counting from."""

    START = "start"
    FIRST_RUN = "first_run"


@dataclass(frozen=True)
class TaskDefinition:
    """A background task declared at configuration time.

    Attributes:
        name: Unique key within a registry.
        unit_of_work: Zero-argument async callable run on every tick.
        interval_ms: Period between ticks, in milliseconds (> 0).
        initial_delay_ms: Stagger before the first run (0 runs immediately).
        description: Optional human-readable description.
    """

    name: str
    unit_of_work: Callable[[], Awaitable[Any]]
    interval_ms: int
    initial_delay_ms: int = 0
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            msg = f"Task name must be a non-empty string, got {self.name!r}"
            raise ConfigurationError(msg)
        if not callable(self.unit_of_work):
            msg = f"Task '{self.name}': unit_of_work must be callable"
            raise ConfigurationError(msg)
        _require_int(self.name, "interval_ms", self.interval_ms, 1)
        _require_int(self.name, "initial_delay_ms", self.initial_delay_ms, 0)

    @property
    def interval(self) -> float:
        """Interval in seconds."""
        return self.interval_ms / 1000

    @property
    def initial_delay(self) -> float:
        """Initial delay in seconds."""
        return self.initial_delay_ms / 1000


@dataclass
class TaskRuntimeState:
    """Mutable per-task run metadata, owned by the scheduler."""

    name: str
    running: bool = False
    last_run_at: datetime | None = None
    last_error: str | None = None
    run_count: int = 0
    skip_count: int = 0
    last_duration_ms: int | None = None
    next_run_at: datetime | None = None
    periodic_handle: Any = field(default=None, repr=False)
    startup_handle: Any = field(default=None, repr=False)


@dataclass(frozen=True)
class TaskStatus:
    """Read-only copy of a task's runtime state, without timer handles."""

    name: str
    running: bool
    last_run_at: datetime | None
    last_error: str | None
    run_count: int = 0
    skip_count: int = 0
    last_duration_ms: int | None = None
    next_run_at: datetime | None = None

    @classmethod
    def from_state(cls, state: TaskRuntimeState) -> TaskStatus:
        return cls(
            name=state.name,
            running=state.running,
            last_run_at=state.last_run_at,
            last_error=state.last_error,
            run_count=state.run_count,
            skip_count=state.skip_count,
            last_duration_ms=state.last_duration_ms,
            next_run_at=state.next_run_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Render as the JSON shape served by the health endpoint."""
        return {
            "running": self.running,
            "lastRun": self.last_run_at.isoformat() if self.last_run_at else None,
            "lastError": self.last_error,
            "runCount": self.run_count,
            "skipCount": self.skip_count,
            "lastDurationMs": self.last_duration_ms,
            "nextRun": self.next_run_at.isoformat() if self.next_run_at else None,
        }


@dataclass
class ConnectivityState:
    """Reachability state of one prober."""

    online: bool = False
    attempts: int = 0
    last_probe_at: datetime | None = None
    probe_handle: Any = field(default=None, repr=False)


class ShutdownPhase(str, Enum):
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    DRAINED = "drained"
    EXITED = "exited"


@dataclass
class ShutdownState:
    """Progress of the shutdown sequence."""

    in_progress: bool = False
    phase: ShutdownPhase = ShutdownPhase.RUNNING
    signal: str | None = None
    forced: bool = False
    exit_code: int | None = None
