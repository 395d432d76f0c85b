"""Scheduler — owns task timers, staggered startup and periodic ticks."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from src.supervisor.models import PeriodicAnchor
from src.supervisor.runner import TaskRunner
from src.supervisor.state import StateStore

if TYPE_CHECKING:
    from src.clock import Clock
    from src.supervisor.models import TaskDefinition, TaskRuntimeState, TaskStatus
    from src.supervisor.registry import TaskRegistry

logger = logging.getLogger(__name__)


class Scheduler:
    """Maps registry definitions to timers and fires the runner on each.

    Every task gets one periodic timer, re-armed on each tick at
    ``anchor + k * interval`` so the phase never drifts, and (when it has a
    stagger) one startup timer that fires once. Ticks that land while the
    previous run is still going are skipped by the runner, never queued.

    Args:
        clock: Timer source (``LoopClock`` in production).
        runner: TaskRunner to execute units of work (default: new runner).
        store: StateStore to hold runtime state (default: new store).
        anchor: Where the periodic phase starts (see :class:`PeriodicAnchor`).
    """

    def __init__(
        self,
        clock: Clock,
        runner: TaskRunner | None = None,
        store: StateStore | None = None,
        anchor: PeriodicAnchor = PeriodicAnchor.FIRST_RUN,
    ) -> None:
        self._clock = clock
        self._runner = runner or TaskRunner(clock)
        self._store = store or StateStore()
        self._anchor = PeriodicAnchor(anchor)
        self._registry: TaskRegistry | None = None
        self._started = False
        self._stopped = False
        self._runs: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._started and not self._stopped

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def in_flight_runs(self) -> int:
        """Number of unit-of-work runs currently executing."""
        return len(self._runs)

    def snapshot(self) -> dict[str, TaskStatus]:
        return self._store.snapshot()

    # -- Lifecycle -------------------------------------------------------------

    def start(self, registry: TaskRegistry) -> None:
        """Create runtime state for every task and arm its timers."""
        if self._started:
            msg = "Scheduler already started"
            raise RuntimeError(msg)
        if self._stopped:
            msg = "Scheduler was stopped and cannot be started"
            raise RuntimeError(msg)
        self._started = True
        registry.freeze()
        self._registry = registry
        origin = self._clock.now()

        for definition in registry:
            state = self._store.create(definition.name)

            if definition.initial_delay_ms == 0:
                self._launch(definition, state)
            else:
                state.startup_handle = self._clock.call_later(
                    definition.initial_delay,
                    lambda d=definition, s=state: self._on_startup(d, s),
                )

            phase = origin
            if self._anchor is PeriodicAnchor.FIRST_RUN:
                phase += definition.initial_delay
            self._arm_tick(definition, state, phase + definition.interval)

        logger.info(
            "Scheduler started with %d task(s) (anchor=%s)",
            len(registry),
            self._anchor.value,
        )

    def stop(self) -> None:
        """Cancel every periodic and startup timer. In-flight runs are left alone."""
        if self._stopped or not self._started:
            self._stopped = True
            return
        self._stopped = True
        for state in self._store:
            self._clock.cancel(state.periodic_handle)
            self._clock.cancel(state.startup_handle)
            state.periodic_handle = None
            state.startup_handle = None
            state.next_run_at = None
        logger.info(
            "Scheduler stopped (%d run(s) still in flight)",
            len(self._runs),
        )

    # -- Internal --------------------------------------------------------------

    def _arm_tick(self, definition: TaskDefinition, state: TaskRuntimeState, when: float) -> None:
        delay = when - self._clock.now()
        state.next_run_at = self._clock.wall_time() + timedelta(seconds=delay)
        state.periodic_handle = self._clock.call_later(
            delay,
            lambda: self._on_tick(definition, state, when),
        )

    def _on_tick(self, definition: TaskDefinition, state: TaskRuntimeState, when: float) -> None:
        if self._stopped:
            return
        interval = definition.interval
        next_when = when + interval
        now = self._clock.now()
        if next_when <= now:
            # The loop stalled past one or more ticks; realign without bursting.
            missed = int((now - next_when) // interval) + 1
            next_when += missed * interval
        self._arm_tick(definition, state, next_when)
        self._launch(definition, state)

    def _on_startup(self, definition: TaskDefinition, state: TaskRuntimeState) -> None:
        state.startup_handle = None
        if self._stopped:
            return
        self._launch(definition, state)

    def _launch(self, definition: TaskDefinition, state: TaskRuntimeState) -> None:
        """Start a supervised run as a background task."""
        task = asyncio.get_running_loop().create_task(
            self._runner.run(definition, state),
            name=f"refresh:{definition.name}",
        )
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)
