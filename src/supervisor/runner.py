"""Runs one unit of work at a time per task and records the outcome."""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.clock import Clock
    from src.supervisor.models import TaskDefinition, TaskRuntimeState

logger = logging.getLogger(__name__)


class TaskRunner:
    """Runs a task's unit of work and records the outcome on its state.

    A run never raises: failures are captured into ``state.last_error`` so
    one broken task cannot take down the process. ``CancelledError`` is a
    BaseException and still propagates.

    Args:
        clock: Source of monotonic and wall-clock time.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock

    async def run(self, definition: TaskDefinition, state: TaskRuntimeState) -> bool:
        """Execute *definition* once. Returns False when skipped as overlapping."""
        if state.running:
            state.skip_count += 1
            logger.debug("Skipping '%s': previous run still in progress", definition.name)
            return False

        state.running = True
        started = self._clock.now()
        logger.info("Running task: '%s'", definition.name)
        try:
            result = definition.unit_of_work()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            state.last_error = str(exc) or type(exc).__name__
            logger.exception("Task failed: '%s'", definition.name)
        else:
            state.last_run_at = self._clock.wall_time()
            state.last_error = None
            logger.info("Task succeeded: '%s'", definition.name)
        finally:
            state.running = False
            state.run_count += 1
            state.last_duration_ms = round((self._clock.now() - started) * 1000)
        return True
