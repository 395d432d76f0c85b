"""Task registry — the fixed, ordered catalog of background tasks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from src.supervisor.errors import ConfigurationError
from src.supervisor.models import TaskDefinition

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Iterator

logger = logging.getLogger(__name__)


class TaskRegistry:
    """Ordered registry of :class:`TaskDefinition` objects.

    Definitions can be added until the registry is frozen, which the
    scheduler does when it starts. Usage::

        registry = TaskRegistry()

        @registry.task("disasters", interval_ms=600_000, initial_delay_ms=25_000)
        async def refresh_disasters() -> None:
            ...
    """

    def __init__(self, definitions: Iterable[TaskDefinition] = ()) -> None:
        self._definitions: dict[str, TaskDefinition] = {}
        self._frozen = False
        for definition in definitions:
            self.add(definition)

    def add(self, definition: TaskDefinition) -> TaskDefinition:
        """Register a definition. Raises ConfigurationError on duplicate name."""
        if self._frozen:
            msg = f"Cannot register '{definition.name}': registry is frozen"
            raise ConfigurationError(msg)
        if definition.name in self._definitions:
            msg = f"Duplicate task name: '{definition.name}'"
            raise ConfigurationError(msg)
        self._definitions[definition.name] = definition
        logger.debug(
            "Registered task: %s (interval=%dms, delay=%dms)",
            definition.name,
            definition.interval_ms,
            definition.initial_delay_ms,
        )
        return definition

    def task(
        self,
        name: str,
        *,
        interval_ms: int,
        initial_delay_ms: int = 0,
        description: str = "",
    ) -> Callable[[Callable[[], Awaitable[Any]]], Callable[[], Awaitable[Any]]]:
        """Decorator to register an async function as a task's unit of work."""

        def decorator(fn: Callable[[], Awaitable[Any]]) -> Callable[[], Awaitable[Any]]:
            self.add(
                TaskDefinition(
                    name=name,
                    unit_of_work=fn,
                    interval_ms=interval_ms,
                    initial_delay_ms=initial_delay_ms,
                    description=description,
                )
            )
            return fn

        return decorator

    def freeze(self) -> None:
        """Disallow further registration."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> TaskDefinition | None:
        """Look up a definition by name."""
        return self._definitions.get(name)

    @property
    def names(self) -> list[str]:
        """All registered task names, in registration order."""
        return list(self._definitions)

    def __iter__(self) -> Iterator[TaskDefinition]:
        return iter(list(self._definitions.values()))

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions
