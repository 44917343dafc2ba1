"""
The dependency graph store. Holds every registered task and its dependency list,
and refuses mutation while a run is in progress.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from .exceptions import (
    ConcurrencyError,
    InvalidTaskNameError,
    MissingDependenciesError,
    MissingTaskNameError,
    OverwriteError,
    UnknownTaskError,
)
from .task import TaskDefinition, unique_names

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable

    from .task import TaskBody

logger = logging.getLogger(__name__)


class TaskGraph:
    def __init__(self) -> None:
        self._tasks: dict[str, TaskDefinition] = {}
        self._frozen = False

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __iter__(self) -> Iterator[str]:
        return iter(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @contextmanager
    def freeze(self) -> Iterator["TaskGraph"]:
        """Reject every mutation of the graph for the duration of the block."""
        if self._frozen:
            raise ConcurrencyError()

        self._frozen = True
        try:
            yield self
        finally:
            self._frozen = False

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise ConcurrencyError()

    def get(self, name: str) -> TaskDefinition | None:
        return self._tasks.get(name)

    def add(
        self,
        name: str,
        dependencies: "str | Iterable[str] | None",
        body: "TaskBody | None",
        overwrite: bool = False,
    ) -> TaskDefinition:
        if not name:
            raise MissingTaskNameError()
        elif not isinstance(name, str):
            raise InvalidTaskNameError(name)
        self._ensure_mutable()

        if name in self._tasks and not overwrite:
            raise OverwriteError(name)

        task = TaskDefinition.from_body(
            name, unique_names(dependencies) if dependencies else [], body
        )
        self._tasks[name] = task

        logger.debug("Added task '%s' (dependencies: %s)", name, task.dependencies)
        return task

    def remove(self, name: str) -> None:
        if not name:
            raise MissingTaskNameError()
        self._ensure_mutable()

        # other tasks keep their references to this one; they fail at run time
        if self._tasks.pop(name, None) is not None:
            logger.debug("Removed task '%s'", name)

    def _get_or_raise(self, name: str) -> TaskDefinition:
        if (task := self._tasks.get(name)) is None:
            raise UnknownTaskError(name)

        return task

    def add_dependencies(self, name: str, dependencies: "str | Iterable[str]") -> None:
        if not name:
            raise MissingTaskNameError()
        elif dependencies is None:
            raise MissingDependenciesError()
        self._ensure_mutable()

        task = self._get_or_raise(name)
        task.dependencies = unique_names(
            [*task.dependencies, *unique_names(dependencies)]
        )

    def remove_dependencies(
        self, name: str, dependencies: "str | Iterable[str]"
    ) -> None:
        if not name:
            raise MissingTaskNameError()
        elif dependencies is None:
            raise MissingDependenciesError()
        self._ensure_mutable()

        task = self._get_or_raise(name)
        removed = set(unique_names(dependencies))
        task.dependencies = [dep for dep in task.dependencies if dep not in removed]

    def list(self) -> dict[str, list[str]]:
        """A snapshot of every task name mapped to a copy of its dependency list."""
        return {name: list(task.dependencies) for name, task in self._tasks.items()}
