import warnings
from typing import TYPE_CHECKING

import anyio
import sniffio

from .config import Config, TaskHooks
from .exceptions import MissingTaskNameError, UnknownTaskError
from .executor import Executor
from .graph import TaskGraph
from .state import RunState
from .topology import Topology

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable, Iterable
    from typing import Any

    from .task import TaskBody


class TaskRunner:
    """
    A task runner with support for asynchronous tasks. Build a task graph with
    ``add_task``, then run any task by name: it is executed along with every task it
    depends on, each exactly once, with independent tasks running concurrently. Tasks
    consume the results of their direct dependencies.

    The graph cannot be modified while a run is in progress, and only one run may be
    in progress at a time.

    Tasks may be:
     - plain functions, returning their result or raising
     - ``async`` functions, or functions returning any awaitable
     - callback style functions ``(results, done)``, completing when ``done`` is called
    """

    def __init__(
        self,
        on_task_start: "Callable[[str, list[str]], None] | None" = None,
        on_task_end: "Callable[[str, float], None] | None" = None,
        on_task_fail: "Callable[[str, BaseException], None] | None" = None,
        on_task_cancel: "Callable[[str], None] | None" = None,
        **settings: "Any",
    ) -> None:
        self.config = Config(**settings)
        self.hooks = TaskHooks(
            **{
                name: hook
                for name, hook in (
                    ("on_task_start", on_task_start),
                    ("on_task_end", on_task_end),
                    ("on_task_fail", on_task_fail),
                    ("on_task_cancel", on_task_cancel),
                )
                if hook is not None
            }
        )

        self.graph = TaskGraph()
        self.executor = Executor(self.graph, self.config, self.hooks)

    def add_task(
        self,
        name: str,
        dependencies: "str | Iterable[str] | TaskBody | None" = None,
        body: "TaskBody | None" = None,
    ) -> None:
        """
        Add a task with an optional set of dependencies. Dependencies do not need to
        exist yet, only by the time the task is run.

        The body may be passed in place of the dependencies when there are none, i.e.
        ``add_task("name", fn)``.
        """
        if body is None and callable(dependencies):
            body, dependencies = dependencies, None

        replacing = name in self.graph
        self.graph.add(
            name, dependencies, body, overwrite=not self.config.throw_on_overwrite
        )

        if replacing:
            warnings.warn(
                f"Task '{name}' is already registered. This will override that"
                " implementation.",
                stacklevel=2,
            )

    def task(
        self, name: str, dependencies: "str | Iterable[str] | None" = None
    ) -> "Callable[[TaskBody], TaskBody]":
        """Register the decorated function as the body of task ``name``."""

        def decorator(fn: "TaskBody") -> "TaskBody":
            self.add_task(name, dependencies, fn)
            return fn

        return decorator

    def remove_task(self, name: str) -> None:
        """
        Remove a task. Tasks depending on it are left untouched, and will fail to run
        until it is added again.
        """
        self.graph.remove(name)

    def add_dependencies(self, name: str, dependencies: "str | Iterable[str]") -> None:
        self.graph.add_dependencies(name, dependencies)

    def remove_dependencies(
        self, name: str, dependencies: "str | Iterable[str]"
    ) -> None:
        self.graph.remove_dependencies(name, dependencies)

    def get_task_list(self) -> dict[str, list[str]]:
        """Every task mapped to its dependencies. The result is a copy."""
        return self.graph.list()

    def describe(self, name: str) -> str:
        """Render the dependency tree of a task."""
        if name not in self.graph:
            raise UnknownTaskError(name)

        return str(Topology.discover(self.graph, name, RunState(target=name)))

    async def run(self, name: str) -> "Any":
        """
        Run a task and everything it depends on, returning the task's result.

        Raises an ``AggregateRunError`` mapping every failed task to its error if any
        task fails, if a task or dependency does not exist, or if a cycle is found.

        The graph is locked once the coroutine starts executing, not when it is created
        or scheduled.
        """
        if not name:
            raise MissingTaskNameError()

        with self.graph.freeze():
            return await self.executor.run(name)

    def run_sync(
        self,
        name: str,
        backend: str = "asyncio",
        backend_options: dict[str, "Any"] | None = None,
    ) -> "Any":
        """Run a task from synchronous code, in a new event loop."""
        try:
            sniffio.current_async_library()
            raise RuntimeError(
                "Calling `run_sync` within an event loop is forbidden as it would block"
                " that loop. Await `run` instead."
            )
        except sniffio.AsyncLibraryNotFoundError:
            return anyio.run(
                self.run, name, backend=backend, backend_options=backend_options
            )
