import logging
import math
import warnings
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

import anyio

from .exceptions import AggregateRunError, DependencyError, TaskBodyError
from .state import RunState, TaskState
from .topology import Topology

if TYPE_CHECKING:  # pragma: no cover
    from typing import Any

    from anyio.abc import TaskGroup
    from anyio.streams.memory import MemoryObjectSendStream

    from .config import Config, TaskHooks
    from .graph import TaskGraph
    from .task import ResultMap, TaskDefinition

logger = logging.getLogger(__name__)


@dataclass(kw_only=True, slots=True)
class Completion:
    name: str
    value: "Any" = None
    error: BaseException | None = None


class Executor:
    """
    Runs the dependency closure of a task on the current event loop.

    Scheduling is driven by a ready set rather than by recursion: a task enters the
    ready set once every one of its dependencies has settled, and is then either
    launched into a task group or cancelled, depending on how its dependencies
    settled. Launched tasks report back over a completion channel, which is what
    advances the ready set.
    """

    def __init__(
        self, graph: "TaskGraph", config: "Config", hooks: "TaskHooks"
    ) -> None:
        self.graph = graph
        self.config = config
        self.hooks = hooks

    def _notify(self, hook_name: str, *args: "Any") -> None:
        try:
            getattr(self.hooks, hook_name)(*args)
        except Exception as e:
            warnings.warn(
                f"Hook '{hook_name}' raised an exception, ignoring it: {e!r}",
                stacklevel=2,
            )

    async def run(self, target: str) -> "Any":
        """Run ``target`` and every task it depends on, returning its result."""
        state = RunState(target=target)
        topology = Topology.discover(
            self.graph,
            target,
            state,
            on_visit=lambda name, deps: self._notify("on_task_start", name, deps),
        )

        if target in topology:
            await self._execute(topology, state)

        if state.failed:
            raise AggregateRunError(target, state.failures)

        return state.results[target]

    async def _execute(self, topology: Topology, state: RunState) -> None:
        pending: dict[str, int] = {
            name: topology.pending_dependencies(name) for name in topology.digraph
        }
        failed_dependencies: dict[str, list[str]] = {
            name: list(topology.blocked_by.get(name, ())) for name in topology.digraph
        }
        ready: deque[str] = deque(name for name, count in pending.items() if count == 0)
        in_flight = 0

        def settle(name: str) -> None:
            for dependent in topology.dependents(name):
                if state.state_of(name) is not TaskState.DONE:
                    failed_dependencies[dependent].append(name)

                pending[dependent] -= 1
                if pending[dependent] == 0:
                    ready.append(dependent)

        send_stream, receive_stream = anyio.create_memory_object_stream[Completion](
            math.inf
        )

        async with send_stream, receive_stream, anyio.create_task_group() as tg:
            while True:
                while ready:
                    name = ready.popleft()

                    if failed_dependencies[name] or (
                        self.config.stop_on_first_error and state.failed
                    ):
                        self._cancel(name, failed_dependencies[name], state)
                        settle(name)
                    else:
                        self._launch(tg, topology.task(name), state, send_stream)
                        in_flight += 1

                if not in_flight:
                    break

                completion = await receive_stream.receive()
                in_flight -= 1

                self._complete(completion, state)
                settle(completion.name)

    def _cancel(self, name: str, failed: list[str], state: RunState) -> None:
        logger.debug("Cancelling task '%s' (failed dependencies: %s)", name, failed)
        state.transition(name, TaskState.CANCELLED)

        if name == state.target:
            state.record_failure(name, DependencyError(name, failed))

        self._notify("on_task_cancel", name)

    def _launch(
        self,
        tg: "TaskGroup",
        task: "TaskDefinition",
        state: RunState,
        send_stream: "MemoryObjectSendStream[Completion]",
    ) -> None:
        results: "ResultMap" = {dep: state.results[dep] for dep in task.dependencies}

        logger.debug("Launching task '%s'", task.name)
        state.transition(task.name, TaskState.RUNNING)
        state.started_at[task.name] = anyio.current_time()

        tg.start_soon(_run_operation, task, results, send_stream, name=task.name)

    def _complete(self, completion: Completion, state: RunState) -> None:
        name = completion.name

        if completion.error is not None:
            logger.debug("Task '%s' failed: %r", name, completion.error)
            state.transition(name, TaskState.FAILED)

            error = TaskBodyError(name, completion.error)
            error.__cause__ = completion.error
            state.record_failure(name, error)

            self._notify("on_task_fail", name, completion.error)
        else:
            duration_ms = (anyio.current_time() - state.started_at[name]) * 1000
            logger.debug("Task '%s' finished in %.2fms", name, duration_ms)

            state.transition(name, TaskState.DONE)
            state.results[name] = completion.value

            self._notify("on_task_end", name, duration_ms)


async def _run_operation(
    task: "TaskDefinition",
    results: "ResultMap",
    send_stream: "MemoryObjectSendStream[Completion]",
) -> None:
    try:
        value = await task(results)
    except Exception as e:
        send_stream.send_nowait(Completion(name=task.name, error=e))
    else:
        send_stream.send_nowait(Completion(name=task.name, value=value))
