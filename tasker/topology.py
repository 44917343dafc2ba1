from typing import TYPE_CHECKING

import networkx as nx
from networkx import generate_network_text

from .exceptions import CycleError, UnknownTaskError
from .state import TaskState

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable, Iterator

    from .graph import TaskGraph
    from .state import RunState
    from .task import TaskDefinition

_EXHAUSTED = object()


class Topology:
    """
    The dependency closure of a single task, discovered for one run. Edges point from
    a dependency to its dependent, so the digraph is always acyclic: edges that
    would close a cycle, and edges to tasks that do not exist, are kept aside in
    ``blocked_by`` instead.
    """

    def __init__(
        self,
        *,
        target: str,
        digraph: nx.DiGraph,
        blocked_by: dict[str, list[str]],
    ) -> None:
        self.target = target
        self.digraph = digraph
        self.blocked_by = blocked_by

    @classmethod
    def discover(
        cls,
        graph: "TaskGraph",
        target: str,
        state: "RunState",
        on_visit: "Callable[[str, list[str]], None] | None" = None,
    ) -> "Topology":
        """
        Walk the dependencies of ``target`` depth first, marking each task as visiting
        while its own dependencies are being walked. Reaching a visiting task again
        means a cycle. Unknown tasks and cycles are recorded as failures on ``state``.
        """
        digraph = nx.DiGraph()
        blocked_by: dict[str, list[str]] = {}

        if target not in graph:
            state.record_failure(target, UnknownTaskError(target))
            return cls(target=target, digraph=digraph, blocked_by=blocked_by)

        stack: list[tuple[str, "Iterator[str]"]] = []

        def visit(name: str) -> None:
            task = graph.get(name)
            if on_visit is not None:
                on_visit(name, list(task.dependencies))

            state.transition(name, TaskState.VISITING)
            digraph.add_node(name, task=task)
            stack.append((name, iter(task.dependencies)))

        visit(target)

        while stack:
            name, dependencies = stack[-1]

            if (dependency := next(dependencies, _EXHAUSTED)) is _EXHAUSTED:
                stack.pop()
                state.transition(name, TaskState.PENDING)
                continue

            if dependency not in graph:
                state.record_failure(dependency, UnknownTaskError(dependency))
                blocked_by.setdefault(name, []).append(dependency)
            elif state.state_of(dependency) is TaskState.VISITING:
                descent = [frame[0] for frame in stack]
                path = [*descent[descent.index(dependency) :], dependency]

                state.record_failure(dependency, CycleError(dependency, path))
                blocked_by.setdefault(name, []).append(dependency)
            else:
                digraph.add_edge(dependency, name)

                if state.state_of(dependency) is TaskState.UNSTARTED:
                    visit(dependency)

        return cls(target=target, digraph=digraph, blocked_by=blocked_by)

    def __contains__(self, name: object) -> bool:
        return name in self.digraph

    def __len__(self) -> int:
        return len(self.digraph)

    def task(self, name: str) -> "TaskDefinition":
        return self.digraph.nodes[name]["task"]

    def dependents(self, name: str) -> list[str]:
        return list(self.digraph.successors(name))

    def pending_dependencies(self, name: str) -> int:
        return self.digraph.in_degree(name)

    def __str__(self) -> str:
        # render from the target down to its leaves
        return "\n".join(
            generate_network_text(
                self.digraph.reverse(copy=False), vertical_chains=True
            )
        )
