import pytest

from tasker import CycleError, TaskGraph, UnknownTaskError
from tasker.state import RunState, TaskState
from tasker.topology import Topology


def _graph(**tasks):
    graph = TaskGraph()
    for name, dependencies in tasks.items():
        graph.add(name, dependencies, None)

    return graph


def _discover(graph, target="root", on_visit=None):
    state = RunState(target=target)
    return Topology.discover(graph, target, state, on_visit=on_visit), state


def test_discover_closure():
    graph = _graph(
        child2=[], child1=["child2"], root=["child1", "child2"], unrelated=["root"]
    )
    topology, state = _discover(graph)

    assert set(topology.digraph) == {"root", "child1", "child2"}
    assert "unrelated" not in topology
    assert set(topology.digraph.edges) == {
        ("child2", "child1"),
        ("child2", "root"),
        ("child1", "root"),
    }
    assert topology.pending_dependencies("root") == 2
    assert topology.dependents("child2") == ["child1", "root"]
    assert topology.task("child1").dependencies == ["child2"]

    assert not state.failed
    assert all(state.state_of(name) is TaskState.PENDING for name in topology.digraph)
    assert state.state_of("unrelated") is TaskState.UNSTARTED


def test_discover_visits_depth_first():
    visits = []
    graph = _graph(child2=[], child1=["child2"], root=["child1", "child2"])

    _discover(graph, on_visit=lambda name, deps: visits.append((name, deps)))

    assert visits == [
        ("root", ["child1", "child2"]),
        ("child1", ["child2"]),
        ("child2", []),
    ]


def test_discover_unknown_target():
    topology, state = _discover(TaskGraph())

    assert len(topology) == 0
    assert isinstance(state.failures["root"], UnknownTaskError)


def test_discover_unknown_dependency():
    topology, state = _discover(_graph(root=["missing"]))

    assert set(topology.digraph) == {"root"}
    assert topology.blocked_by == {"root": ["missing"]}
    assert isinstance(state.failures["missing"], UnknownTaskError)


@pytest.mark.parametrize(
    ("tasks", "path"),
    (
        ({"root": ["root"]}, ("root", "root")),
        ({"child1": ["root"], "root": ["child1"]}, ("root", "child1", "root")),
        (
            {
                "child4": ["root"],
                "child3": ["child4"],
                "child2": ["child3"],
                "child1": ["child2"],
                "root": ["child1"],
            },
            ("root", "child1", "child2", "child3", "child4", "root"),
        ),
    ),
    ids=("self", "short", "long"),
)
def test_discover_cycle(tasks, path):
    topology, state = _discover(_graph(**tasks))

    error = state.failures["root"]
    assert isinstance(error, CycleError)
    assert error.name == "root"
    assert error.path == path
    assert " -> ".join(path) in str(error)

    assert topology.blocked_by == {path[-2]: ["root"]}
    # the digraph never contains the edge closing the cycle
    assert ("root", path[-2]) not in topology.digraph.edges


def test_discover_inner_cycle():
    topology, state = _discover(_graph(a=["b"], b=["a"], root=["a", "b"]))

    assert set(state.failures) == {"a"}
    assert state.failures["a"].path == ("a", "b", "a")
    assert topology.blocked_by == {"b": ["a"]}


def test_diamond_is_not_a_cycle():
    topology, state = _discover(
        _graph(shared=[], left=["shared"], right=["shared"], root=["left", "right"])
    )

    assert not state.failed
    assert topology.dependents("shared") == ["left", "right"]


def test_render():
    topology, _ = _discover(_graph(child2=[], child1=["child2"], root=["child1"]))
    rendered = str(topology)

    assert rendered.index("root") < rendered.index("child1") < rendered.index("child2")
