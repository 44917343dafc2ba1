import pytest

from tasker import TaskRunner


@pytest.fixture
def runner():
    return TaskRunner()


@pytest.fixture
def calls():
    """Counts invocations per task name."""
    return {}


@pytest.fixture
def add_task(runner, calls):
    """Registers a task whose body only records that it was called."""

    def _add_task(name, dependencies=(), result=None):
        calls.setdefault(name, 0)

        def body():
            calls[name] += 1
            return result

        runner.add_task(name, list(dependencies), body)

    return _add_task


@pytest.fixture(
    params=[
        pytest.param(("asyncio", {"use_uvloop": False}), id="asyncio"),
        pytest.param(
            ("trio", {"restrict_keyboard_interrupt_to_checkpoints": True}), id="trio"
        ),
    ],
    scope="session",
)
def anyio_backend(request):
    return request.param
