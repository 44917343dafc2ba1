import functools
from dataclasses import dataclass

import anyio
import pytest
from pydantic import ValidationError

from tasker import TaskRunner
from tasker.task import Convention, TaskDefinition, normalize, unique_names


async def _run(body, results=None):
    _, operation = normalize(body)
    return await operation(results or {})


@pytest.mark.parametrize(
    ("body", "convention"),
    (
        (lambda: None, Convention.NULLARY),
        (lambda results: None, Convention.RESULTS),
        (lambda results, done: None, Convention.CALLBACK),
        (lambda results, extra=1: None, Convention.RESULTS),
        (lambda *args: None, Convention.RESULTS),
        (None, Convention.NULLARY),
    ),
    ids=("nullary", "results", "callback", "defaulted", "varargs", "empty"),
)
def test_convention_picked_at_registration(body, convention):
    assert normalize(body)[0] is convention


def test_uncallable_body():
    with pytest.raises(TypeError):
        normalize(1701)


@pytest.mark.anyio
@pytest.mark.parametrize("value", (1701, None, {"a": 1}), ids=("int", "none", "dict"))
async def test_sync_result(value):
    assert await _run(lambda: value) == value


@pytest.mark.anyio
async def test_sync_results_are_passed():
    assert await _run(lambda results: results["a"] + 1, {"a": 1}) == 2


@pytest.mark.anyio
async def test_sync_raise():
    error = ValueError("Rejected!")

    def body():
        raise error

    with pytest.raises(ValueError) as exc_info:
        await _run(body)

    assert exc_info.value is error


@pytest.mark.anyio
async def test_async_result():
    async def body(results):
        await anyio.lowlevel.checkpoint()
        return 1701

    assert await _run(body) == 1701


@pytest.mark.anyio
async def test_async_raise():
    error = ValueError("Rejected!")

    async def body():
        await anyio.lowlevel.checkpoint()
        raise error

    with pytest.raises(ValueError) as exc_info:
        await _run(body)

    assert exc_info.value is error


@pytest.mark.anyio
async def test_returned_awaitable_is_awaited():
    async def compute():
        return 1701

    assert await _run(lambda: compute()) == 1701


@pytest.mark.anyio
async def test_callback_result():
    def body(results, done):
        done(1701)

    assert await _run(body) == 1701


@pytest.mark.anyio
async def test_callback_without_value():
    assert await _run(lambda results, done: done()) is None


@pytest.mark.anyio
async def test_callback_error():
    error = ValueError("Rejected!")

    with pytest.raises(ValueError) as exc_info:
        await _run(lambda results, done: done(error))

    assert exc_info.value is error


@pytest.mark.anyio
async def test_callback_only_first_completion_counts():
    def body(results, done):
        done(1)
        done(ValueError("ignored"))

    assert await _run(body) == 1


@pytest.mark.anyio
async def test_callback_raise_before_done():
    def body(results, done):
        raise ValueError("Rejected!")

    with pytest.raises(ValueError, match="Rejected!"):
        await _run(body)


@pytest.mark.anyio
async def test_callback_completed_later():
    async def body(results, done):
        async def _finish():
            await anyio.sleep(0.01)
            done(results["a"])

        tg.start_soon(_finish)

    async with anyio.create_task_group() as tg:
        assert await _run(body, {"a": 1701}) == 1701


@pytest.mark.anyio
async def test_empty_body():
    assert await _run(None) is None


def test_unique_names():
    assert unique_names("a") == ["a"]
    assert unique_names(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_definition_deduplicates():
    task = TaskDefinition.from_body("root", ["a", "b", "a"], None)

    assert task.dependencies == ["a", "b"]
    assert task.convention is Convention.NULLARY


def test_definition_requires_name():
    with pytest.raises(ValidationError):
        TaskDefinition.from_body("", [], None)


@dataclass
class Multiply:
    factor: int

    def __call__(self, results):
        return results["value"] * self.factor


def _offset(offset, results):
    return results["double"] + offset


def test_unhashable_body_convention():
    assert Multiply.__hash__ is None
    assert normalize(Multiply(2))[0] is Convention.RESULTS
    assert normalize(functools.partial(_offset, 3))[0] is Convention.RESULTS


@pytest.mark.anyio
async def test_callable_instance_and_partial_bodies():
    runner = TaskRunner()
    runner.add_task("value", lambda: 2)
    runner.add_task("double", "value", Multiply(2))
    runner.add_task("root", "double", functools.partial(_offset, 3))

    assert await runner.run("root") == 7
