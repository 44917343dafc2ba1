import inspect
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any

import anyio
from annotated_types import MinLen
from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable

ResultMap = dict[str, Any]
TaskBody = Callable[..., Any]
TaskOperation = Callable[[ResultMap], Awaitable[Any]]

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class Convention(Enum):
    """How a task body expects to be called."""

    NULLARY = "nullary"
    RESULTS = "results"
    CALLBACK = "callback"


def _get_convention(fn: TaskBody) -> Convention:
    try:
        parameters = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        # builtins and some extension callables carry no signature
        return Convention.RESULTS

    required = [
        param
        for param in parameters
        if param.kind in _POSITIONAL and param.default is inspect.Parameter.empty
    ]

    if len(required) >= 2:
        return Convention.CALLBACK
    elif required or any(
        param.kind is inspect.Parameter.VAR_POSITIONAL for param in parameters
    ):
        return Convention.RESULTS

    return Convention.NULLARY


def _wrap_direct(fn: TaskBody, convention: Convention) -> TaskOperation:
    async def operation(results: ResultMap) -> Any:
        returned = fn(results) if convention is Convention.RESULTS else fn()

        if inspect.isawaitable(returned):
            return await returned

        return returned

    return operation


def _wrap_callback(fn: TaskBody) -> TaskOperation:
    async def operation(results: ResultMap) -> Any:
        completed = anyio.Event()
        outcome: list[Any] = []

        def done(value: Any = None) -> None:
            # only the first completion counts
            if completed.is_set():
                return

            outcome.append(value)
            completed.set()

        returned = fn(results, done)
        if inspect.isawaitable(returned):
            await returned

        await completed.wait()

        if isinstance(outcome[0], BaseException):
            raise outcome[0]

        return outcome[0]

    return operation


async def _empty_operation(results: ResultMap) -> None:
    return None


def normalize(body: "TaskBody | None") -> tuple[Convention, TaskOperation]:
    """
    Wrap a task body into a single asynchronous operation accepting the results of
    the task's direct dependencies.

    The calling convention is picked once, from the number of required positional
    parameters of the body:

    - 0: ``body()``
    - 1: ``body(results)``
    - 2+: ``body(results, done)``, where the task completes when ``done`` is called.
      Passing an exception to ``done`` fails the task.

    For the first two conventions, an awaitable return value is awaited and a raised
    exception fails the task.
    """
    if body is None:
        return Convention.NULLARY, _empty_operation

    if not callable(body):
        raise TypeError(f"Task body must be callable, got {body!r}.")

    convention = _get_convention(body)
    if convention is Convention.CALLBACK:
        return convention, _wrap_callback(body)

    return convention, _wrap_direct(body, convention)


def unique_names(names: "str | Iterable[str]") -> list[str]:
    """Deduplicate task names, preserving the order they were first seen in."""
    if isinstance(names, str):
        names = [names]

    return list(dict.fromkeys(names))


class TaskDefinition(BaseModel):
    name: Annotated[str, MinLen(1)]
    dependencies: list[str] = Field(default_factory=list)
    convention: Convention = Convention.NULLARY
    operation: TaskOperation = _empty_operation

    model_config = ConfigDict(extra="forbid")

    @field_validator("dependencies", mode="after")
    @classmethod
    def _deduplicate(cls, dependencies: list[str]) -> list[str]:
        return unique_names(dependencies)

    @classmethod
    def from_body(
        cls, name: str, dependencies: "Iterable[str]", body: "TaskBody | None"
    ) -> "TaskDefinition":
        convention, operation = normalize(body)
        return cls(
            name=name,
            dependencies=list(dependencies),
            convention=convention,
            operation=operation,
        )

    async def __call__(self, results: ResultMap) -> Any:
        return await self.operation(results)
