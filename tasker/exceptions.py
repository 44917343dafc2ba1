from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable, Mapping
    from typing import Any


class TaskerError(Exception):
    def __init__(self, *args: "Any", **kwargs: "Any") -> None:
        super().__init__(*args, **kwargs)


##
## GRAPH MUTATION
##


class ConfigurationError(TaskerError):
    def __init__(self, message: str) -> None:
        super().__init__(message)


class MissingTaskNameError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("Missing task name.")


class InvalidTaskNameError(ConfigurationError):
    def __init__(self, name: "Any") -> None:
        super().__init__(f"Task name must be a string, got {name!r}.")
        self.name = name


class MissingDependenciesError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("Missing dependencies.")


class OverwriteError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f"Task '{name}' already exists. Remove it first, or create the runner"
            " with `throw_on_overwrite=False`."
        )
        self.name = name


class ConcurrencyError(TaskerError):
    def __init__(self) -> None:
        super().__init__(
            "The task graph cannot be modified or run while a run is in progress."
        )


##
## TASK RESOLUTION
##


class ResolutionError(TaskerError):
    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class UnknownTaskError(ResolutionError):
    def __init__(self, name: str) -> None:
        super().__init__(name, f"Task '{name}' not found.")


class CycleError(ResolutionError):
    def __init__(self, name: str, path: "Iterable[str]") -> None:
        self.path: tuple[str, ...] = tuple(path)
        super().__init__(
            name, f"Cycle found at '{name}': {' -> '.join(self.path)}"
        )


##
## TASK EXECUTION
##


class TaskBodyError(TaskerError):
    def __init__(self, name: str, error: BaseException) -> None:
        super().__init__(f"Task '{name}' failed: {error!r}")
        self.name = name
        self.error = error


class DependencyError(TaskerError):
    def __init__(self, name: str, failed: "Iterable[str]") -> None:
        self.failed: tuple[str, ...] = tuple(failed)
        if self.failed:
            super().__init__(
                f"Task '{name}' was not run. Dependency failures:"
                f" {', '.join(self.failed)}"
            )
        else:
            super().__init__(
                f"Task '{name}' was not run. The run stopped on a failure."
            )
        self.name = name


class AggregateRunError(TaskerError):
    def __init__(self, name: str, failures: "Mapping[str, BaseException]") -> None:
        self.name = name
        self.failures: dict[str, BaseException] = dict(failures)

        failure_str = "\n  ".join(
            f"{task}: {error}" for task, error in self.failures.items()
        )
        super().__init__(
            f"Run of task '{name}' failed. Failed tasks:\n  {failure_str}"
        )
