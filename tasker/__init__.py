from .config import Config, TaskHooks
from .exceptions import (
    AggregateRunError,
    ConcurrencyError,
    ConfigurationError,
    CycleError,
    DependencyError,
    InvalidTaskNameError,
    OverwriteError,
    TaskBodyError,
    TaskerError,
    UnknownTaskError,
)
from .graph import TaskGraph
from .runner import TaskRunner
from .task import Convention, TaskDefinition

__all__ = [
    "AggregateRunError",
    "ConcurrencyError",
    "Config",
    "ConfigurationError",
    "Convention",
    "CycleError",
    "DependencyError",
    "InvalidTaskNameError",
    "OverwriteError",
    "TaskBodyError",
    "TaskDefinition",
    "TaskGraph",
    "TaskHooks",
    "TaskRunner",
    "TaskerError",
    "UnknownTaskError",
]
