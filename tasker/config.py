from collections.abc import Callable

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict


def _noop(*args: object) -> None:
    return None


class Config(BaseSettings):
    throw_on_overwrite: bool = True
    """Raise when adding a task whose name is already registered."""

    stop_on_first_error: bool = False
    """Stop launching new tasks once any task in a run has failed."""

    model_config = SettingsConfigDict(env_prefix="TASKER_", extra="forbid")


class TaskHooks(BaseModel):
    """
    Observer callbacks fired while a run progresses. They are called synchronously
    from the event loop and cannot change the outcome of the run.
    """

    on_task_start: Callable[[str, list[str]], None] = _noop
    """Called before a task's dependencies begin resolving."""

    on_task_end: Callable[[str, float], None] = _noop
    """Called once a task's operation succeeded, with its duration in milliseconds."""

    on_task_fail: Callable[[str, BaseException], None] = _noop
    """Called when a task's own operation fails."""

    on_task_cancel: Callable[[str], None] = _noop
    """Called when a task will not run because a dependency failed."""

    model_config = ConfigDict(extra="forbid", frozen=True)
