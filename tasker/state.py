from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TaskState(Enum):
    UNSTARTED = "unstarted"
    VISITING = "visiting"
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


class RunState(BaseModel):
    """The bookkeeping of a single top-level run. Never outlives that run."""

    target: str
    states: dict[str, TaskState] = Field(default_factory=dict)
    results: dict[str, Any] = Field(default_factory=dict)
    failures: dict[str, BaseException] = Field(default_factory=dict)
    started_at: dict[str, float] = Field(default_factory=dict)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def state_of(self, name: str) -> TaskState:
        return self.states.get(name, TaskState.UNSTARTED)

    def transition(self, name: str, state: TaskState) -> None:
        self.states[name] = state

    def record_failure(self, name: str, error: BaseException) -> None:
        # the first error recorded against a task is the one reported
        self.failures.setdefault(name, error)

    @property
    def failed(self) -> bool:
        return bool(self.failures)
