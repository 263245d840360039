"""Task models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

TaskHandle = str
"""UPID of a task, scoped to the node that runs it."""

SUCCESS_EXIT_STATUSES = frozenset({"OK", "0"})


class TaskState(str, Enum):
    """States of one execute-and-wait run."""

    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    UNOBSERVABLE = "unobservable"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class TaskStatus(BaseModel):
    """Task status information."""

    model_config = {"extra": "allow"}  # Allow extra fields from API

    status: str
    exitstatus: str | None = None
    upid: str | None = None
    node: str | None = None
    type: str | None = None
    user: str | None = None
    id: str | None = None
    pid: int | None = None
    pstart: int | None = None
    starttime: int | None = None
    endtime: int | None = None

    @property
    def is_finished(self) -> bool:
        return self.status == "stopped"

    @property
    def succeeded(self) -> bool:
        return self.is_finished and self.exitstatus in SUCCESS_EXIT_STATUSES


class TaskLogLine(BaseModel):
    """One line of a task log (``n`` is the 1-based line number)."""

    n: int
    t: str


class TaskExecutionResult(BaseModel):
    """Final outcome of a remote command run."""

    model_config = ConfigDict(frozen=True)

    exit_code: str
    output: list[str] = Field(default_factory=list)
    duration_seconds: int = 0
    success: bool = False
    state: TaskState = TaskState.COMPLETED
    upid: TaskHandle | None = None
