"""Script execution record models."""

import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

ExecutionStatus = Literal["pending", "running", "completed", "failed", "cancelled"]

ACTIVE_STATUSES = ("pending", "running")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScriptDefinition(BaseModel):
    """Whitelisted script that may be run on a node."""

    id: str
    name: str
    command: str
    privileged: bool = False


class ScriptExecution(BaseModel):
    """One run of a whitelisted script."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    script_id: str
    script_name: str
    command: str
    server_name: str
    node_name: str
    status: ExecutionStatus = "pending"
    start_time: datetime = Field(default_factory=_utcnow)
    end_time: datetime | None = None
    output: str | None = None
    error_output: str | None = None
    exit_code: int | None = None
    duration: int | None = None
    created_by: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    upid: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
