"""Models for server-side task chains."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "TaskChain",
    "TaskChainState",
]


class TaskChainState(StrEnum):
    """State of a task chain."""

    INVALID = ""
    """The task chain was just created and has no state yet."""

    READY = "READY"
    RUNNING = "RUNNING"
    CANCELING = "CANCELING"
    CANCELED = "CANCELED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    UNDOING = "UNDOING"

    @property
    def is_terminal(self) -> bool:
        """Whether the task chain has finished and will not change again."""
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {
        TaskChainState.CANCELED,
        TaskChainState.FAILED,
        TaskChainState.SUCCEEDED,
    }
)


class TaskChain(BaseModel):
    """A sequence of dependent jobs making up one long-running operation."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(0, title="Numeric ID")

    task_chain_id: UUID | None = Field(
        None, title="Task chain UUID", validation_alias="taskchainUuid"
    )

    state: TaskChainState = Field(TaskChainState.INVALID, title="State")

    progressed_at: datetime | None = Field(
        None,
        title="Time of last progress",
        validation_alias="progressedAt",
    )
