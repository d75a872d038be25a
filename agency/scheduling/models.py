"""Pydantic models for task scheduling.

This module defines the task lifecycle states, the immutable record a task
is frozen into when it is dispatched, and the report returned by a run.
"""

from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# ENUMS
# =============================================================================


class TaskState(str, Enum):
    """Lifecycle state of a task. Transitions only move forward."""

    PENDING = "pending"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"


# =============================================================================
# DISPATCH RECORD
# =============================================================================


class DispatchRecord(BaseModel):
    """Task configuration frozen at the moment of dispatch.

    The scheduler only reads work, handler and halt flag from this record, so
    nothing changed on the handle afterwards can affect the execution.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    task_id: str
    work: Callable[..., Any] | None = None
    on_complete: Callable[..., Any] | None = None
    halt_on_failure: bool = False


# =============================================================================
# RUN REPORT
# =============================================================================


class TaskSummary(BaseModel):
    """Final view of one task in a run."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Task id as given at creation")
    state: TaskState = Field(description="Last lifecycle state")
    enabled: bool = Field(description="False if creation validation failed")
    succeeded: bool | None = Field(
        default=None,
        description="Outcome of the work, None if it never completed",
    )
    result: str | None = Field(
        default=None,
        description="repr() of the recorded result",
    )
    error: str | None = Field(
        default=None,
        description="Creation error or execution failure message",
    )
    error_code: str | None = Field(
        default=None,
        description="Stable code of the error",
    )


class RunReport(BaseModel):
    """Outcome of a scheduler run.

    Example:
        >>> report = await agency.run()
        >>> report.halted
        False
        >>> report.completed_tasks
        ['id1', 'id2', 'id3']
    """

    model_config = ConfigDict(frozen=True)

    halted: bool = Field(
        default=False,
        description="True if a halt-on-failure task stopped the run",
    )
    halted_by: str | None = Field(
        default=None,
        description="Id of the task that halted the run",
    )
    started_at: datetime
    finished_at: datetime
    scans: int = Field(
        default=0,
        ge=0,
        description="Number of registry scans performed",
    )
    report_path: str | None = Field(
        default=None,
        description="File the journal report was written to",
    )
    tasks: list[TaskSummary] = Field(default_factory=list)

    @property
    def completed_tasks(self) -> list[str]:
        """Get IDs of tasks whose work succeeded."""
        return [t.id for t in self.tasks if t.succeeded is True]

    @property
    def failed_tasks(self) -> list[str]:
        """Get IDs of tasks whose work failed."""
        return [t.id for t in self.tasks if t.succeeded is False]

    @property
    def pending_tasks(self) -> list[str]:
        """Get IDs of enabled tasks that were never dispatched."""
        return [t.id for t in self.tasks if t.enabled and t.state is TaskState.PENDING]

    @property
    def disabled_tasks(self) -> list[str]:
        """Get IDs of tasks disabled at creation."""
        return [t.id for t in self.tasks if not t.enabled]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            **self.model_dump(mode="json"),
            "completed_tasks": self.completed_tasks,
            "failed_tasks": self.failed_tasks,
            "pending_tasks": self.pending_tasks,
            "disabled_tasks": self.disabled_tasks,
        }
