"""Task scheduling - registry, task state machine and the scan loop.

This module provides the run-time half of agency:
- Task state machine (PENDING -> DISPATCHED -> COMPLETED)
- TaskHandle / TaskContext views over the registry
- Agency scheduler (scan, dispatch, complete, halt)
"""

from agency.scheduling.models import DispatchRecord, RunReport, TaskState, TaskSummary
from agency.scheduling.registry import TaskRegistry
from agency.scheduling.scheduler import Agency
from agency.scheduling.task import Task, TaskContext, TaskHandle

__all__ = [
    "Agency",
    "DispatchRecord",
    "RunReport",
    "Task",
    "TaskContext",
    "TaskHandle",
    "TaskRegistry",
    "TaskState",
    "TaskSummary",
]
