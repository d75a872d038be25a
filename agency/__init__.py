"""
Agency - dependency-gated task scheduler.

Run independent units of work in an order governed by boolean dependency
expressions such as ``"fetch && (parse || !cache)"``.
"""

__version__ = "1.0.0"

from agency.core.errors import AgencyError
from agency.journal import Journal, JournalMode
from agency.scheduling import Agency, RunReport, TaskContext, TaskHandle, TaskState

__all__ = [
    "Agency",
    "AgencyError",
    "Journal",
    "JournalMode",
    "RunReport",
    "TaskContext",
    "TaskHandle",
    "TaskState",
    "__version__",
]
