"""Journal - records task creation and execution events.

Three modes are available:
- ``quiet``: events are dropped
- ``verbose``: events are shown immediately through the logger
- ``log``: events are buffered and written as a JSON report when the run ends
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field


class JournalMode(str, Enum):
    """How journal events are handled."""

    QUIET = "quiet"
    VERBOSE = "verbose"
    LOG = "log"


class Severity(str, Enum):
    """Severity of a journal event."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class JournalEvent(BaseModel):
    """A single journaled event."""

    model_config = ConfigDict(frozen=True)

    type: Severity
    event: str
    timestamp: str


class JournalRecord(BaseModel):
    """Buffered events grouped by phase and task id."""

    creation_events: dict[str, list[JournalEvent]] = Field(default_factory=dict)
    execution_events: dict[str, list[JournalEvent]] = Field(default_factory=dict)


def timestamp_now() -> str:
    """Current UTC time in ISO 8601."""
    return datetime.now(timezone.utc).isoformat()


class Journal:
    """
    Event sink for task lifecycle events.

    Example:
        >>> journal = Journal(JournalMode.LOG, report_dir="/tmp")
        >>> journal.log_creation_event("id1", Severity.INFO, "creation completed")
        >>> path = journal.report("/tmp/agency.json")
    """

    def __init__(
        self,
        mode: JournalMode | str = JournalMode.VERBOSE,
        report_dir: str | Path = ".",
    ) -> None:
        """
        Initialize the journal.

        Args:
            mode: Journal mode.
            report_dir: Directory for the fallback report file.
        """
        self.mode = JournalMode(mode)
        self.report_dir = Path(report_dir)
        self._record = JournalRecord()

    @property
    def record(self) -> JournalRecord:
        """Events buffered so far (log mode only)."""
        return self._record

    def log_creation_event(
        self,
        task_id: str,
        severity: Severity | str,
        message: str,
        timestamp: str | None = None,
    ) -> None:
        """Record an event from the creation phase."""
        self._log(self._record.creation_events, task_id, severity, message, timestamp)

    def log_execution_event(
        self,
        task_id: str,
        severity: Severity | str,
        message: str,
        timestamp: str | None = None,
    ) -> None:
        """Record an event from the execution phase."""
        self._log(self._record.execution_events, task_id, severity, message, timestamp)

    def _log(
        self,
        bucket: dict[str, list[JournalEvent]],
        task_id: str,
        severity: Severity | str,
        message: str,
        timestamp: str | None,
    ) -> None:
        severity = Severity(severity)
        timestamp = timestamp or timestamp_now()

        if self.mode is JournalMode.LOG:
            event = JournalEvent(type=severity, event=message, timestamp=timestamp)
            bucket.setdefault(str(task_id), []).append(event)
        elif self.mode is JournalMode.VERBOSE:
            logger.log(severity.value, f"Task {task_id} {message} on {timestamp}")

    def report(self, destination: str | Path | None = None) -> Path | None:
        """
        Write buffered events to a file (log mode only).

        Falls back to ``<report_dir>/<timestamp>.log`` when the destination
        is missing or cannot be written. Never raises.

        Args:
            destination: Target file.

        Returns:
            Path of the written report, or None if nothing was written.
        """
        if self.mode is not JournalMode.LOG:
            return None

        data = self._record.model_dump_json(indent=3)

        if destination:
            try:
                return self._write(Path(destination), data)
            except (OSError, ValueError) as e:
                logger.error(f"Could not write log to file '{destination}': {e}")

        fallback = self.report_dir / (
            datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ") + ".log"
        )
        try:
            path = self._write(fallback, data)
        except (OSError, ValueError) as e:
            logger.error(f"Could not write log file: {e}")
            return None

        if destination:
            logger.warning(f"Log was written on default file '{path}'")
        return path

    @staticmethod
    def _write(path: Path, data: str) -> Path:
        path.write_text(data, encoding="utf-8")
        logger.debug(f"Journal report written to {path}")
        return path
