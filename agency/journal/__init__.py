"""Journal - lifecycle event sink with quiet, verbose and log modes."""

from agency.journal.journal import (
    Journal,
    JournalEvent,
    JournalMode,
    JournalRecord,
    Severity,
    timestamp_now,
)

__all__ = [
    "Journal",
    "JournalEvent",
    "JournalMode",
    "JournalRecord",
    "Severity",
    "timestamp_now",
]
