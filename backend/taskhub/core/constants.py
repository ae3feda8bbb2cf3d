"""Shared constants and enums used across the application."""

from enum import StrEnum


class IngestionState(StrEnum):
    """State of one ingestion run, from event receipt to a terminal state."""

    RECEIVED = "RECEIVED"
    VALIDATING = "VALIDATING"
    PERSISTING = "PERSISTING"
    CLEANUP = "CLEANUP"
    DONE = "DONE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (IngestionState.DONE, IngestionState.FAILED)


class StepStatus(StrEnum):
    """Status of an individual pipeline step."""

    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class FileDisposition(StrEnum):
    """Lifecycle of an uploaded file owned by the ingestion core."""

    OWNED = "OWNED"
    DELETED = "DELETED"
    ORPHANED = "ORPHANED"


# Key range of the tasks.id column (signed 32-bit INTEGER, positive only).
MIN_TASK_ID = 1
MAX_TASK_ID = 2**31 - 1
