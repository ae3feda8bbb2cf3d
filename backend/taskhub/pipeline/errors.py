"""
Domain-specific exception hierarchy for the ingestion pipeline.

All ingestion exceptions inherit from IngestionError so callers can
catch broadly or narrowly as needed.  Each exception carries structured
context (file path, step name, details) for logging/debugging.

None of these reach the HTTP caller: the upload endpoint has already
answered by the time a batch is processed.
"""

from __future__ import annotations


class IngestionError(Exception):
    """Base exception for all ingestion errors."""

    def __init__(
        self,
        message: str,
        *,
        file_path: str | None = None,
        step_name: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.file_path = file_path
        self.step_name = step_name
        self.details = details or {}
        super().__init__(message)

    @property
    def kind(self) -> str:
        """Short error name used in outcome log lines."""
        return type(self).__name__


class MissingSourceFile(IngestionError):
    """The uploaded file was gone when the worker picked the event up."""
    pass


class MalformedPayload(IngestionError):
    """The file is not a JSON array of task-like objects."""
    pass


class InvalidIdentifier(IngestionError):
    """A record's `id` is missing or cannot be coerced to a task id."""

    def __init__(
        self,
        message: str,
        *,
        record_index: int | None = None,
        raw_id: object = None,
        **kwargs,
    ) -> None:
        self.record_index = record_index
        self.raw_id = raw_id
        super().__init__(message, **kwargs)


class PersistenceFailure(IngestionError):
    """The batch upsert failed or timed out; nothing was committed."""
    pass


class CleanupFailure(IngestionError):
    """The source file could not be deleted after a successful upsert."""
    pass


class DispatcherError(Exception):
    """Misuse of the event dispatcher (e.g. a second subscriber)."""
    pass
