"""
Append-only ingestion outcome log.

One line per terminal ingestion state:

    2026-01-05T10:12:03.512+00:00 - DONE - upserted 3 task(s) from /srv/uploads/ab12.json
    2026-01-05T10:12:09.004+00:00 - FAILED - InvalidIdentifier: Record 0 has a non-integer id: 'x' ...
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from taskhub.core.constants import IngestionState


class _IsoUtcFormatter(logging.Formatter):
    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds")


class FileOutcomeLog:
    """OutcomeSink writing `<timestamp> - <outcome> - <detail>` lines to a file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handler = logging.FileHandler(self.path, mode="a", encoding="utf-8", delay=True)
        self._handler.setFormatter(_IsoUtcFormatter("%(asctime)s - %(outcome)s - %(message)s"))

    def record(self, outcome: IngestionState, detail: str) -> None:
        entry = logging.makeLogRecord({
            "name": "taskhub.ingestion.outcomes",
            "levelno": logging.INFO,
            "levelname": "INFO",
            "msg": " ".join(detail.split()),
            "outcome": outcome.value,
        })
        self._handler.handle(entry)

    def close(self) -> None:
        self._handler.close()
