"""Ingestion event — the hand-off from the upload endpoint to the worker."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime

from taskhub.db.models.base import utcnow


@dataclass(frozen=True, slots=True)
class IngestionEvent:
    """One per completed upload.  Immutable once created."""

    file_path: str
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    published_at: datetime = field(default_factory=utcnow)
