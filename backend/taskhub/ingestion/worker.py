"""
IngestionWorker — the dispatcher's subscriber.

Per event:

    RECEIVED ─▶ VALIDATING ─▶ PERSISTING ─▶ CLEANUP ─▶ DONE
        │            │             │
        └────────────┴─────────────┴──────▶ FAILED  (file retained)

Side effects per event: at most one upsert call, at most one deletion
attempt, exactly one outcome-log line.
"""

from __future__ import annotations

import asyncio

from taskhub.core.constants import IngestionState
from taskhub.core.logging import get_logger
from taskhub.core.ports import OutcomeSink, TaskGateway
from taskhub.ingestion.events import IngestionEvent
from taskhub.ingestion.files import FileLifecycleManager
from taskhub.pipeline.context import IngestionContext
from taskhub.pipeline.engine import IngestionEngine, IngestionOutcome
from taskhub.pipeline.step import IngestionStep
from taskhub.pipeline.steps import (
    CheckSourceStep,
    CleanupSourceStep,
    ParseRecordsStep,
    PersistTasksStep,
)

logger = get_logger(__name__)


class IngestionWorker:
    """Drives one uploaded file through the ingestion pipeline."""

    def __init__(
        self,
        gateway: TaskGateway,
        files: FileLifecycleManager,
        sink: OutcomeSink,
        *,
        persist_timeout_seconds: float = 30.0,
    ) -> None:
        self.files = files
        self.sink = sink
        self.engine = IngestionEngine()
        self.steps: list[IngestionStep] = [
            CheckSourceStep(),
            ParseRecordsStep(),
            PersistTasksStep(gateway, timeout_seconds=persist_timeout_seconds),
            CleanupSourceStep(files),
        ]
        self._in_flight: set[str] = set()

    async def handle(self, event: IngestionEvent) -> IngestionOutcome | None:
        """
        Process one event.  Never raises for ingestion failures.

        Returns None, without touching the store or the file, when a run
        for the same path is already in progress.
        """
        key = self.files.key(event.file_path)
        if key in self._in_flight:
            logger.warning(
                "Ingestion already in progress for file, event ignored",
                event_id=event.event_id,
                file_path=key,
            )
            return None

        self._in_flight.add(key)
        try:
            outcome = await self.engine.run_steps(IngestionContext(event=event), self.steps)
            if outcome.state == IngestionState.FAILED:
                reason = outcome.error.kind if outcome.error else "ingestion failed"
                self.files.retain(key, reason=reason)
            await self._report(outcome)
            return outcome
        finally:
            self._in_flight.discard(key)

    async def _report(self, outcome: IngestionOutcome) -> None:
        try:
            await asyncio.to_thread(self.sink.record, outcome.state, outcome.detail)
        except Exception as exc:
            logger.exception(
                "Outcome log write failed",
                event_id=outcome.event_id,
                state=outcome.state.value,
                error=str(exc),
            )
