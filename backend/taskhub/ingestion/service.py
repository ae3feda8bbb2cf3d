"""
IngestionService — the ingestion core as seen by the HTTP layer.

Built once at startup and stored on `app.state`; the upload endpoint
only ever calls store_upload() and submit_for_ingestion().
"""

from __future__ import annotations

import os
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskhub.core.config import Settings
from taskhub.core.logging import get_logger
from taskhub.core.ports import OutcomeSink, TaskGateway
from taskhub.ingestion.dispatcher import EventDispatcher
from taskhub.ingestion.events import IngestionEvent
from taskhub.ingestion.files import FileLifecycleManager
from taskhub.ingestion.gateway import SqlAlchemyTaskGateway
from taskhub.ingestion.outcome_log import FileOutcomeLog
from taskhub.ingestion.worker import IngestionWorker

logger = get_logger(__name__)


class IngestionService:
    """Owns the dispatcher, the worker and the file lifecycle manager."""

    def __init__(
        self,
        *,
        dispatcher: EventDispatcher,
        worker: IngestionWorker,
        files: FileLifecycleManager,
        shutdown_timeout_seconds: float = 10.0,
    ) -> None:
        self.dispatcher = dispatcher
        self.worker = worker
        self.files = files
        self.shutdown_timeout_seconds = shutdown_timeout_seconds
        dispatcher.subscribe(worker.handle)

    def submit_for_ingestion(self, file_path: str | os.PathLike[str]) -> bool:
        """
        Hand a fully written file to the core.  Returns immediately.

        True means the event was queued; processing success or failure is
        only visible in the outcome log.  False means the dispatcher
        rejected the event and the caller still owns the file.
        """
        key = self.files.register(file_path)
        accepted = self.dispatcher.publish(IngestionEvent(file_path=key))
        if not accepted:
            logger.warning("Ingestion not queued", file_path=key)
        return accepted

    async def start(self) -> None:
        self.files.ensure_upload_dir()
        self.dispatcher.start()

    async def aclose(self) -> None:
        await self.dispatcher.aclose(timeout=self.shutdown_timeout_seconds)
        close = getattr(self.worker.sink, "close", None)
        if callable(close):
            close()


def build_ingestion_service(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    gateway: TaskGateway | None = None,
    sink: OutcomeSink | None = None,
) -> IngestionService:
    """Wire the ingestion core from settings."""
    files = FileLifecycleManager(settings.UPLOAD_DIR, max_upload_bytes=settings.MAX_UPLOAD_BYTES)
    worker = IngestionWorker(
        gateway or SqlAlchemyTaskGateway(session_factory),
        files,
        sink or FileOutcomeLog(Path(settings.LOG_DIR) / "ingestion.log"),
        persist_timeout_seconds=settings.INGESTION_PERSIST_TIMEOUT_SECONDS,
    )
    dispatcher = EventDispatcher(maxsize=settings.INGESTION_QUEUE_MAXSIZE)
    return IngestionService(
        dispatcher=dispatcher,
        worker=worker,
        files=files,
        shutdown_timeout_seconds=settings.INGESTION_SHUTDOWN_TIMEOUT_SECONDS,
    )
