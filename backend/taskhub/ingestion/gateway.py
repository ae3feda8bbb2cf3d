"""
SqlAlchemyTaskGateway — the Persistence Gateway used by the ingestion worker.

One upsert_batch() call == one transaction: either every record of the
batch is written or none is.
"""

from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskhub.core.logging import get_logger
from taskhub.repositories import tasks as task_repository

logger = get_logger(__name__)


class SqlAlchemyTaskGateway:
    """Batch upsert against the tasks table through a fresh session."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def upsert_batch(self, records: Sequence[dict[str, Any]]) -> int:
        if not records:
            return 0
        async with self._session_factory() as session:
            async with session.begin():
                affected = await task_repository.upsert_tasks(session, records)
        logger.debug("Batch upserted", records=len(records), affected=affected)
        return affected
