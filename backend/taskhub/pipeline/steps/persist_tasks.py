"""
PersistTasksStep — one idempotent upsert call for the whole batch.

The gateway commits the batch atomically.  A timeout, a database error
or any other gateway error is a PersistenceFailure; nothing is retried.
"""

from __future__ import annotations

import asyncio

from taskhub.core.constants import IngestionState
from taskhub.core.logging import get_logger
from taskhub.core.ports import TaskGateway
from taskhub.pipeline.context import IngestionContext, StepResult
from taskhub.pipeline.errors import PersistenceFailure
from taskhub.pipeline.step import IngestionStep

logger = get_logger(__name__)


class PersistTasksStep(IngestionStep):
    """Upsert the normalized batch through the Persistence Gateway."""

    name = "persist_tasks"
    description = "Upsert the batch into the task store"
    state = IngestionState.PERSISTING
    error_type = PersistenceFailure

    def __init__(self, gateway: TaskGateway, *, timeout_seconds: float = 30.0) -> None:
        self.gateway = gateway
        self.timeout_seconds = timeout_seconds

    async def execute(self, ctx: IngestionContext) -> StepResult:
        started_at = self._now()

        try:
            ctx.affected = await asyncio.wait_for(
                self.gateway.upsert_batch(ctx.records),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as exc:
            raise PersistenceFailure(
                f"Upsert of {len(ctx.records)} record(s) timed out after {self.timeout_seconds}s",
                file_path=ctx.file_path,
                step_name=self.name,
            ) from exc
        except Exception as exc:
            raise PersistenceFailure(
                f"Upsert of {len(ctx.records)} record(s) failed: {exc}",
                file_path=ctx.file_path,
                step_name=self.name,
                details={"exception": type(exc).__name__},
            ) from exc

        logger.info(
            "Tasks upserted",
            file_path=ctx.file_path,
            records=len(ctx.records),
            affected=ctx.affected,
        )
        return self._success(started_at, metadata={"affected": ctx.affected})
