"""
CheckSourceStep — confirms the uploaded file is still on disk.

A file that was already consumed (duplicate delivery) or removed out of
band fails the run straight from RECEIVED, before any store call.
"""

from __future__ import annotations

import asyncio
import os

from taskhub.core.constants import IngestionState
from taskhub.pipeline.context import IngestionContext, StepResult
from taskhub.pipeline.errors import MissingSourceFile
from taskhub.pipeline.step import IngestionStep


class CheckSourceStep(IngestionStep):
    """Fail with MissingSourceFile when the event's file does not exist."""

    name = "check_source"
    description = "Confirm the source file exists"
    state = IngestionState.RECEIVED
    error_type = MissingSourceFile

    async def execute(self, ctx: IngestionContext) -> StepResult:
        started_at = self._now()

        if not await asyncio.to_thread(os.path.isfile, ctx.file_path):
            raise MissingSourceFile(
                f"Source file does not exist: {ctx.file_path}",
                file_path=ctx.file_path,
                step_name=self.name,
            )

        return self._success(started_at, metadata={"file_path": ctx.file_path})
