"""
CleanupSourceStep — deletes the source file after a committed upsert.

Best effort: a failed deletion is a CleanupFailure that gets logged,
while the run still ends as DONE because the upsert is already durable.
"""

from __future__ import annotations

from taskhub.core.constants import IngestionState
from taskhub.ingestion.files import FileLifecycleManager
from taskhub.pipeline.context import IngestionContext, StepResult
from taskhub.pipeline.errors import CleanupFailure
from taskhub.pipeline.step import IngestionStep


class CleanupSourceStep(IngestionStep):
    """Single deletion attempt through the FileLifecycleManager."""

    name = "cleanup_source"
    description = "Delete the source file"
    state = IngestionState.CLEANUP
    error_type = CleanupFailure
    fatal = False

    def __init__(self, files: FileLifecycleManager) -> None:
        self.files = files

    async def execute(self, ctx: IngestionContext) -> StepResult:
        started_at = self._now()

        ctx.deleted = await self.files.delete(ctx.file_path)
        if not ctx.deleted:
            reason = self.files.last_error(ctx.file_path) or "file already disposed"
            raise CleanupFailure(
                f"Could not delete {ctx.file_path}: {reason}",
                file_path=ctx.file_path,
                step_name=self.name,
            )

        return self._success(started_at, metadata={"deleted": True})
