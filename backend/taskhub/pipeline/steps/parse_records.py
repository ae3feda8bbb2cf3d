"""
ParseRecordsStep — reads the file and normalizes every record.

All-or-nothing: one record with a bad id or a missing/mistyped field
fails the whole batch, so a partially valid file writes nothing.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from taskhub.core.constants import IngestionState
from taskhub.ingestion import normalizer
from taskhub.pipeline.context import IngestionContext, StepResult
from taskhub.pipeline.errors import MalformedPayload, MissingSourceFile
from taskhub.pipeline.step import IngestionStep


class ParseRecordsStep(IngestionStep):
    """Decode the JSON payload and coerce ids to integers."""

    name = "parse_records"
    description = "Parse and normalize task records"
    state = IngestionState.VALIDATING
    error_type = MalformedPayload

    async def execute(self, ctx: IngestionContext) -> StepResult:
        started_at = self._now()

        try:
            raw = await asyncio.to_thread(Path(ctx.file_path).read_bytes)
        except FileNotFoundError as exc:
            raise MissingSourceFile(
                f"Source file disappeared before it could be read: {ctx.file_path}",
                file_path=ctx.file_path,
                step_name=self.name,
            ) from exc
        except OSError as exc:
            raise MalformedPayload(
                f"Source file could not be read: {exc}",
                file_path=ctx.file_path,
                step_name=self.name,
            ) from exc

        ctx.raw_records = normalizer.parse(raw)
        ctx.records = [record.to_row() for record in normalizer.normalize_batch(ctx.raw_records)]

        return self._success(started_at, metadata={
            "bytes": len(raw),
            "records": len(ctx.records),
        })
