"""
IngestionEngine — runs ingestion steps sequentially for one event.

Responsibilities:
    - Move the run through its states (RECEIVED → VALIDATING →
      PERSISTING → CLEANUP → DONE, or → FAILED)
    - Execute each step with timing and structured logging
    - Stop at the first fatal failure; record non-fatal ones and go on
    - Never raise: every failure ends up in the returned IngestionOutcome

There is no retry.  A failed run leaves its file on disk for an operator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from taskhub.core.constants import IngestionState, StepStatus
from taskhub.pipeline.context import IngestionContext, StepResult
from taskhub.pipeline.errors import CleanupFailure, IngestionError
from taskhub.pipeline.step import IngestionStep


@dataclass
class IngestionOutcome:
    """Final outcome of one ingestion run."""

    event_id: str
    file_path: str
    state: IngestionState           # DONE or FAILED
    transitions: list[IngestionState] = field(default_factory=list)
    affected: int | None = None
    deleted: bool = False
    error: IngestionError | None = None
    cleanup_error: CleanupFailure | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    total_duration_ms: int = 0
    step_results: list[dict[str, Any]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state == IngestionState.DONE

    @property
    def detail(self) -> str:
        """Human-readable line for the outcome log."""
        if self.state == IngestionState.FAILED:
            kind = self.error.kind if self.error else "IngestionError"
            return f"{kind}: {self.error} (file retained: {self.file_path})"

        detail = f"upserted {self.affected or 0} task(s) from {self.file_path}"
        if self.cleanup_error is not None:
            detail += f"; {self.cleanup_error.kind}: {self.cleanup_error}"
        return detail


class IngestionEngine:
    """
    Runs a sequence of IngestionStep objects against an IngestionContext.

    Usage::

        engine = IngestionEngine()
        outcome = await engine.run_steps(IngestionContext(event=event), steps)
    """

    def __init__(self) -> None:
        self.logger = structlog.get_logger("ingestion.engine")

    async def run_steps(
        self,
        ctx: IngestionContext,
        steps: list[IngestionStep],
    ) -> IngestionOutcome:
        started_at = datetime.now(timezone.utc)

        log = self.logger.bind(
            event_id=ctx.event.event_id,
            file_path=ctx.file_path,
            total_steps=len(steps),
        )
        log.info("Ingestion started")

        for index, step in enumerate(steps):
            ctx.transition_to(step.state)

            step_log = log.bind(
                step_name=step.name,
                step_index=index + 1,
                state=ctx.state.value,
            )
            step_log.debug(f"Step {index + 1}/{len(steps)}: {step.description}")

            result, error = await self._execute(step, ctx, step_log)
            ctx.step_results.append(result)

            if error is None:
                step_log.debug(
                    "Step completed",
                    duration_ms=result.duration_ms,
                    metadata=result.metadata,
                )
                continue

            if not step.fatal:
                if isinstance(error, CleanupFailure):
                    ctx.cleanup_error = error
                step_log.warning(
                    "Non-fatal step failed, continuing",
                    error_kind=error.kind,
                    error=str(error),
                )
                continue

            ctx.error = error
            ctx.transition_to(IngestionState.FAILED)
            step_log.error(
                "Step failed — ingestion stopping",
                error_kind=error.kind,
                error=str(error),
                duration_ms=result.duration_ms,
            )
            break

        if not ctx.state.is_terminal:
            ctx.transition_to(IngestionState.DONE)

        completed_at = datetime.now(timezone.utc)
        outcome = IngestionOutcome(
            event_id=ctx.event.event_id,
            file_path=ctx.file_path,
            state=ctx.state,
            transitions=list(ctx.transitions),
            affected=ctx.affected,
            deleted=ctx.deleted,
            error=ctx.error,
            cleanup_error=ctx.cleanup_error,
            started_at=started_at,
            completed_at=completed_at,
            total_duration_ms=int((completed_at - started_at).total_seconds() * 1000),
            step_results=[sr.to_dict() for sr in ctx.step_results],
        )

        log.info(
            "Ingestion finished",
            state=outcome.state.value,
            affected=outcome.affected,
            deleted=outcome.deleted,
            duration_ms=outcome.total_duration_ms,
        )
        return outcome

    async def _execute(
        self,
        step: IngestionStep,
        ctx: IngestionContext,
        log: Any,
    ) -> tuple[StepResult, IngestionError | None]:
        """Run one step, converting any exception into the step's error type."""
        started_at = datetime.now(timezone.utc)
        try:
            return await step.execute(ctx), None

        except IngestionError as exc:
            error = exc

        except Exception as exc:
            log.exception("Unexpected error in step", error=str(exc))
            error = step.error_type(f"Unexpected: {exc}")
            error.__cause__ = exc

        if error.step_name is None:
            error.step_name = step.name
        if error.file_path is None:
            error.file_path = ctx.file_path

        completed_at = datetime.now(timezone.utc)
        result = StepResult(
            step_name=step.name,
            status=StepStatus.FAILED,
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=int((completed_at - started_at).total_seconds() * 1000),
            error=str(error),
            metadata={"error_kind": error.kind},
        )
        return result, error
