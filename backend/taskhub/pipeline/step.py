"""
IngestionStep — abstract base class for all ingestion steps.

The engine moves the run into the step's `state`, calls execute(),
and records timing and errors.  Steps only implement the logic and
raise their `error_type` on failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from taskhub.core.constants import IngestionState, StepStatus
from taskhub.pipeline.context import IngestionContext, StepResult
from taskhub.pipeline.errors import IngestionError


class IngestionStep(ABC):
    """
    Base class for every ingestion step.

    Subclasses set:
        - name (str)          — unique identifier, e.g. "parse_records"
        - description (str)   — human-readable label for logs
        - state               — IngestionState the run is in while this step runs
        - error_type          — IngestionError subclass raised on failure;
                                the engine wraps unexpected exceptions in it
        - fatal (bool)        — False means a failure is recorded and the
                                run still finishes as DONE
    """

    name: str = "unnamed_step"
    description: str = "No description"
    state: IngestionState = IngestionState.VALIDATING
    error_type: type[IngestionError] = IngestionError
    fatal: bool = True

    @abstractmethod
    async def execute(self, ctx: IngestionContext) -> StepResult:
        """
        Run the step's logic.  Must return a StepResult.

        Read from and write to `ctx` to pass data between steps.
        Raise `error_type` on failure.
        """
        ...

    # ─── Helpers available to all steps ────────────────

    def _success(
        self,
        started_at: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> StepResult:
        """Build a successful StepResult with timing."""
        now = datetime.now(timezone.utc)
        duration_ms = int((now - started_at).total_seconds() * 1000)
        return StepResult(
            step_name=self.name,
            status=StepStatus.COMPLETED,
            started_at=started_at,
            completed_at=now,
            duration_ms=duration_ms,
            metadata=metadata or {},
        )

    def _now(self) -> datetime:
        """UTC-aware now."""
        return datetime.now(timezone.utc)
