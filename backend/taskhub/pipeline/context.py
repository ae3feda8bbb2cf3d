"""
IngestionContext — mutable state object carried through every step.

This is the single source of truth for one ingestion run.  Each step
reads from and writes to the context; the engine records the state
transitions and turns the final context into an IngestionOutcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from taskhub.core.constants import IngestionState
from taskhub.ingestion.events import IngestionEvent
from taskhub.pipeline.errors import CleanupFailure, IngestionError


# ═══════════════════════════════════════════════════════════
#  StepResult
# ═══════════════════════════════════════════════════════════

@dataclass
class StepResult:
    """Outcome of a single pipeline step execution."""

    step_name: str
    status: str                     # StepStatus value
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_name": self.step_name,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "metadata": self.metadata,
        }


# ═══════════════════════════════════════════════════════════
#  IngestionContext
# ═══════════════════════════════════════════════════════════

@dataclass
class IngestionContext:
    """
    Carries all state between ingestion steps.

    Populated progressively: parse_records fills raw_records/records,
    persist_tasks sets affected, cleanup_source sets deleted.
    """

    event: IngestionEvent

    # ─── State machine ─────────────────────────────────
    state: IngestionState = IngestionState.RECEIVED
    transitions: list[IngestionState] = field(
        default_factory=lambda: [IngestionState.RECEIVED]
    )

    # ─── Payload ───────────────────────────────────────
    raw_records: list[dict[str, Any]] = field(default_factory=list)
    # Rows in gateway shape (id/title/description/completed/extra)
    records: list[dict[str, Any]] = field(default_factory=list)

    # ─── Side effects ──────────────────────────────────
    affected: int | None = None
    deleted: bool = False

    # ─── Errors ────────────────────────────────────────
    error: IngestionError | None = None
    cleanup_error: CleanupFailure | None = None

    step_results: list[StepResult] = field(default_factory=list)

    @property
    def file_path(self) -> str:
        return self.event.file_path

    def transition_to(self, state: IngestionState) -> None:
        """Move to `state`.  Terminal states are final."""
        if self.state.is_terminal:
            raise RuntimeError(f"Run already terminal ({self.state}), cannot move to {state}")
        if state == self.state:
            return
        self.state = state
        self.transitions.append(state)
