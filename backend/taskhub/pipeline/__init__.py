"""
Ingestion pipeline engine.

Runs one uploaded file through check → parse → persist → cleanup,
with per-step logging and a DONE/FAILED outcome per run.
"""

from taskhub.pipeline.context import IngestionContext, StepResult
from taskhub.pipeline.engine import IngestionEngine, IngestionOutcome
from taskhub.pipeline.step import IngestionStep

__all__ = ["IngestionEngine", "IngestionOutcome", "IngestionContext", "IngestionStep", "StepResult"]
