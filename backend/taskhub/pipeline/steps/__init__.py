"""Ingestion steps, in the order the worker runs them."""

from taskhub.pipeline.steps.check_source import CheckSourceStep
from taskhub.pipeline.steps.cleanup_source import CleanupSourceStep
from taskhub.pipeline.steps.parse_records import ParseRecordsStep
from taskhub.pipeline.steps.persist_tasks import PersistTasksStep

__all__ = ["CheckSourceStep", "ParseRecordsStep", "PersistTasksStep", "CleanupSourceStep"]
