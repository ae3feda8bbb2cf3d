"""
Ports (interfaces) used by the ingestion core.

The worker depends on these Protocols instead of concrete implementations,
so the database gateway and the outcome log can be swapped for fakes in tests.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol, Sequence

from taskhub.core.constants import IngestionState


class TaskGateway(Protocol):
    """Persistence Gateway: atomic, idempotent batch upsert keyed by task id."""

    async def upsert_batch(self, records: Sequence[dict[str, Any]]) -> int: ...


class OutcomeSink(Protocol):
    """
    Append-only sink receiving one line per terminal ingestion state.

    record() is blocking and is called from a worker thread.
    """

    def record(self, outcome: IngestionState, detail: str) -> None: ...


# Handler invoked by the dispatcher once per published event.
EventHandler = Callable[[Any], Awaitable[Any]]
