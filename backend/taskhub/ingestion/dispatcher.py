"""
EventDispatcher — in-process hand-off between the ingress and the worker.

A bounded asyncio.Queue drained by one dedicated consumer task:

    ingress ──publish()──▶ [queue] ──consumer──▶ handler(event)

Contract:
    - publish() never blocks and never waits for processing.  It returns
      False (and logs) when the event cannot be queued: no subscriber yet,
      dispatcher closed, or queue full.  Rejected events are dropped.
    - Exactly one subscriber.  A second subscribe() raises DispatcherError;
      two consumers of the same event would process one file twice.
    - Events are handled one at a time in publish order, so two uploads
      touching the same task ids resolve as "later upload wins".
    - A failing handler is logged; the consumer keeps going.
    - Events published before subscribe() are not replayed.

The dispatcher is built once at startup and passed to whoever needs it.
"""

from __future__ import annotations

import asyncio
import contextlib

from taskhub.core.logging import get_logger
from taskhub.core.ports import EventHandler
from taskhub.ingestion.events import IngestionEvent
from taskhub.pipeline.errors import DispatcherError

logger = get_logger(__name__)


class EventDispatcher:
    """Single-subscriber, bounded, fire-and-forget event channel."""

    def __init__(self, *, maxsize: int = 100, name: str = "ingestion") -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self.name = name
        self._queue: asyncio.Queue[IngestionEvent] = asyncio.Queue(maxsize=maxsize)
        self._handler: EventHandler | None = None
        self._consumer: asyncio.Task | None = None
        self._closed = False
        self.published = 0
        self.dropped = 0
        self.delivered = 0
        self.log = logger.bind(dispatcher=name)

    # ─── Subscription ──────────────────────────────────

    @property
    def subscriber_count(self) -> int:
        return 0 if self._handler is None else 1

    def subscribe(self, handler: EventHandler) -> None:
        """Register the one consumer handler.  Call once, at startup."""
        if self._handler is not None:
            raise DispatcherError(
                f"Dispatcher '{self.name}' already has a subscriber; "
                "only one consumer per event is allowed"
            )
        self._handler = handler
        self.log.info("Subscriber registered", handler=getattr(handler, "__qualname__", repr(handler)))

    # ─── Publishing ────────────────────────────────────

    def publish(self, event: IngestionEvent) -> bool:
        """Queue `event` for the subscriber.  Returns False if it was dropped."""
        if self._closed:
            return self._drop(event, "dispatcher closed")
        if self._handler is None:
            return self._drop(event, "no subscriber")
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return self._drop(event, "queue full")

        self.published += 1
        self.log.debug(
            "Event queued",
            event_id=event.event_id,
            file_path=event.file_path,
            pending=self._queue.qsize(),
        )
        return True

    def _drop(self, event: IngestionEvent, reason: str) -> bool:
        self.dropped += 1
        self.log.warning(
            "Event dropped",
            reason=reason,
            event_id=event.event_id,
            file_path=event.file_path,
        )
        return False

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    # ─── Consumer lifecycle ────────────────────────────

    def start(self) -> None:
        """Launch the consumer task on the running event loop."""
        if self._handler is None:
            raise DispatcherError(f"Dispatcher '{self.name}' has no subscriber to start")
        if self._consumer is not None and not self._consumer.done():
            return
        self._consumer = asyncio.create_task(self._consume(), name=f"{self.name}-consumer")
        self.log.info("Consumer started")

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def _consume(self) -> None:
        assert self._handler is not None
        while True:
            event = await self._queue.get()
            try:
                await self._handler(event)
                self.delivered += 1
            except Exception as exc:
                self.log.exception(
                    "Event handler raised",
                    event_id=event.event_id,
                    file_path=event.file_path,
                    error=str(exc),
                )
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def aclose(self, timeout: float = 10.0) -> None:
        """Stop accepting events, drain up to `timeout` seconds, stop the consumer."""
        self._closed = True
        if self._consumer is None:
            return

        if not self._consumer.done():
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except TimeoutError:
                self.log.warning("Shutdown timeout, abandoning queued events", pending=self._queue.qsize())

        self._consumer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._consumer
        self._consumer = None
        self.log.info(
            "Consumer stopped",
            published=self.published,
            delivered=self.delivered,
            dropped=self.dropped,
        )
