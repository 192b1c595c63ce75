"""In-process fire-and-forget event delivery"""
import asyncio
import inspect
from typing import Callable, List, Set

from domain.events import DomainEvent, EventPublisher
from infrastructure.logging import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[DomainEvent], object]


class InMemoryEventPublisher(EventPublisher):
    """Delivers events to subscribed handlers on background tasks.

    publish() never waits for handlers and never raises because of them; a
    failing handler is logged as event_delivery_failed.
    """

    def __init__(self):
        self._handlers: List[EventHandler] = []
        self._pending: Set[asyncio.Task] = set()
        self.published: List[DomainEvent] = []

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def publish(self, event: DomainEvent) -> None:
        self.published.append(event)
        if not self._handlers:
            return
        loop = asyncio.get_running_loop()
        for handler in self._handlers:
            task = loop.create_task(self._deliver(handler, event))
            # Keep a reference until done so the task is not collected mid-flight
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, handler: EventHandler, event: DomainEvent) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "event_delivery_failed",
                extra={"extra_fields": {
                    "event_type": event.event_type,
                    "handler": getattr(handler, "__name__", repr(handler)),
                }},
            )

    async def drain(self) -> None:
        """Wait for every in-flight delivery"""
        while self._pending:
            await asyncio.gather(*list(self._pending))
