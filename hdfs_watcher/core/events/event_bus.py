"""
In-process bus carrying dispatch, poll cycle and gate events to observers
such as the monitoring publisher.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Type

from hdfs_watcher.core.events.domain_event import DomainEvent

EventHandler = Callable[[DomainEvent], Awaitable[None]]


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class DomainEventBus:
    """
    Routes watcher events by exact type to their async handlers.

    Handlers of one event run concurrently and are awaited before ``publish``
    returns. A failing handler is logged and does not affect the others or the
    publisher.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        async with self._lock:
            if handler in self._handlers[event_type]:
                logging.debug(f"{_handler_name(handler)} already subscribed to {event_type.__name__}")
                return
            self._handlers[event_type].append(handler)
            logging.debug(f"{_handler_name(handler)} subscribed to {event_type.__name__}")

    async def unsubscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        """Remove a handler; unknown handlers are ignored."""
        async with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                logging.debug(f"{_handler_name(handler)} unsubscribed from {event_type.__name__}")

    def handler_count(self, event_type: Type[DomainEvent]) -> int:
        return len(self._handlers.get(event_type, []))

    async def publish(self, event: DomainEvent) -> None:
        event_type = type(event)
        # Copy so handlers may unsubscribe while being called
        handlers = list(self._handlers.get(event_type, []))
        if not handlers:
            return

        logging.debug(f"Publishing {event_type.__name__} to {len(handlers)} handler(s)")
        await asyncio.gather(*(self._safe_execute(handler, event) for handler in handlers))

    async def _safe_execute(self, handler: EventHandler, event: DomainEvent) -> None:
        try:
            await handler(event)
        except Exception as e:
            logging.error(
                f"Handler '{_handler_name(handler)}' failed for {type(event).__name__}: {e}",
                exc_info=True,
            )
