# core/domain/dispatcher.py
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, DefaultDict, List, Type, TypeVar

from .events import DomainEvent

logger = logging.getLogger(__name__)

EventT = TypeVar("EventT", bound=DomainEvent)
Handler = Callable[[EventT], None]


class DomainEventDispatcher:
    """
    In-process, synchronous domain event dispatcher.

    Usage:

        from core.domain.dispatcher import register_handler, emit

        @register_handler(DocumentCreated)
        def log_created(event: DocumentCreated) -> None:
            ...

        emit(DocumentCreated(document_type="bilty", document_id=7, number=42))
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[Type[DomainEvent], List[Handler]] = defaultdict(list)

    def register_handler(self, event_type: Type[EventT]):
        """
        Decorator registering `func` for `event_type`.
        Registering the same function twice is a no-op.
        """

        def decorator(func: Handler) -> Handler:
            handlers = self._handlers[event_type]
            if func not in handlers:
                handlers.append(func)
                logger.debug(
                    "Registered handler %s for %s",
                    func.__name__,
                    event_type.__name__,
                )
            return func

        return decorator

    def handlers_for(self, event_type: Type[DomainEvent]) -> List[Handler]:
        return list(self._handlers.get(event_type, []))

    def emit(self, event: DomainEvent) -> None:
        """
        Call every handler registered for the event's type.
        A failing handler is logged and does not stop the others,
        nor the business operation that emitted the event.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type, [])

        if not handlers:
            logger.debug("No handlers registered for event %s", event_type.__name__)
            return

        for handler in handlers:
            try:
                handler(event)  # type: ignore[arg-type]
            except Exception:
                logger.exception(
                    "Error while handling event %s in handler %s",
                    event_type.__name__,
                    handler.__name__,
                )


# Global dispatcher for the Django process
dispatcher = DomainEventDispatcher()

register_handler = dispatcher.register_handler
emit = dispatcher.emit
