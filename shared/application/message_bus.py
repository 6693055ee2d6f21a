"""
Message Bus

Routes domain events to the handlers subscribed to them.
"""

from typing import Callable, Dict, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class MessageBus:
    """
    Event dispatcher

    Several handlers may subscribe to one event type. A failing handler
    is logged and does not stop the others.
    """

    def __init__(self):
        self._event_handlers: Dict[Type[DomainEvent], List[Callable]] = {}

    def register_event_handler(
        self,
        event_type: Type[DomainEvent],
        handler: Callable[[DomainEvent], None]
    ):
        handlers = self._event_handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            logger.debug("Registered event handler for %s", event_type.__name__)

    def unregister_event_handler(self, event_type: Type[DomainEvent], handler: Callable):
        handlers = self._event_handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish_events(self, events: List[DomainEvent]):
        for event in events:
            event_type = type(event)
            handlers = self._event_handlers.get(event_type, [])

            if not handlers:
                logger.debug("No handlers registered for event %s", event_type.__name__)
                continue

            logger.info("Publishing event: %s (ID: %s)", event_type.__name__, event.event_id)

            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        "Error in event handler %s for event %s",
                        getattr(handler, '__name__', repr(handler)),
                        event_type.__name__,
                    )


# Global message bus instance
message_bus = MessageBus()
