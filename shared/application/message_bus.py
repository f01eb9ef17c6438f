"""
Message Bus

Routes committed domain events to their subscribers (notifications today).
Subscribers never see events of a rolled-back transaction; the unit of
work only publishes after commit.
"""

from typing import Callable, Dict, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], None]


class MessageBus:
    """
    In-process event dispatcher

    Any number of handlers per event class. A handler subscribed to a base
    class also receives events of its subclasses.
    """

    def __init__(self):
        self._subscribers: Dict[Type[DomainEvent], List[Handler]] = {}

    def register_event_handler(self, event_type: Type[DomainEvent], handler: Handler):
        """
        Subscribe `handler` to `event_type`

        Subscribing the same handler twice is a no-op, so AppConfig.ready()
        may run more than once (test runners do that).
        """
        subscribers = self._subscribers.setdefault(event_type, [])
        if handler in subscribers:
            return
        subscribers.append(handler)
        logger.debug(f"{handler.__name__} subscribed to {event_type.__name__}")

    def unregister_event_handler(self, event_type: Type[DomainEvent], handler: Handler):
        subscribers = self._subscribers.get(event_type, [])
        if handler in subscribers:
            subscribers.remove(handler)

    def handlers_for(self, event_type: Type[DomainEvent]) -> List[Handler]:
        found: List[Handler] = []
        for klass in event_type.__mro__:
            for handler in self._subscribers.get(klass, []):
                if handler not in found:
                    found.append(handler)
        return found

    def publish_events(self, events: List[DomainEvent]):
        """
        Deliver each event to every subscriber in registration order

        A failing subscriber is logged and skipped; the rest still run.
        """
        for event in events:
            handlers = self.handlers_for(type(event))
            if not handlers:
                logger.debug(f"Nobody listens to {event.event_type}")
                continue

            logger.info(f"Dispatching {event.event_type} {event.event_id} to {len(handlers)} handler(s)")
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(f"{handler.__name__} failed on {event.event_type}: {e}", exc_info=True)


message_bus = MessageBus()
