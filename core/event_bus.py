"""
Event bus for catalog domain events.

The entity-management side listens here: a search projection refreshes an
entity's facets on BindingsReconciled, and admin caches of the attribute
list drop their copy on AttributeDefined / AttributeUpdated /
AttributeDeleted. Delivery is synchronous, in the publisher's thread, after
the catalog change has committed, so a failing handler is logged and the
change stands.
"""

import logging
from typing import Callable, Dict, List

from core.events import CatalogEvent

logger = logging.getLogger(__name__)


def _event_names(cls: type = CatalogEvent) -> set[str]:
    names = set()
    for sub in cls.__subclasses__():
        names.add(sub.__name__)
        names |= _event_names(sub)
    return names


class EventBus:
    """
    Routes catalog events to handlers by event class name.

    Only names of CatalogEvent subclasses can be subscribed to; a misspelt
    name fails at subscribe time instead of silently never firing.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """
        Register callback for one catalog event type.

        Args:
            event_type: Event class name, e.g. 'BindingsReconciled'
            callback: Called with the event instance

        Raises:
            ValueError: event_type is not a catalog event
        """
        if event_type not in _event_names():
            raise ValueError(f"Unknown catalog event type: {event_type}")
        self._subscribers.setdefault(event_type, []).append(callback)

    def publish(self, event: CatalogEvent) -> None:
        """Deliver event to its subscribers in subscription order."""
        event_type = event.__class__.__name__

        for callback in self._subscribers.get(event_type, []):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Catalog handler %s failed for %s (event_id=%s, request_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                    event.request_id,
                )
