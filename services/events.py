from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)


class LinkEventType(str, Enum):
    BEFORE_LINK_SAVE = "before_link_save"
    AFTER_LINK_SAVE = "after_link_save"
    BEFORE_LINK_DELETE = "before_link_delete"
    AFTER_LINK_DELETE = "after_link_delete"


@dataclass(frozen=True)
class LinkEvent:
    """Notification around a property reference mutation.

    ``source`` is the owning object (the saved one for AFTER_* events) and
    ``linked`` is the property value as it was before the mutation.
    """
    type: LinkEventType
    source: Any
    linked: Any
    property_name: str


LinkListener = Callable[[LinkEvent], Union[None, Awaitable[None]]]


class LinkEventPublisher:
    """Synchronous observer list for link events.

    Listeners run in registration order; coroutine listeners are awaited
    before the next one runs. A listener exception propagates and aborts
    the mutation.
    """

    def __init__(self) -> None:
        self._listeners: dict[LinkEventType, list[LinkListener]] = defaultdict(list)

    def subscribe(self, event_type: LinkEventType, listener: LinkListener) -> LinkListener:
        self._listeners[event_type].append(listener)
        return listener

    def unsubscribe(self, event_type: LinkEventType, listener: LinkListener) -> None:
        try:
            self._listeners[event_type].remove(listener)
        except ValueError:
            pass

    def listeners(self, event_type: LinkEventType) -> list[LinkListener]:
        return list(self._listeners[event_type])

    async def publish(self, event: LinkEvent) -> None:
        logger.debug(
            "Publishing %s for %s.%s",
            event.type.value,
            type(event.source).__name__,
            event.property_name,
        )
        for listener in self.listeners(event.type):
            result = listener(event)
            if inspect.isawaitable(result):
                await result

    async def emit(
        self,
        event_type: LinkEventType,
        source: Any,
        linked: Any,
        property_name: str,
    ) -> LinkEvent:
        event = LinkEvent(type=event_type, source=source, linked=linked, property_name=property_name)
        await self.publish(event)
        return event


link_events = LinkEventPublisher()


def on_link_event(event_type: LinkEventType, publisher: Optional[LinkEventPublisher] = None):
    """Decorator form of ``subscribe``."""
    def decorator(listener: LinkListener) -> LinkListener:
        (publisher or link_events).subscribe(event_type, listener)
        return listener
    return decorator
