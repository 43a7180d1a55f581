"""
Routes decoded wire messages to store mutations and notifications.
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple, Union

from src.models.core import DashboardStats, EventType, HailoEvent, Person, WSMessage
from src.services.errors import MessageDecodeError
from src.services.notifications import Notifier, notification_for_event
from src.services.store import DashboardStore


logger = logging.getLogger(__name__)

ALERT_TYPES = (EventType.FALL_DETECTED, EventType.LOITER_ALERT, EventType.CROWD_ALERT)

Entity = Union[Person, HailoEvent, DashboardStats]


def decode_message(data: Any) -> Tuple[WSMessage, Entity]:
    """Validate one message and decode its payload for the declared type."""
    try:
        message = WSMessage.from_dict(data)
        if message.type == EventType.PERSON_DETECTED:
            entity = Person.from_dict(message.payload)
        elif message.type in ALERT_TYPES:
            entity = HailoEvent.from_dict(message.payload)
        else:
            entity = DashboardStats.from_dict(message.payload)
    except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as e:
        raise MessageDecodeError(str(e)) from e
    return message, entity


class EventDispatcher:
    """Applies each inbound message to the store, in arrival order.

    Messages that fail to decode are logged and dropped; nothing raised by a
    bad message escapes ``dispatch``.
    """

    def __init__(self, store: DashboardStore, notifier: Optional[Notifier] = None):
        self.store = store
        self.notifier = notifier or Notifier()
        self.dispatched_count = 0
        self.dropped_count = 0

    def dispatch_raw(self, raw: Union[str, bytes]) -> bool:
        """Decode a JSON text frame and dispatch it."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError, RecursionError) as e:
            logger.warning(f"Dropping unparseable message: {e}")
            self.dropped_count += 1
            return False
        return self.dispatch(data)

    def dispatch(self, data: Dict[str, Any]) -> bool:
        """Apply one decoded message. Returns False if it was dropped."""
        try:
            message, entity = decode_message(data)
        except MessageDecodeError as e:
            logger.warning(f"Dropping malformed message: {e}")
            self.dropped_count += 1
            return False

        if message.type == EventType.PERSON_DETECTED:
            self.store.upsert_person(entity)

        elif message.type in ALERT_TYPES:
            self.store.add_event(entity)
            notification = notification_for_event(entity)
            if notification is not None:
                self.notifier.notify(notification)

        elif message.type == EventType.ZONE_UPDATE:
            self.store.set_stats(entity)

        self.dispatched_count += 1
        return True
