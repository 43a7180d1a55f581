"""
User-visible notifications raised by the connection manager and dispatcher.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from src.models.core import EventSeverity, EventType, HailoEvent


logger = logging.getLogger(__name__)


class NotificationLevel(Enum):
    """Urgency class of a notification."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class Notification:
    """Transient user-visible message."""
    message: str
    level: NotificationLevel
    icon: Optional[str] = None
    duration_ms: int = 4000
    style: Dict[str, str] = field(default_factory=dict)


CRITICAL_STYLE = {'background': '#ff3b3b'}


def notification_for_event(event: HailoEvent) -> Optional[Notification]:
    """Classify an alert-like event; returns None for types that are not announced."""
    critical = event.severity == EventSeverity.CRITICAL

    if event.type == EventType.FALL_DETECTED:
        return Notification(event.message, NotificationLevel.CRITICAL, icon='🚨', duration_ms=10000)

    if event.type == EventType.LOITER_ALERT:
        if critical:
            return Notification(event.message, NotificationLevel.ERROR, icon='⚠️', duration_ms=8000)
        return Notification(event.message, NotificationLevel.INFO, icon='👁️', duration_ms=5000)

    if event.type == EventType.CROWD_ALERT:
        return Notification(
            event.message,
            NotificationLevel.ERROR if critical else NotificationLevel.INFO,
            icon='👥',
            duration_ms=5000,
            style=dict(CRITICAL_STYLE) if critical else {},
        )

    return None


class Notifier:
    """Fans notifications out to subscribers and logs each one."""

    def __init__(self):
        self._subscribers: List[Callable[[Notification], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[Notification], None]) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def notify(self, notification: Notification) -> None:
        if notification.level in (NotificationLevel.ERROR, NotificationLevel.CRITICAL):
            logger.warning(f"[{notification.level.value}] {notification.message}")
        else:
            logger.info(f"[{notification.level.value}] {notification.message}")

        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(notification)
            except Exception as e:
                logger.error(f"Notification subscriber failed: {e}")

    def info(self, message: str, icon: Optional[str] = None) -> None:
        self.notify(Notification(message, NotificationLevel.INFO, icon=icon))

    def success(self, message: str, icon: Optional[str] = None) -> None:
        self.notify(Notification(message, NotificationLevel.SUCCESS, icon=icon))

    def error(self, message: str, icon: Optional[str] = None) -> None:
        self.notify(Notification(message, NotificationLevel.ERROR, icon=icon))
