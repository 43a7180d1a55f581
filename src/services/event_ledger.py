"""
Bounded, newest-first history of dashboard events with acknowledgement.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, List

from src.models.core import EventType, HailoEvent


logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


class EventLedger:
    """Newest-first event log capped at ``capacity`` entries.

    Inserting beyond the cap silently drops the oldest entries. The only
    mutation of an existing entry is acknowledgement, which never reverts.
    Not thread-safe on its own; the store serializes access.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"Ledger capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._events: List[HailoEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))

    def add(self, event: HailoEvent) -> None:
        """Prepend an event, evicting the oldest entries beyond capacity."""
        self._events.insert(0, event)
        if len(self._events) > self.capacity:
            evicted = len(self._events) - self.capacity
            del self._events[self.capacity:]
            logger.debug(f"Evicted {evicted} event(s) beyond capacity {self.capacity}")

    def replace_all(self, events: Iterable[HailoEvent]) -> None:
        """Replace the ledger contents; ``events`` must already be newest first."""
        self._events = list(events)[:self.capacity]

    def clear(self) -> None:
        self._events = []

    def acknowledge(self, event_id: str) -> bool:
        """Mark an event acknowledged. Returns True only if the flag changed."""
        for i, event in enumerate(self._events):
            if event.id == event_id:
                if event.acknowledged:
                    return False
                self._events[i] = replace(event, acknowledged=True)
                return True
        logger.debug(f"Ignoring acknowledgement of unknown event {event_id}")
        return False

    def get(self, event_id: str):
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    def events(self) -> List[HailoEvent]:
        return list(self._events)

    def filter_by_type(self, types: Iterable) -> List[HailoEvent]:
        """Events whose type is in ``types`` (enum members or their string values)."""
        wanted = {t.value if isinstance(t, EventType) else t for t in types}
        return [e for e in self._events if e.type.value in wanted]

    def unacknowledged(self) -> List[HailoEvent]:
        return [e for e in self._events if not e.acknowledged]

    def counts_by_type(self) -> Dict[str, int]:
        counts = {t.value: 0 for t in EventType}
        for event in self._events:
            counts[event.type.value] += 1
        return counts
