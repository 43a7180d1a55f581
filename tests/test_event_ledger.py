"""
Unit tests for the bounded event ledger.
"""

import pytest

from src.models.core import EventSeverity, EventType
from src.services.event_ledger import EventLedger

from fakes import make_event


class TestEventLedger:
    """Test capacity, ordering and acknowledgement."""

    def setup_method(self):
        self.ledger = EventLedger(capacity=100)

    def test_add_prepends(self):
        self.ledger.add(make_event('e1'))
        self.ledger.add(make_event('e2'))

        assert [e.id for e in self.ledger.events()] == ['e2', 'e1']

    def test_capacity_evicts_oldest(self):
        """Adding 105 events keeps the newest 100."""
        for i in range(1, 106):
            self.ledger.add(make_event(f'e{i}', timestamp=i))

        events = self.ledger.events()
        assert len(events) == 100
        assert events[0].id == 'e105'
        assert events[-1].id == 'e6'
        assert self.ledger.get('e5') is None

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            EventLedger(capacity=0)

    def test_acknowledge_is_monotonic(self):
        self.ledger.add(make_event('e1'))

        assert self.ledger.acknowledge('e1') is True
        assert self.ledger.acknowledge('e1') is False
        assert self.ledger.get('e1').acknowledged is True

        # Re-adding other events does not clear the flag
        self.ledger.add(make_event('e2'))
        assert self.ledger.get('e1').acknowledged is True

    def test_acknowledge_unknown_is_noop(self):
        self.ledger.add(make_event('e1'))

        assert self.ledger.acknowledge('missing') is False
        assert self.ledger.unacknowledged()[0].id == 'e1'

    def test_filter_by_type_is_a_view(self):
        self.ledger.add(make_event('fall', EventType.FALL_DETECTED))
        self.ledger.add(make_event('loiter', EventType.LOITER_ALERT, EventSeverity.WARNING))
        self.ledger.add(make_event('person', EventType.PERSON_DETECTED, EventSeverity.INFO))

        filtered = self.ledger.filter_by_type(['fall_detected', EventType.LOITER_ALERT])

        assert [e.id for e in filtered] == ['loiter', 'fall']
        assert len(self.ledger) == 3

    def test_counts_by_type(self):
        self.ledger.add(make_event('a', EventType.FALL_DETECTED))
        self.ledger.add(make_event('b', EventType.FALL_DETECTED))
        self.ledger.add(make_event('c', EventType.CROWD_ALERT, EventSeverity.WARNING))

        counts = self.ledger.counts_by_type()
        assert counts['fall_detected'] == 2
        assert counts['crowd_alert'] == 1
        assert counts['loiter_alert'] == 0

    def test_replace_all_truncates(self):
        small = EventLedger(capacity=3)
        small.replace_all([make_event(f'e{i}') for i in range(5)])

        assert [e.id for e in small.events()] == ['e0', 'e1', 'e2']
