"""
Unit tests for the live connection manager.

The WebSocket app and reconnect timer are replaced with fakes, so every
transport callback is driven explicitly by the test.
"""

import json
import threading

import pytest

from src.config.models import ConnectionConfig
from src.models.core import DataSource
from src.services.connection import ConnectionManager, ConnectionState
from src.services.dispatcher import EventDispatcher
from src.services.notifications import NotificationLevel, Notifier
from src.services.store import DashboardDataset, DashboardStore


@pytest.fixture
def manager(app_factory, timer_factory):
    store = DashboardStore()
    notifier = Notifier()
    dispatcher = EventDispatcher(store, notifier)
    manager = ConnectionManager(
        store, dispatcher, notifier,
        config=ConnectionConfig(url='ws://edge.local:3851/ws'),
        app_factory=app_factory,
        timer_factory=timer_factory,
    )
    manager.notifications = []
    notifier.subscribe(manager.notifications.append)
    return manager


class TestConnect:
    """Test session establishment."""

    def test_connect_opens_one_session(self, manager, app_factory):
        manager.connect()

        assert manager.state == ConnectionState.CONNECTING
        assert len(app_factory.apps) == 1
        assert app_factory.last.url == 'ws://edge.local:3851/ws'

    def test_connect_is_noop_while_connecting_or_connected(self, manager, app_factory):
        manager.connect()
        manager.connect()
        assert len(app_factory.apps) == 1

        app_factory.last.open()
        manager.connect()
        assert len(app_factory.apps) == 1

    def test_open_sets_flag_and_announces_once(self, manager, app_factory, timer_factory):
        manager.connect()
        app_factory.last.open()

        assert manager.state == ConnectionState.CONNECTED
        assert manager.store.ws_connected is True
        assert [n.level for n in manager.notifications] == [NotificationLevel.SUCCESS]

        # An automatic reconnect does not announce again
        app_factory.last.drop()
        timer_factory.last.fire()
        app_factory.last.open()
        assert [n.level for n in manager.notifications] == [NotificationLevel.SUCCESS]

    def test_messages_reach_the_store(self, manager, app_factory):
        manager.connect()
        app_factory.last.open()
        app_factory.last.receive(json.dumps({
            'type': 'zone_update',
            'payload': {'totalPeopleNow': 4, 'totalDetectionsToday': 9},
        }))

        assert manager.store.get_stats().total_people_now == 4

    def test_factory_failure_schedules_reconnect(self, manager, timer_factory):
        def broken_factory(*args):
            raise OSError("no route to host")

        manager._app_factory = broken_factory
        manager.connect()

        assert manager.state == ConnectionState.RECONNECTING
        assert manager.last_error == "no route to host"
        assert len(timer_factory.live()) == 1


class TestReconnect:
    """Test the fixed-delay reconnect policy."""

    def test_close_schedules_reconnect_after_three_seconds(self, manager, app_factory, timer_factory):
        manager.connect()
        app_factory.last.open()
        app_factory.last.drop()

        assert manager.state == ConnectionState.RECONNECTING
        assert manager.store.ws_connected is False
        assert timer_factory.last.interval == 3.0

        timer_factory.last.fire()
        assert len(app_factory.apps) == 2
        assert manager.reconnect_attempts == 1

    def test_delay_is_constant_across_attempts(self, manager, app_factory, timer_factory):
        manager.connect()
        for _ in range(5):
            app_factory.last.drop()
            timer_factory.last.fire()

        assert {t.interval for t in timer_factory.timers} == {3.0}
        assert len(app_factory.apps) == 6

    def test_error_notification_once_per_outage(self, manager, app_factory, timer_factory):
        manager.connect()
        for _ in range(3):
            app_factory.last.fail(ConnectionRefusedError("refused"))
            app_factory.last.drop()
            timer_factory.last.fire()

        errors = [n for n in manager.notifications if n.level == NotificationLevel.ERROR]
        assert len(errors) == 1

        # A successful open ends the outage
        app_factory.last.open()
        app_factory.last.fail(ConnectionResetError("reset"))
        errors = [n for n in manager.notifications if n.level == NotificationLevel.ERROR]
        assert len(errors) == 2


class TestDisconnect:
    """Test teardown and stale callbacks."""

    def test_disconnect_cancels_everything(self, manager, app_factory, timer_factory):
        manager.connect()
        app = app_factory.last
        app.open()
        app.drop()
        timer = timer_factory.last

        manager.disconnect()

        assert timer.cancelled is True
        assert manager.state == ConnectionState.DISCONNECTED
        assert manager.store.ws_connected is False
        assert manager.is_active is False

        # A timer that was already firing must not reopen the session
        timer.fire()
        assert len(app_factory.apps) == 1

    def test_disconnect_closes_open_session(self, manager, app_factory):
        manager.connect()
        app_factory.last.open()

        manager.disconnect()

        assert app_factory.last.closed is True

    def test_disconnect_is_idempotent(self, manager):
        manager.disconnect()
        manager.disconnect()

        assert manager.state == ConnectionState.DISCONNECTED

    def test_stale_callbacks_are_ignored(self, manager, app_factory, timer_factory):
        manager.connect()
        old = app_factory.last
        manager.disconnect()

        old.open()
        old.receive(json.dumps({'type': 'zone_update',
                                'payload': {'totalPeopleNow': 1, 'totalDetectionsToday': 1}}))
        old.drop()

        assert manager.store.ws_connected is False
        assert manager.store.get_stats() is None
        assert timer_factory.timers == []
        assert manager.notifications == []

    def test_state_listeners(self, manager, app_factory):
        states = []
        manager.state_listeners.append(states.append)

        manager.connect()
        app_factory.last.open()
        manager.disconnect()

        assert states == [ConnectionState.CONNECTING, ConnectionState.CONNECTED,
                          ConnectionState.DISCONNECTED]

    def test_disconnect_waits_for_in_flight_message(self, manager, app_factory):
        manager.connect()
        app = app_factory.last
        app.open()

        entered = threading.Event()
        release = threading.Event()
        dispatch_raw = manager.dispatcher.dispatch_raw

        def blocking_dispatch(raw):
            entered.set()
            release.wait(5)
            return dispatch_raw(raw)

        manager.dispatcher.dispatch_raw = blocking_dispatch

        def switch_to_mock():
            manager.disconnect()
            manager.store.load_dataset(DataSource.MOCK, DashboardDataset())

        receiver = threading.Thread(target=app.receive, args=(json.dumps({
            'type': 'zone_update',
            'payload': {'totalPeopleNow': 4, 'totalDetectionsToday': 9},
        }),))
        receiver.start()
        assert entered.wait(5)

        switch = threading.Thread(target=switch_to_mock)
        switch.start()
        switch.join(0.2)
        assert switch.is_alive()

        release.set()
        receiver.join(5)
        switch.join(5)

        assert manager.state == ConnectionState.DISCONNECTED
        assert manager.store.data_source == DataSource.MOCK
        assert manager.store.get_stats() is None
        assert manager.store.ws_connected is False
