"""
Live connection to the edge backend.

Owns one WebSocket session at a time and reconnects after a fixed delay when
the session closes unexpectedly. The retry interval is constant and
uncapped.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Optional

import websocket

from src.config.models import ConnectionConfig
from src.models.core import DataSource
from src.services.dispatcher import EventDispatcher
from src.services.interfaces import DataProducer
from src.services.notifications import Notifier
from src.services.store import DashboardStore
from src.utils.timers import one_shot_timer


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle state."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


def _default_app_factory(url, on_open, on_message, on_error, on_close):
    return websocket.WebSocketApp(
        url,
        on_open=on_open,
        on_message=on_message,
        on_error=on_error,
        on_close=on_close,
    )


class ConnectionManager(DataProducer):
    """Manages the WebSocket session to the edge backend.

    Every session gets a generation number; transport callbacks and
    reconnect timers from an older generation are ignored, so nothing fires
    after ``disconnect`` or a fresh ``connect``.
    """

    source = DataSource.LIVE

    def __init__(self, store: DashboardStore, dispatcher: EventDispatcher,
                 notifier: Optional[Notifier] = None,
                 config: Optional[ConnectionConfig] = None,
                 app_factory: Callable = _default_app_factory,
                 timer_factory: Callable = one_shot_timer):
        self.store = store
        self.dispatcher = dispatcher
        self.notifier = notifier or dispatcher.notifier
        self.config = config or ConnectionConfig()
        self.url = self.config.url
        self._app_factory = app_factory
        self._timer_factory = timer_factory

        self._lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED
        self._generation = 0
        self._should_run = False
        self._app = None
        self._thread: Optional[threading.Thread] = None
        self._reconnect_timer = None
        self._announce_open = False
        self._error_notified = False
        self.reconnect_attempts = 0
        self.last_error: Optional[str] = None
        self.state_listeners = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._should_run

    def start(self) -> None:
        self.connect()

    def stop(self) -> None:
        self.disconnect()

    def connect(self, url: Optional[str] = None) -> None:
        """Open a session. No-op while already connecting or connected."""
        with self._lock:
            if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
                logger.debug(f"connect() ignored, already {self._state.value}")
                return
            if url:
                self.url = url
            self._cancel_reconnect_timer()
            self._should_run = True
            self._announce_open = True
            self._error_notified = False
            self.reconnect_attempts = 0
            self._open_session()

    def disconnect(self) -> None:
        """Close the session and cancel any pending reconnect. Idempotent."""
        with self._lock:
            self._should_run = False
            self._generation += 1
            self._cancel_reconnect_timer()
            app, self._app = self._app, None
            self._thread = None
            was = self._state
            self._set_state(ConnectionState.DISCONNECTED)

        if app is not None:
            try:
                app.close()
            except Exception as e:
                logger.error(f"Error closing WebSocket: {e}")

        self.store.set_ws_connected(False)
        if was != ConnectionState.DISCONNECTED:
            logger.info("Disconnected from backend")

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    def _open_session(self) -> None:
        """Create a new transport session. Caller holds the lock."""
        self._generation += 1
        generation = self._generation
        self._set_state(ConnectionState.CONNECTING)
        logger.info(f"Connecting to {self.url}")

        try:
            app = self._app_factory(
                self.url,
                lambda ws: self._on_open(generation),
                lambda ws, message: self._on_message(generation, message),
                lambda ws, error: self._on_error(generation, error),
                lambda ws, status=None, reason=None: self._on_close(generation, status, reason),
            )
        except Exception as e:
            logger.error(f"Failed to create WebSocket: {e}")
            self.last_error = str(e)
            self._set_state(ConnectionState.DISCONNECTED)
            self._schedule_reconnect(generation)
            return

        self._app = app
        self._thread = threading.Thread(
            target=self._run_session, args=(app, generation),
            daemon=True, name=f"ws-session-{generation}"
        )
        self._thread.start()

    def _run_session(self, app, generation: int) -> None:
        try:
            app.run_forever()
        except Exception as e:
            logger.error(f"WebSocket session crashed: {e}")
            self._on_error(generation, e)
            self._on_close(generation, None, str(e))

    def _schedule_reconnect(self, generation: int) -> None:
        """Arm the fixed-delay reconnect timer. Caller holds the lock."""
        if not self._should_run or generation != self._generation:
            return
        self._cancel_reconnect_timer()
        self._set_state(ConnectionState.RECONNECTING)
        delay = self.config.reconnect_delay_ms / 1000.0
        self._reconnect_timer = self._timer_factory(delay, lambda: self._reconnect(generation))
        self._reconnect_timer.start()
        logger.info(f"Reconnecting in {delay:.1f}s")

    def _reconnect(self, generation: int) -> None:
        with self._lock:
            if not self._should_run or generation != self._generation:
                return
            self._reconnect_timer = None
            self.reconnect_attempts += 1
            self._open_session()

    def _cancel_reconnect_timer(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in list(self.state_listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"Connection state listener failed: {e}")

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def _on_open(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._set_state(ConnectionState.CONNECTED)
            announce = self._announce_open
            self._announce_open = False
            self._error_notified = False
            self.reconnect_attempts = 0
            self.last_error = None
            self.store.set_ws_connected(True)

        logger.info("WebSocket connected")
        if announce:
            self.notifier.success('Connected to Hailo backend', icon='🔌')

    def _on_message(self, generation: int, message) -> None:
        # Dispatch under the lock so disconnect() waits for an in-flight frame.
        with self._lock:
            if generation != self._generation:
                return
            try:
                self.dispatcher.dispatch_raw(message)
            except Exception as e:
                logger.error(f"Failed to handle WebSocket message: {e}")

    def _on_error(self, generation: int, error) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self.last_error = str(error)
            notify = not self._error_notified
            self._error_notified = True

        logger.error(f"WebSocket error: {error}")
        if notify:
            self.notifier.error('WebSocket connection error')

    def _on_close(self, generation: int, status=None, reason=None) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._app = None
            self._set_state(ConnectionState.DISCONNECTED)
            self._schedule_reconnect(generation)
            self.store.set_ws_connected(False)

        logger.info(f"WebSocket disconnected (status={status}, reason={reason})")
