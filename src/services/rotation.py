"""
Round-robin camera rotation.

Advances a cursor through the cameras that are online, once per interval.
The online list is resampled on every tick, so a camera that goes offline
is skipped on the next tick without an explicit removal step.
"""

import logging
import threading
from typing import Callable, Optional

from src.services.store import DashboardStore
from src.utils.timers import RepeatingTimer


logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 400


class CameraRotationScheduler:
    """Owns the rotation timer and writes the store's rotation cursor.

    Each start gets a new generation number and ticks carrying an older
    generation are dropped, so a timer that is being cancelled can never
    move the cursor after ``stop`` or a restart.
    """

    def __init__(self, store: DashboardStore, interval_ms: int = DEFAULT_INTERVAL_MS,
                 timer_factory: Callable = RepeatingTimer):
        if interval_ms <= 0:
            raise ValueError(f"Rotation interval must be positive, got {interval_ms}")
        self.store = store
        self.interval_ms = interval_ms
        self._timer_factory = timer_factory
        self._timer = None
        self._generation = 0
        self._lock = threading.RLock()
        self.store.set_rotation_interval(interval_ms)

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._timer is not None

    def start(self) -> bool:
        """Begin rotating from the first online camera.

        The first camera is designated immediately. Returns False, leaving
        rotation disabled, when no camera is online.
        """
        with self._lock:
            self._generation += 1
            self._cancel_timer()

            with self.store.transaction():
                online = self.store.online_cameras()
                logger.info(f"Starting rotation with {len(online)} online cameras, "
                            f"interval: {self.interval_ms}ms")
                if not online:
                    logger.warning("No online cameras found, rotation not started")
                    self.store.reset_rotation_cursor()
                    return False
                self.store.set_rotation_cursor(True, 0, online[0].id)

            generation = self._generation
            self._timer = self._timer_factory(
                self.interval_ms / 1000.0, lambda: self._tick(generation)
            )
            self._timer.start()
            return True

    def stop(self) -> None:
        """Cancel the timer and clear the cursor. Idempotent."""
        with self._lock:
            self._generation += 1
            self._cancel_timer()
            self.store.reset_rotation_cursor()

    def set_interval(self, interval_ms: int) -> None:
        """Change the interval, restarting the timer if rotation is running."""
        if interval_ms <= 0:
            raise ValueError(f"Rotation interval must be positive, got {interval_ms}")
        with self._lock:
            self.interval_ms = interval_ms
            self.store.set_rotation_interval(interval_ms)
            if self._timer is not None:
                self.stop()
                self.start()

    def cycle_to_next(self) -> Optional[str]:
        """Advance the cursor by one position immediately."""
        with self._lock:
            return self._advance()

    def _tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            camera_id = self._advance()
        if camera_id is not None:
            logger.debug(f"Rotation camera: {self.store.camera_name(camera_id)}")

    def _advance(self) -> Optional[str]:
        with self.store.transaction():
            cursor = self.store.rotation_cursor()
            online = self.store.online_cameras()

            if not online:
                # Keep rotating; the cursor points nowhere until a camera returns
                self.store.set_rotation_cursor(cursor.enabled, None, None)
                return None

            if cursor.index is None:
                next_index = 0
            else:
                next_index = (cursor.index + 1) % len(online)
            camera = online[next_index]
            self.store.set_rotation_cursor(cursor.enabled, next_index, camera.id)
            return camera.id

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
