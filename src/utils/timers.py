"""
Cancellable timers used by the rotation scheduler, the simulation source and
the frame poller.
"""

import logging
import threading
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class RepeatingTimer:
    """Calls ``callback`` every ``interval`` seconds on a daemon thread.

    The first call happens one interval after ``start()``. ``cancel()`` is
    idempotent and no callback runs after it returns, apart from one that
    was already executing.
    """

    def __init__(self, interval: float, callback: Callable[[], None], name: Optional[str] = None):
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        self.interval = interval
        self.callback = callback
        self.name = name or "repeating-timer"
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, daemon=True, name=self.name)
        self._thread.start()

    def cancel(self) -> None:
        self._stop_event.set()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and not self._stop_event.is_set()

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.callback()
            except Exception as e:
                logger.error(f"Error in timer {self.name}: {e}")


def one_shot_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    """Create (but do not start) a daemon one-shot timer."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer
