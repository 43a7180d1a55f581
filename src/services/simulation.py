"""
Mock-mode producer that perturbs the store on a fixed interval.
"""

import logging
import random
import threading
import time
from dataclasses import replace
from typing import Callable, Optional

from src.config.models import SimulationConfig
from src.data.mock_data import generate_mock_event
from src.models.core import DataSource, Person
from src.services.interfaces import DataProducer
from src.services.store import DashboardStore
from src.utils.timers import RepeatingTimer


logger = logging.getLogger(__name__)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class SimulationSource(DataProducer):
    """Synthetic producer that mutates the store through its named operations.

    Each tick jitters every person, refreshes their timestamps, occasionally
    adds an event and nudges the headline counters.
    """

    source = DataSource.MOCK

    def __init__(self, store: DashboardStore, config: Optional[SimulationConfig] = None,
                 rng: Optional[random.Random] = None,
                 timer_factory: Callable = RepeatingTimer,
                 clock: Optional[Callable[[], int]] = None):
        self.store = store
        self.config = config or SimulationConfig()
        self.rng = rng or random.Random(self.config.seed)
        self._timer_factory = timer_factory
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._timer = None
        self._generation = 0
        self._lock = threading.Lock()
        self.tick_count = 0

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._timer is not None

    def start(self) -> None:
        with self._lock:
            if self._timer is not None:
                return
            self._generation += 1
            generation = self._generation
            self._timer = self._timer_factory(self.config.interval_seconds, lambda: self._tick(generation))
            self._timer.start()
        logger.info(f"Mock simulation started (interval {self.config.interval_seconds}s)")

    def stop(self) -> None:
        with self._lock:
            self._generation += 1
            if self._timer is None:
                return
            self._timer.cancel()
            self._timer = None
        logger.info("Mock simulation stopped")

    def _tick(self, generation: int) -> None:
        # Held across the step so stop() returns only after a running tick ends.
        with self._lock:
            if generation != self._generation:
                return
            self.step()

    def step(self) -> None:
        """Apply one simulation tick."""
        now_ms = self._clock()
        self.store.update_people(lambda person: self._move(person, now_ms))

        if self.rng.random() < self.config.event_probability:
            event = generate_mock_event(self.rng, now_ms, self.store.get_cameras())
            self.store.add_event(event)

        self.store.adjust_stats(
            people_delta=self.rng.randint(-1, 1),
            detections_delta=self.rng.randint(0, 4),
        )
        self.tick_count += 1

    def _move(self, person: Person, now_ms: int) -> Person:
        bbox = replace(
            person.bbox,
            x=_clamp(person.bbox.x + (self.rng.random() - 0.5) * 0.02, 0.05, 0.9),
            y=_clamp(person.bbox.y + (self.rng.random() - 0.5) * 0.02, 0.1, 0.85),
        )
        return replace(person, bbox=bbox, dwell_time=person.dwell_time + 1000, timestamp=now_ms)
