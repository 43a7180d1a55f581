"""
Unit tests for the mock simulation source and the mock dataset.
"""

import random
import threading

from src.config.models import SimulationConfig, StoreConfig
from src.data.mock_data import build_mock_dataset, generate_mock_event, mock_cameras
from src.models.core import CameraStatus, DataSource, EventSeverity, EventType
from src.services.simulation import SimulationSource
from src.services.store import DashboardDataset, DashboardStore


NOW = 1700000000000


class TestMockDataset:
    """Test the seeded mock dataset."""

    def test_dataset_shape(self):
        dataset = build_mock_dataset(random.Random(1), NOW)

        assert [c.id for c in dataset.cameras] == ['cam-01', 'cam-02', 'cam-03', 'cam-04', 'cam-05', 'cam-06']
        assert dataset.cameras[4].status == CameraStatus.OFFLINE
        assert len(dataset.zones) == 5
        assert len(dataset.people) == 33
        assert all(p.timestamp == NOW for p in dataset.people)
        assert len(dataset.events) == 7
        assert dataset.events[0].id == 'evt-001'
        assert dataset.stats.total_people_now == 33
        assert set(dataset.heatmaps) == {'cam-01', 'cam-02', 'cam-03', 'cam-04'}
        assert len(dataset.chart_data.hourly) == 24

    def test_events_are_newest_first(self):
        events = build_mock_dataset(random.Random(1), NOW).events

        timestamps = [e.timestamp for e in events]
        assert timestamps == sorted(timestamps, reverse=True)

    def test_people_have_skeletons(self):
        person = build_mock_dataset(random.Random(1), NOW).people[0]

        assert len(person.keypoints) == 15
        assert person.keypoints[0].name == 'nose'

    def test_generated_event_targets_online_camera(self):
        rng = random.Random(7)
        for _ in range(50):
            event = generate_mock_event(rng, NOW, mock_cameras())
            assert event.camera_id != 'cam-05'
            assert event.type != EventType.ZONE_UPDATE
            if event.type == EventType.FALL_DETECTED:
                assert event.severity == EventSeverity.CRITICAL
            if event.type == EventType.PERSON_DETECTED:
                assert event.severity == EventSeverity.INFO


class TestSimulationSource:
    """Test the periodic perturbation of the store."""

    def setup_method(self):
        self.store = DashboardStore(StoreConfig(person_ttl_seconds=None))
        self.store.load_dataset(DataSource.MOCK, build_mock_dataset(random.Random(3), NOW))

    def make_source(self, timer_factory, probability=0.15):
        return SimulationSource(
            self.store,
            SimulationConfig(interval_seconds=1.0, event_probability=probability),
            rng=random.Random(42),
            timer_factory=timer_factory,
            clock=lambda: NOW + 1000,
        )

    def test_tick_moves_people_within_bounds(self, timer_factory):
        source = self.make_source(timer_factory)
        before = {p.id: p for p in self.store.get_people()}

        source.start()
        timer_factory.last.fire()

        for person in self.store.get_people():
            assert 0.05 <= person.bbox.x <= 0.9
            assert 0.1 <= person.bbox.y <= 0.85
            assert person.dwell_time == before[person.id].dwell_time + 1000
            assert person.timestamp == NOW + 1000

    def test_tick_adjusts_counters(self, timer_factory):
        source = self.make_source(timer_factory)
        stats = self.store.get_stats()

        source.step()

        after = self.store.get_stats()
        assert abs(after.total_people_now - stats.total_people_now) <= 1
        assert 0 <= after.total_detections_today - stats.total_detections_today <= 4

    def test_event_probability(self, timer_factory):
        always = self.make_source(timer_factory, probability=1.0)
        always.step()
        assert len(self.store.get_events()) == 8

        never = self.make_source(timer_factory, probability=0.0)
        never.step()
        assert len(self.store.get_events()) == 8

    def test_start_is_idempotent(self, timer_factory):
        source = self.make_source(timer_factory)

        source.start()
        source.start()

        assert len(timer_factory.timers) == 1
        assert timer_factory.last.interval == 1.0
        assert source.is_active is True

    def test_stop_silences_pending_tick(self, timer_factory):
        source = self.make_source(timer_factory)
        source.start()
        timer = timer_factory.last

        source.stop()
        source.stop()
        timer.fire()

        assert timer.cancelled is True
        assert source.tick_count == 0
        assert source.is_active is False

    def test_switch_waits_for_running_tick(self, timer_factory):
        source = self.make_source(timer_factory, probability=1.0)
        source.start()

        entered = threading.Event()
        release = threading.Event()
        update_people = self.store.update_people

        def blocking_update(update):
            entered.set()
            release.wait(5)
            return update_people(update)

        self.store.update_people = blocking_update

        def switch_to_live():
            source.stop()
            self.store.load_dataset(DataSource.LIVE, DashboardDataset())

        tick = threading.Thread(target=timer_factory.last.fire)
        tick.start()
        assert entered.wait(5)

        switch = threading.Thread(target=switch_to_live)
        switch.start()
        switch.join(0.2)
        assert switch.is_alive()

        release.set()
        tick.join(5)
        switch.join(5)

        assert source.tick_count == 1
        assert self.store.data_source == DataSource.LIVE
        assert self.store.get_events() == []
        assert self.store.get_stats() is None
        assert self.store.get_people() == []
