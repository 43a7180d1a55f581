"""
Unit tests for the camera rotation scheduler.
"""

import pytest

from src.models.core import CameraStatus
from src.services.rotation import CameraRotationScheduler
from src.services.store import DashboardStore

from fakes import make_camera


class TestCameraRotationScheduler:
    """Test cursor movement and timer ownership."""

    @pytest.fixture(autouse=True)
    def setup(self, timer_factory):
        self.timers = timer_factory
        self.store = DashboardStore()
        self.store.set_cameras([make_camera('A'), make_camera('B'), make_camera('C')])
        self.scheduler = CameraRotationScheduler(self.store, interval_ms=400, timer_factory=timer_factory)

    def cursor(self):
        return self.store.rotation_cursor()

    def test_start_designates_first_camera(self):
        assert self.scheduler.start() is True

        cursor = self.cursor()
        assert cursor.enabled is True
        assert cursor.index == 0
        assert cursor.camera_id == 'A'
        assert self.timers.last.interval == 0.4

    def test_ticks_cycle_round_robin(self):
        self.scheduler.start()

        seen = []
        for _ in range(4):
            self.timers.last.fire()
            seen.append(self.cursor().camera_id)

        assert seen == ['B', 'C', 'A', 'B']

    def test_camera_under_cursor_goes_offline(self):
        self.scheduler.start()
        self.timers.last.fire()
        assert self.cursor().camera_id == 'B'

        self.store.set_camera_status('B', CameraStatus.OFFLINE)
        self.timers.last.fire()

        # Online list is now [A, C]; index 1 + 1 wraps to 0
        assert self.cursor().camera_id == 'A'
        assert self.cursor().index == 0

    def test_offline_camera_is_skipped(self):
        self.scheduler.start()
        self.store.set_camera_status('B', CameraStatus.OFFLINE)

        self.timers.last.fire()

        assert self.cursor().camera_id == 'C'
        assert self.cursor().index == 1

    def test_start_with_no_online_cameras(self):
        for camera_id in ('A', 'B', 'C'):
            self.store.set_camera_status(camera_id, CameraStatus.OFFLINE)

        assert self.scheduler.start() is False

        cursor = self.cursor()
        assert cursor.enabled is False
        assert cursor.index is None
        assert self.timers.timers == []

    def test_all_cameras_going_offline_parks_cursor(self):
        self.scheduler.start()
        for camera_id in ('A', 'B', 'C'):
            self.store.set_camera_status(camera_id, CameraStatus.OFFLINE)

        self.timers.last.fire()
        cursor = self.cursor()
        assert cursor.enabled is True
        assert cursor.index is None
        assert cursor.camera_id is None

        self.store.set_camera_status('C', CameraStatus.ONLINE)
        self.timers.last.fire()
        assert self.cursor().camera_id == 'C'
        assert self.cursor().index == 0

    def test_stop_is_idempotent(self):
        self.scheduler.start()
        timer = self.timers.last

        self.scheduler.stop()
        self.scheduler.stop()

        assert timer.cancelled is True
        assert self.cursor().enabled is False
        assert self.cursor().camera_id is None
        assert self.scheduler.is_running is False

    def test_stale_tick_after_stop(self):
        self.scheduler.start()
        timer = self.timers.last
        self.scheduler.stop()

        timer.fire()

        assert self.cursor().camera_id is None

    def test_set_interval_restarts_single_timer(self):
        self.scheduler.start()
        first = self.timers.last

        self.scheduler.set_interval(1000)

        assert first.cancelled is True
        assert len(self.timers.live()) == 1
        assert self.timers.last.interval == 1.0
        assert self.store.rotation_cursor().interval_ms == 1000

        # The old timer no longer moves the cursor
        first.fire()
        assert self.cursor().camera_id == 'A'

    def test_set_interval_when_stopped(self):
        self.scheduler.set_interval(250)

        assert self.timers.timers == []
        assert self.scheduler.interval_ms == 250

    def test_restart_keeps_one_timer(self):
        self.scheduler.start()
        self.scheduler.start()

        assert len(self.timers.live()) == 1

    def test_cycle_to_next(self):
        self.scheduler.start()

        assert self.scheduler.cycle_to_next() == 'B'
        assert self.cursor().index == 1

    @pytest.mark.parametrize("interval", [0, -400])
    def test_invalid_interval(self, interval):
        with pytest.raises(ValueError):
            CameraRotationScheduler(self.store, interval_ms=interval)

    def test_cursor_always_names_an_online_camera(self):
        self.scheduler.start()
        statuses = [('A', CameraStatus.OFFLINE), ('C', CameraStatus.ERROR),
                    ('A', CameraStatus.ONLINE), ('B', CameraStatus.OFFLINE)]

        for camera_id, status in statuses:
            self.store.set_camera_status(camera_id, status)
            self.timers.last.fire()
            cursor = self.cursor()
            online = [c.id for c in self.store.online_cameras()]
            assert cursor.camera_id in online
            assert online[cursor.index] == cursor.camera_id
