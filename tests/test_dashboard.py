"""
Integration tests for the dashboard orchestrator.
"""

import threading

import pytest
import yaml

from src.config.manager import ConfigurationManager, PreferencesStore
from src.main import HailoDashboard, parse_args
from src.models.core import DataSource
from src.services.connection import ConnectionManager
from src.services.interfaces import DataProducer
from src.services.simulation import SimulationSource


class RecordingProducer(DataProducer):
    """Producer that records lifecycle calls into a shared journal."""

    def __init__(self, source, journal):
        self.source = source
        self.journal = journal
        self._active = False

    @property
    def is_active(self):
        return self._active

    def start(self):
        self.journal.append(('start', self.source))
        self._active = True

    def stop(self):
        self.journal.append(('stop', self.source))
        self._active = False


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "dashboard.yaml"
    path.write_text(yaml.safe_dump({
        'use_mock_data': True,
        'preferences_path': str(tmp_path / "preferences.yaml"),
        'simulation': {'seed': 5},
        'store': {'person_ttl_seconds': None},
    }))
    return path


@pytest.fixture
def journal():
    return []


@pytest.fixture
def dashboard(config_path, journal):
    producers = {
        DataSource.LIVE: RecordingProducer(DataSource.LIVE, journal),
        DataSource.MOCK: RecordingProducer(DataSource.MOCK, journal),
    }
    system = HailoDashboard(ConfigurationManager(str(config_path)), producers=producers)
    system.initialize()
    yield system
    system.stop()


def active_sources(dashboard):
    return [s for s, p in dashboard.producers.items() if p.is_active]


class TestDataSourceTransitions:
    """Test that exactly one producer runs at a time."""

    def test_start_uses_configured_source(self, dashboard, journal):
        dashboard.start()

        assert dashboard.store.data_source == DataSource.MOCK
        assert journal == [('start', DataSource.MOCK)]
        assert len(dashboard.store.get_cameras()) == 6

    def test_toggle_stops_before_starting(self, dashboard, journal):
        dashboard.start()

        assert dashboard.toggle_mock_data() == DataSource.LIVE
        assert journal[-2:] == [('stop', DataSource.MOCK), ('start', DataSource.LIVE)]
        assert active_sources(dashboard) == [DataSource.LIVE]

        assert dashboard.toggle_mock_data() == DataSource.MOCK
        assert active_sources(dashboard) == [DataSource.MOCK]

    def test_repeated_toggles_keep_one_producer(self, dashboard):
        dashboard.start()
        for _ in range(7):
            dashboard.toggle_mock_data()
            assert len(active_sources(dashboard)) == 1
            assert dashboard.active_producer.source == dashboard.store.data_source

    def test_setting_current_source_is_noop(self, dashboard, journal):
        dashboard.start()
        dashboard.set_data_source(DataSource.MOCK)

        assert journal == [('start', DataSource.MOCK)]

    def test_live_baseline_uses_saved_cameras(self, dashboard, tmp_path):
        dashboard.preferences.save_selected_cameras(['front_door'])
        dashboard.start()

        dashboard.set_data_source(DataSource.LIVE)

        snapshot = dashboard.store.snapshot()
        assert [c.id for c in snapshot.cameras] == ['front_door']
        assert snapshot.cameras[0].stream_url == 'http://localhost:1984/api/frame.jpeg?src=front_door'
        assert snapshot.people == []
        assert snapshot.events == []
        assert snapshot.stats is None

    def test_concurrent_toggles_each_flip_the_source(self, dashboard, journal):
        dashboard.start()
        targets = []

        def toggle_many():
            for _ in range(10):
                targets.append(dashboard.toggle_mock_data())

        threads = [threading.Thread(target=toggle_many) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(5)

        assert targets.count(DataSource.LIVE) == 10
        assert targets.count(DataSource.MOCK) == 10
        assert dashboard.store.data_source == DataSource.MOCK
        assert active_sources(dashboard) == [DataSource.MOCK]
        starts = [source for action, source in journal if action == 'start']
        assert len(starts) == 21
        assert all(a != b for a, b in zip(starts, starts[1:]))

    def test_stop_stops_active_producer(self, dashboard, journal):
        dashboard.start()
        dashboard.stop()

        assert journal[-1] == ('stop', DataSource.MOCK)
        assert active_sources(dashboard) == []


class TestModelPreferences:
    """Test that model choices persist across runs."""

    def test_model_changes_are_saved(self, dashboard, config_path):
        dashboard.store.set_operation_mode('performance')
        dashboard.store.toggle_model('pose')

        prefs = dashboard.preferences.load()
        assert prefs.current_mode == 'custom'
        assert prefs.model_states()['pose'] is True
        assert prefs.model_states()['yolo'] is True
        assert prefs.model_states()['face'] is False

    def test_saved_models_are_restored(self, config_path, tmp_path, journal):
        PreferencesStore(str(tmp_path / "preferences.yaml")).save_model_config(
            {'yolo': False, 'pose': False, 'face': True, 'lpr': False}, 'custom'
        )
        system = HailoDashboard(ConfigurationManager(str(config_path)),
                                producers={DataSource.MOCK: RecordingProducer(DataSource.MOCK, journal)})
        system.initialize()

        assert [m.id for m in system.store.get_active_models()] == ['face']
        assert system.store.current_mode == 'custom'


class TestDefaultComponents:
    """Test the components built when none are injected."""

    def test_default_producers(self, config_path):
        system = HailoDashboard(ConfigurationManager(str(config_path)))
        system.initialize()

        assert isinstance(system.producers[DataSource.LIVE], ConnectionManager)
        assert isinstance(system.producers[DataSource.MOCK], SimulationSource)
        assert system.rotation.interval_ms == 400

    def test_camera_setup_uses_discovery_config(self, dashboard):
        controller = dashboard.camera_setup()

        assert controller.base_url == 'http://localhost:1984'
        assert controller.preview_interval == 2.0
        assert controller.thumbnail_interval == 10.0

    def test_status_line(self, dashboard):
        dashboard.start()

        line = dashboard.status_line()
        assert 'source=mock' in line
        assert 'cameras=5/6' in line


class TestCommandLine:

    def test_defaults(self):
        args = parse_args([])

        assert args.config == "config/dashboard.yaml"
        assert args.use_mock is None
        assert args.log_level == "INFO"

    def test_live_flag(self):
        args = parse_args(["--live", "--ws-url", "ws://edge:3851/ws"])

        assert args.use_mock is False
        assert args.ws_url == "ws://edge:3851/ws"
