"""
Main entry point for the edge analytics dashboard core.
"""

import argparse
import asyncio
import random
import signal
import sys
import threading
from typing import Dict, Optional

from src.config.manager import ConfigurationManager, PreferencesStore
from src.config.models import DashboardConfig
from src.data.mock_data import build_mock_dataset
from src.models.core import DataSource
from src.services.connection import ConnectionManager
from src.services.discovery import CameraDiscoveryClient
from src.services.dispatcher import EventDispatcher
from src.services.errors import ConfigurationError
from src.services.interfaces import DataProducer
from src.services.notifications import Notifier
from src.services.rotation import CameraRotationScheduler
from src.services.simulation import SimulationSource
from src.services.store import DashboardDataset, DashboardStore
from src.ui.camera_setup import CameraSetupController
from src.utils.logging import setup_logging, get_logger


MODEL_OPERATIONS = ('toggle_model', 'set_operation_mode')


class HailoDashboard:
    """Dashboard orchestrator.

    Owns the store, both producers and the rotation scheduler. Switching the
    data source always stops the active producer before the new one starts,
    so at most one producer writes to the store at any time.
    """

    def __init__(self, config_manager: Optional[ConfigurationManager] = None,
                 producers: Optional[Dict[DataSource, DataProducer]] = None,
                 rotation: Optional[CameraRotationScheduler] = None):
        self.logger = get_logger(__name__)
        self.config_manager = config_manager or ConfigurationManager()
        self.running = False
        self.config: Optional[DashboardConfig] = None
        self.preferences: Optional[PreferencesStore] = None
        self.store: Optional[DashboardStore] = None
        self.notifier = Notifier()
        self.dispatcher: Optional[EventDispatcher] = None
        self.producers: Dict[DataSource, DataProducer] = producers or {}
        self.rotation = rotation
        self.rng: Optional[random.Random] = None
        self._source_lock = threading.RLock()
        self._active: Optional[DataProducer] = None
        self._unsubscribe = None

    def initialize(self) -> None:
        """Load configuration and preferences and build the components."""
        try:
            self.config = self.config_manager.load_config()
        except ConfigurationError as e:
            self.logger.error("Configuration validation errors:")
            for error in e.errors:
                self.logger.error(f"  - {error}")
            raise

        self.preferences = PreferencesStore(self.config.preferences_path)
        prefs = self.preferences.load()
        if prefs.discovery_url:
            self.config.discovery.base_url = prefs.discovery_url

        self.rng = random.Random(self.config.simulation.seed)
        self.store = DashboardStore(self.config.store)
        self.store.restore_model_config(prefs.model_states(), prefs.current_mode)
        self._unsubscribe = self.store.subscribe(self._on_store_change)

        self.dispatcher = EventDispatcher(self.store, self.notifier)
        self.producers.setdefault(
            DataSource.LIVE,
            ConnectionManager(self.store, self.dispatcher, self.notifier, self.config.connection),
        )
        self.producers.setdefault(
            DataSource.MOCK,
            SimulationSource(self.store, self.config.simulation, rng=self.rng),
        )
        if self.rotation is None:
            self.rotation = CameraRotationScheduler(self.store, self.config.rotation.interval_ms)

        self.logger.info("Dashboard initialization complete")

    @property
    def active_producer(self) -> Optional[DataProducer]:
        with self._source_lock:
            return self._active

    def set_data_source(self, source: DataSource) -> None:
        """Tear down the active producer, load the source's dataset, start its producer."""
        with self._source_lock:
            if self._active is not None and self._active.source == source and self._active.is_active:
                self.logger.debug(f"Data source already {source.value}")
                return

            if self._active is not None:
                self._active.stop()
                self._active = None

            self.store.load_dataset(source, self._dataset_for(source))

            producer = self.producers[source]
            producer.start()
            self._active = producer

            if self.rotation.is_running:
                self.rotation.start()

        self.logger.info(f"Data source set to {source.value}")

    def toggle_mock_data(self) -> DataSource:
        with self._source_lock:
            current = self.store.data_source
            target = DataSource.LIVE if current == DataSource.MOCK else DataSource.MOCK
            self.set_data_source(target)
        return target

    def _dataset_for(self, source: DataSource) -> DashboardDataset:
        if source == DataSource.MOCK:
            return build_mock_dataset(self.rng)
        return self._live_baseline()

    def _live_baseline(self) -> DashboardDataset:
        """Cameras from the persisted selection; everything else starts empty."""
        selected = self.preferences.load().selected_cameras or []
        client = CameraDiscoveryClient(self.config.discovery.base_url, self.config.discovery.timeout_seconds)
        return DashboardDataset(cameras=client.build_cameras(selected))

    def camera_setup(self) -> CameraSetupController:
        """Controller for discovering and selecting cameras on the stream server."""
        discovery = self.config.discovery
        return CameraSetupController(
            self.store, self.preferences, discovery.base_url,
            timeout=discovery.timeout_seconds,
            preview_interval=discovery.preview_interval_seconds,
            thumbnail_interval=discovery.thumbnail_interval_seconds,
        )

    def _on_store_change(self, operation: str) -> None:
        if operation in MODEL_OPERATIONS:
            self.preferences.save_model_config(self.store.model_states(), self.store.current_mode)

    def start(self) -> None:
        """Start the configured producer and, if enabled, camera rotation."""
        self.logger.info("Starting dashboard...")
        self.running = True
        self.set_data_source(DataSource.MOCK if self.config.use_mock_data else DataSource.LIVE)
        if self.config.rotation.autostart:
            self.rotation.start()
        self.logger.info("Dashboard started successfully")

    def stop(self) -> None:
        """Stop rotation and the active producer."""
        self.logger.info("Stopping dashboard...")
        self.running = False
        if self.rotation is not None:
            self.rotation.stop()
        with self._source_lock:
            if self._active is not None:
                self._active.stop()
                self._active = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.logger.info("Dashboard stopped")

    def status_line(self) -> str:
        snapshot = self.store.snapshot()
        online = sum(1 for c in snapshot.cameras if c.is_online)
        unacked = sum(1 for e in snapshot.events if not e.acknowledged)
        people = snapshot.stats.total_people_now if snapshot.stats else len(snapshot.people)
        return (f"source={snapshot.data_source.value} ws={'up' if snapshot.ws_connected else 'down'} "
                f"cameras={online}/{len(snapshot.cameras)} people={people} "
                f"events={len(snapshot.events)} unacked={unacked} mode={snapshot.current_mode} "
                f"rotation={snapshot.rotation.camera_id or '-'}")

    async def run(self) -> None:
        """Main run loop."""
        self.initialize()
        self.start()

        try:
            while self.running:
                self.logger.info(self.status_line())
                await asyncio.sleep(self.config.status_interval)
        except asyncio.CancelledError:
            self.logger.info("Received shutdown signal")
        finally:
            self.stop()


def signal_handler(system: HailoDashboard):
    """Handle shutdown signals."""
    def handler(signum, frame):
        system.running = False
    return handler


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Edge analytics dashboard core")
    parser.add_argument("--config", default="config/dashboard.yaml", help="Path to configuration file")
    parser.add_argument("--ws-url", help="Override the backend WebSocket URL")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--mock", dest="use_mock", action="store_true", default=None,
                        help="Start with simulated data")
    source.add_argument("--live", dest="use_mock", action="store_false",
                        help="Start connected to the live backend")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default="logs/dashboard.log")
    return parser.parse_args(argv)


class _CliConfigManager(ConfigurationManager):
    """Configuration manager that applies command-line overrides after loading."""

    def __init__(self, args: argparse.Namespace):
        super().__init__(args.config)
        self.args = args

    def load_config(self) -> DashboardConfig:
        config = super().load_config()
        if self.args.ws_url:
            config.connection.url = self.args.ws_url
        if self.args.use_mock is not None:
            config.use_mock_data = self.args.use_mock
        return config


async def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(log_level=args.log_level, log_file=args.log_file)
    logger = get_logger(__name__)

    logger.info("Starting Hailo edge analytics dashboard")

    system = HailoDashboard(config_manager=_CliConfigManager(args))

    signal.signal(signal.SIGINT, signal_handler(system))
    signal.signal(signal.SIGTERM, signal_handler(system))

    try:
        await system.run()
    except Exception as e:
        logger.error(f"System error: {e}")
        sys.exit(1)


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
