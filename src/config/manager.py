"""
Configuration management for the edge analytics dashboard.
Handles loading, validation and saving of the system configuration, and the
small key-value preference file that survives restarts.
"""

import os
import yaml
import json
import logging
from typing import Dict, Any, List, Optional
from dataclasses import asdict

from .models import (
    DashboardConfig,
    ConnectionConfig,
    RotationConfig,
    SimulationConfig,
    StoreConfig,
    DiscoveryConfig,
    ModelPreference,
    UserPreferences,
    DEFAULT_WS_URL,
    DEFAULT_DISCOVERY_URL,
)
from src.models.core import EventType
from src.services.errors import ConfigurationError


logger = logging.getLogger(__name__)


def _is_yaml(path: str) -> bool:
    return path.endswith('.yaml') or path.endswith('.yml')


class ConfigurationManager:
    """Manages dashboard configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager."""
        self.config_path = config_path or "config/dashboard.yaml"
        self._config: Optional[DashboardConfig] = None

    def load_config(self) -> DashboardConfig:
        """Load configuration from file, falling back to defaults if absent."""
        if not os.path.exists(self.config_path):
            logger.info(f"Configuration file not found: {self.config_path}, using defaults")
            self._config = DashboardConfig()
            return self._config

        with open(self.config_path, 'r') as f:
            if _is_yaml(self.config_path):
                config_data = yaml.safe_load(f) or {}
            else:
                config_data = json.load(f)

        self._config = self._parse_config(config_data)

        errors = self.validate_config()
        if errors:
            for error in errors:
                logger.error(f"  - {error}")
            raise ConfigurationError("Invalid configuration", errors)

        return self._config

    def get_config(self) -> DashboardConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            return self.load_config()
        return self._config

    def save_config(self, config: DashboardConfig) -> None:
        """Save configuration to file."""
        config_data = asdict(config)

        directory = os.path.dirname(self.config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(self.config_path, 'w') as f:
            if _is_yaml(self.config_path):
                yaml.dump(config_data, f, default_flow_style=False, indent=2)
            else:
                json.dump(config_data, f, indent=2, default=str)

        self._config = config

    def _parse_config(self, config_data: Dict[str, Any]) -> DashboardConfig:
        """Parse configuration data into a DashboardConfig object."""
        conn_data = config_data.get('connection', {})
        connection = ConnectionConfig(
            url=conn_data.get('url', DEFAULT_WS_URL),
            reconnect_delay_ms=conn_data.get('reconnect_delay_ms', 3000)
        )

        rot_data = config_data.get('rotation', {})
        rotation = RotationConfig(
            interval_ms=rot_data.get('interval_ms', 400),
            autostart=rot_data.get('autostart', False)
        )

        sim_data = config_data.get('simulation', {})
        simulation = SimulationConfig(
            interval_seconds=sim_data.get('interval_seconds', 1.0),
            event_probability=sim_data.get('event_probability', 0.15),
            seed=sim_data.get('seed')
        )

        store_data = config_data.get('store', {})
        store = StoreConfig(
            event_capacity=store_data.get('event_capacity', 100),
            person_ttl_seconds=store_data.get('person_ttl_seconds', 10.0)
        )
        if 'event_filter' in store_data:
            store.event_filter = list(store_data['event_filter'])

        disc_data = config_data.get('discovery', {})
        discovery = DiscoveryConfig(
            base_url=disc_data.get('base_url', DEFAULT_DISCOVERY_URL),
            timeout_seconds=disc_data.get('timeout_seconds', 5.0),
            preview_interval_seconds=disc_data.get('preview_interval_seconds', 2.0),
            thumbnail_interval_seconds=disc_data.get('thumbnail_interval_seconds', 10.0)
        )

        return DashboardConfig(
            connection=connection,
            rotation=rotation,
            simulation=simulation,
            store=store,
            discovery=discovery,
            use_mock_data=config_data.get('use_mock_data', True),
            preferences_path=config_data.get('preferences_path', 'config/preferences.yaml'),
            status_interval=config_data.get('status_interval', 5.0)
        )

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []
        config = self.get_config()

        if not config.connection.url.startswith(('ws://', 'wss://')):
            errors.append(f"Connection URL must be a ws:// or wss:// URL: {config.connection.url}")

        if config.connection.reconnect_delay_ms <= 0:
            errors.append("Reconnect delay must be positive")

        if config.rotation.interval_ms <= 0:
            errors.append("Rotation interval must be positive")

        if config.simulation.interval_seconds <= 0:
            errors.append("Simulation interval must be positive")

        if not 0.0 <= config.simulation.event_probability <= 1.0:
            errors.append("Simulation event probability must be between 0 and 1")

        if config.store.event_capacity <= 0:
            errors.append("Event capacity must be positive")

        if config.store.person_ttl_seconds is not None and config.store.person_ttl_seconds < 0:
            errors.append("Person TTL must not be negative")

        known_types = {t.value for t in EventType}
        for event_type in config.store.event_filter:
            if event_type not in known_types:
                errors.append(f"Event filter references unknown event type {event_type}")

        if not config.discovery.base_url.startswith(('http://', 'https://')):
            errors.append(f"Discovery URL must be an http(s) URL: {config.discovery.base_url}")

        return errors


class PreferencesStore:
    """Key-value preferences persisted to a YAML file.

    A missing file or a missing key means "use the default"; unreadable files
    are logged and treated as empty.
    """

    def __init__(self, path: str = "config/preferences.yaml"):
        self.path = path

    def load(self) -> UserPreferences:
        data = self._read()
        model_config = data.get('model_config') or {}

        models = None
        if 'models' in model_config:
            models = [
                ModelPreference(id=str(m['id']), enabled=bool(m['enabled']))
                for m in model_config['models']
                if isinstance(m, dict) and 'id' in m and 'enabled' in m
            ]

        selected = data.get('selected_cameras')
        return UserPreferences(
            selected_cameras=[str(s) for s in selected] if selected is not None else None,
            discovery_url=data.get('discovery_url'),
            models=models,
            current_mode=model_config.get('current_mode'),
        )

    def save_selected_cameras(self, camera_ids: List[str]) -> None:
        self._update({'selected_cameras': list(camera_ids)})

    def save_discovery_url(self, url: str) -> None:
        self._update({'discovery_url': url})

    def save_model_config(self, model_states: Dict[str, bool], current_mode: str) -> None:
        self._update({
            'model_config': {
                'models': [{'id': mid, 'enabled': enabled} for mid, enabled in model_states.items()],
                'current_mode': current_mode,
            }
        })

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to read preferences from {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed preferences file {self.path}")
            return {}
        return data

    def _update(self, values: Dict[str, Any]) -> None:
        data = self._read()
        data.update(values)

        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(self.path, 'w') as f:
            yaml.safe_dump(data, f, default_flow_style=False, indent=2)

        logger.debug(f"Saved preferences {list(values)} to {self.path}")
