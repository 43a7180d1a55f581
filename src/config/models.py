"""
Configuration data models for the edge analytics dashboard.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


DEFAULT_WS_URL = "ws://localhost:3851/ws"
DEFAULT_DISCOVERY_URL = "http://localhost:1984"


@dataclass
class ConnectionConfig:
    """Live backend connection settings."""
    url: str = DEFAULT_WS_URL
    reconnect_delay_ms: int = 3000  # fixed interval, no backoff


@dataclass
class RotationConfig:
    """Camera rotation settings."""
    interval_ms: int = 400  # 400ms per camera = ~2.4s for 6 cameras
    autostart: bool = False


@dataclass
class SimulationConfig:
    """Mock data simulation settings."""
    interval_seconds: float = 1.0
    event_probability: float = 0.15
    seed: Optional[int] = None


@dataclass
class StoreConfig:
    """State store retention settings."""
    event_capacity: int = 100
    # None or 0 disables staleness eviction
    person_ttl_seconds: Optional[float] = 10.0
    event_filter: List[str] = field(
        default_factory=lambda: ['fall_detected', 'loiter_alert', 'crowd_alert']
    )


@dataclass
class DiscoveryConfig:
    """Camera discovery server settings."""
    base_url: str = DEFAULT_DISCOVERY_URL
    timeout_seconds: float = 5.0
    preview_interval_seconds: float = 2.0
    thumbnail_interval_seconds: float = 10.0


@dataclass
class DashboardConfig:
    """Complete dashboard configuration."""
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    rotation: RotationConfig = field(default_factory=RotationConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)

    use_mock_data: bool = True
    preferences_path: str = "config/preferences.yaml"
    status_interval: float = 5.0  # seconds


@dataclass
class ModelPreference:
    """Persisted enablement for one AI model."""
    id: str
    enabled: bool


@dataclass
class UserPreferences:
    """User preferences persisted between runs."""
    selected_cameras: Optional[List[str]] = None
    discovery_url: Optional[str] = None
    models: Optional[List[ModelPreference]] = None
    current_mode: Optional[str] = None

    def model_states(self) -> Dict[str, bool]:
        return {m.id: m.enabled for m in self.models or []}
