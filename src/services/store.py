"""
State store for the edge analytics dashboard.

The store is the single source of truth for cameras, zones, people, events,
statistics and UI flags. Every mutation goes through a named method that
holds the store lock for its whole duration, so readers never observe a
half-applied change. Listeners registered with ``subscribe`` are called
with the operation name once the operation has been applied.
"""

import copy
import logging
from contextlib import contextmanager
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Optional

from src.config.models import StoreConfig
from src.models.catalog import CUSTOM_MODE, DEFAULT_MODE, default_models, get_operation_mode
from src.models.core import (
    AIModel,
    Camera,
    CameraStatus,
    CrowdChartData,
    DashboardStats,
    DataSource,
    EventType,
    HailoEvent,
    HeatmapData,
    ModelStatus,
    Person,
    RotationCursor,
    Zone,
)
from src.services.event_ledger import EventLedger
from src.services.zone_aggregator import ZoneAggregator, ZoneOccupancy


logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "unknown"

Listener = Callable[[str], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class DashboardDataset:
    """A complete set of entity collections loaded when switching producers."""
    cameras: List[Camera] = field(default_factory=list)
    zones: List[Zone] = field(default_factory=list)
    people: List[Person] = field(default_factory=list)
    events: List[HailoEvent] = field(default_factory=list)  # newest first
    stats: Optional[DashboardStats] = None
    heatmaps: Dict[str, HeatmapData] = field(default_factory=dict)
    chart_data: Optional[CrowdChartData] = None


@dataclass
class DashboardSnapshot:
    """Immutable-by-convention copy of the store state for readers."""
    cameras: List[Camera]
    zones: List[Zone]
    people: List[Person]
    events: List[HailoEvent]
    stats: Optional[DashboardStats]
    heatmaps: Dict[str, HeatmapData]
    chart_data: Optional[CrowdChartData]
    data_source: DataSource
    ws_connected: bool
    selected_camera: Optional[str]
    selected_zone: Optional[str]
    is_live_mode: bool
    show_heatmap: bool
    show_skeletons: bool
    show_zones: bool
    event_filter: List[str]
    rotation: RotationCursor
    models: List[AIModel]
    current_mode: str


class DashboardStore:
    """Thread-safe container for all dashboard state."""

    def __init__(self, config: Optional[StoreConfig] = None,
                 clock: Optional[Callable[[], int]] = None,
                 data_source: DataSource = DataSource.MOCK):
        self.config = config or StoreConfig()
        self._clock = clock or _now_ms
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._aggregator = ZoneAggregator()

        # Data
        self._cameras: List[Camera] = []
        self._zones: List[Zone] = []
        self._people: Dict[str, Person] = {}
        self._ledger = EventLedger(self.config.event_capacity)
        self._stats: Optional[DashboardStats] = None
        self._heatmaps: Dict[str, HeatmapData] = {}
        self._chart_data: Optional[CrowdChartData] = None

        # UI state
        self._data_source = data_source
        self._ws_connected = False
        self._selected_camera: Optional[str] = None
        self._selected_zone: Optional[str] = None
        self._is_live_mode = True
        self._show_heatmap = False
        self._show_skeletons = True
        self._show_zones = True
        self._event_filter: List[str] = list(self.config.event_filter)

        # Rotation cursor, written only by the rotation scheduler
        self._rotation = RotationCursor()

        # AI models
        self._models: List[AIModel] = default_models()
        self._current_mode = DEFAULT_MODE

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def _notify(self, operation: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(operation)
            except Exception as e:
                logger.error(f"Store listener failed on {operation}: {e}")

    @contextmanager
    def transaction(self):
        """Hold the store lock across several operations so they apply as one."""
        with self._lock:
            yield self

    def snapshot(self) -> DashboardSnapshot:
        """Deep copy of the current state, after evicting stale people."""
        self.sweep_stale_people()
        with self._lock:
            return copy.deepcopy(DashboardSnapshot(
                cameras=self._cameras,
                zones=self._zones,
                people=list(self._people.values()),
                events=self._ledger.events(),
                stats=self._stats,
                heatmaps=self._heatmaps,
                chart_data=self._chart_data,
                data_source=self._data_source,
                ws_connected=self._ws_connected,
                selected_camera=self._selected_camera,
                selected_zone=self._selected_zone,
                is_live_mode=self._is_live_mode,
                show_heatmap=self._show_heatmap,
                show_skeletons=self._show_skeletons,
                show_zones=self._show_zones,
                event_filter=self._event_filter,
                rotation=self._rotation,
                models=self._models,
                current_mode=self._current_mode,
            ))

    # ------------------------------------------------------------------
    # Data source
    # ------------------------------------------------------------------

    @property
    def data_source(self) -> DataSource:
        with self._lock:
            return self._data_source

    def load_dataset(self, source: DataSource, dataset: DashboardDataset) -> None:
        """Replace every entity collection and the data-source flag in one step."""
        with self._lock:
            self._data_source = source
            self._cameras = list(dataset.cameras)
            self._zones = list(dataset.zones)
            self._people = {p.id: p for p in dataset.people}
            self._ledger.replace_all(dataset.events)
            self._stats = dataset.stats
            self._heatmaps = dict(dataset.heatmaps)
            self._chart_data = dataset.chart_data
            if self._selected_camera is not None and \
                    all(c.id != self._selected_camera for c in self._cameras):
                self._selected_camera = None
            if self._selected_zone is not None and \
                    all(z.id != self._selected_zone for z in self._zones):
                self._selected_zone = None
        logger.info(f"Loaded {source.value} dataset: {len(dataset.cameras)} cameras, "
                    f"{len(dataset.zones)} zones, {len(dataset.people)} people")
        self._notify('load_dataset')

    # ------------------------------------------------------------------
    # Cameras
    # ------------------------------------------------------------------

    def set_cameras(self, cameras: Iterable[Camera]) -> None:
        with self._lock:
            self._cameras = list(cameras)
        self._notify('set_cameras')

    def set_camera_status(self, camera_id: str, status: CameraStatus) -> bool:
        with self._lock:
            for i, camera in enumerate(self._cameras):
                if camera.id == camera_id:
                    self._cameras[i] = replace(camera, status=status)
                    break
            else:
                logger.debug(f"Ignoring status update for unknown camera {camera_id}")
                return False
        self._notify('set_camera_status')
        return True

    def get_cameras(self) -> List[Camera]:
        with self._lock:
            return list(self._cameras)

    def online_cameras(self) -> List[Camera]:
        """Cameras currently eligible for rotation, in collection order."""
        with self._lock:
            return [c for c in self._cameras if c.is_online]

    def camera_name(self, camera_id: Optional[str]) -> str:
        with self._lock:
            for camera in self._cameras:
                if camera.id == camera_id:
                    return camera.name
        return UNKNOWN_LABEL

    # ------------------------------------------------------------------
    # Zones
    # ------------------------------------------------------------------

    def set_zones(self, zones: Iterable[Zone]) -> None:
        with self._lock:
            self._zones = list(zones)
        self._notify('set_zones')

    def add_zone(self, zone: Zone) -> None:
        with self._lock:
            for i, existing in enumerate(self._zones):
                if existing.id == zone.id:
                    logger.warning(f"Zone {zone.id} already exists, replacing it")
                    self._zones[i] = zone
                    break
            else:
                self._zones.append(zone)
        self._notify('add_zone')

    def update_zone(self, zone: Zone) -> bool:
        with self._lock:
            for i, existing in enumerate(self._zones):
                if existing.id == zone.id:
                    self._zones[i] = zone
                    break
            else:
                logger.debug(f"Ignoring update of unknown zone {zone.id}")
                return False
        self._notify('update_zone')
        return True

    def delete_zone(self, zone_id: str) -> bool:
        """Drop a zone. People and events that reference it are left untouched."""
        with self._lock:
            remaining = [z for z in self._zones if z.id != zone_id]
            if len(remaining) == len(self._zones):
                return False
            self._zones = remaining
            if self._selected_zone == zone_id:
                self._selected_zone = None
        self._notify('delete_zone')
        return True

    def get_zones(self) -> List[Zone]:
        with self._lock:
            return list(self._zones)

    def zone_name(self, zone_id: Optional[str]) -> str:
        with self._lock:
            for zone in self._zones:
                if zone.id == zone_id:
                    return zone.name
        return UNKNOWN_LABEL

    def zone_occupancy(self) -> Dict[str, ZoneOccupancy]:
        """Per-zone occupancy derived from the current zones and live people."""
        self.sweep_stale_people()
        with self._lock:
            zones = list(self._zones)
            people = list(self._people.values())
        return self._aggregator.compute_occupancy(zones, people)

    # ------------------------------------------------------------------
    # People
    # ------------------------------------------------------------------

    def set_people(self, people: Iterable[Person]) -> None:
        with self._lock:
            self._people = {p.id: p for p in people}
        self._notify('set_people')

    def upsert_person(self, person: Person) -> None:
        """Insert a person or replace the existing entry with the same id."""
        with self._lock:
            self._people[person.id] = person
        self._notify('upsert_person')

    def update_people(self, update: Callable[[Person], Person]) -> None:
        """Apply ``update`` to every person as one atomic step."""
        with self._lock:
            self._people = {pid: update(p) for pid, p in self._people.items()}
        self._notify('update_people')

    def get_people(self, now_ms: Optional[int] = None) -> List[Person]:
        """Current people, evicting entries older than the staleness TTL first."""
        self.sweep_stale_people(now_ms)
        with self._lock:
            return list(self._people.values())

    def sweep_stale_people(self, now_ms: Optional[int] = None) -> List[str]:
        """Drop people whose last update is older than ``person_ttl_seconds``."""
        ttl = self.config.person_ttl_seconds
        if not ttl:
            return []
        now_ms = self._clock() if now_ms is None else now_ms
        cutoff = now_ms - int(ttl * 1000)
        with self._lock:
            stale = [pid for pid, p in self._people.items() if p.timestamp < cutoff]
            for pid in stale:
                del self._people[pid]
        if stale:
            logger.debug(f"Evicted {len(stale)} stale people")
            self._notify('sweep_stale_people')
        return stale

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event(self, event: HailoEvent) -> None:
        with self._lock:
            self._ledger.add(event)
        self._notify('add_event')

    def acknowledge_event(self, event_id: str) -> bool:
        with self._lock:
            changed = self._ledger.acknowledge(event_id)
        if changed:
            self._notify('acknowledge_event')
        return changed

    def get_events(self) -> List[HailoEvent]:
        with self._lock:
            return self._ledger.events()

    def filtered_events(self) -> List[HailoEvent]:
        with self._lock:
            return self._ledger.filter_by_type(self._event_filter)

    def event_counts(self) -> Dict[str, int]:
        with self._lock:
            return self._ledger.counts_by_type()

    def set_event_filter(self, event_types: Iterable[str]) -> None:
        with self._lock:
            self._event_filter = [EventType(t).value for t in event_types]
        self._notify('set_event_filter')

    def toggle_event_filter(self, event_type: str) -> None:
        value = EventType(event_type).value
        with self._lock:
            if value in self._event_filter:
                self._event_filter = [t for t in self._event_filter if t != value]
            else:
                self._event_filter = self._event_filter + [value]
        self._notify('set_event_filter')

    # ------------------------------------------------------------------
    # Stats, heatmaps, charts
    # ------------------------------------------------------------------

    def set_stats(self, stats: DashboardStats) -> None:
        with self._lock:
            self._stats = stats
        self._notify('set_stats')

    def adjust_stats(self, people_delta: int = 0, detections_delta: int = 0) -> None:
        """Incrementally perturb the live counters; no-op without stats."""
        with self._lock:
            if self._stats is None:
                return
            self._stats = replace(
                self._stats,
                total_people_now=max(0, self._stats.total_people_now + people_delta),
                total_detections_today=self._stats.total_detections_today + detections_delta,
            )
        self._notify('adjust_stats')

    def get_stats(self) -> Optional[DashboardStats]:
        with self._lock:
            return self._stats

    def set_heatmap(self, camera_id: str, data: HeatmapData) -> None:
        with self._lock:
            self._heatmaps = {**self._heatmaps, camera_id: data}
        self._notify('set_heatmap')

    def get_heatmap(self, camera_id: str) -> Optional[HeatmapData]:
        with self._lock:
            return self._heatmaps.get(camera_id)

    def set_chart_data(self, data: CrowdChartData) -> None:
        with self._lock:
            self._chart_data = data
        self._notify('set_chart_data')

    def get_chart_data(self) -> Optional[CrowdChartData]:
        with self._lock:
            return self._chart_data

    # ------------------------------------------------------------------
    # UI flags
    # ------------------------------------------------------------------

    @property
    def ws_connected(self) -> bool:
        with self._lock:
            return self._ws_connected

    def set_ws_connected(self, connected: bool) -> None:
        with self._lock:
            if self._ws_connected == connected:
                return
            self._ws_connected = connected
        self._notify('set_ws_connected')

    def set_selected_camera(self, camera_id: Optional[str]) -> None:
        with self._lock:
            self._selected_camera = camera_id
        self._notify('set_selected_camera')

    def set_selected_zone(self, zone_id: Optional[str]) -> None:
        with self._lock:
            self._selected_zone = zone_id
        self._notify('set_selected_zone')

    def toggle_live_mode(self) -> bool:
        return self._toggle('_is_live_mode', 'toggle_live_mode')

    def toggle_heatmap(self) -> bool:
        return self._toggle('_show_heatmap', 'toggle_heatmap')

    def toggle_skeletons(self) -> bool:
        return self._toggle('_show_skeletons', 'toggle_skeletons')

    def toggle_zones(self) -> bool:
        return self._toggle('_show_zones', 'toggle_zones')

    def _toggle(self, attribute: str, operation: str) -> bool:
        with self._lock:
            value = not getattr(self, attribute)
            setattr(self, attribute, value)
        self._notify(operation)
        return value

    # ------------------------------------------------------------------
    # Rotation cursor
    # ------------------------------------------------------------------

    def rotation_cursor(self) -> RotationCursor:
        with self._lock:
            return replace(self._rotation)

    def set_rotation_cursor(self, enabled: bool, index: Optional[int], camera_id: Optional[str]) -> None:
        with self._lock:
            self._rotation = replace(self._rotation, enabled=enabled, index=index, camera_id=camera_id)
        self._notify('set_rotation_cursor')

    def set_rotation_interval(self, interval_ms: int) -> None:
        with self._lock:
            self._rotation = replace(self._rotation, interval_ms=interval_ms)
        self._notify('set_rotation_interval')

    def reset_rotation_cursor(self) -> None:
        self.set_rotation_cursor(False, None, None)

    # ------------------------------------------------------------------
    # AI models
    # ------------------------------------------------------------------

    @property
    def current_mode(self) -> str:
        with self._lock:
            return self._current_mode

    def get_models(self) -> List[AIModel]:
        with self._lock:
            return [replace(m) for m in self._models]

    def get_active_models(self) -> List[AIModel]:
        with self._lock:
            return [replace(m) for m in self._models if m.enabled]

    def model_states(self) -> Dict[str, bool]:
        with self._lock:
            return {m.id: m.enabled for m in self._models}

    def toggle_model(self, model_id: str) -> bool:
        """Flip one model and leave any preset for the custom mode."""
        with self._lock:
            for i, model in enumerate(self._models):
                if model.id == model_id:
                    self._models[i] = replace(model, enabled=not model.enabled)
                    self._current_mode = CUSTOM_MODE
                    break
            else:
                logger.warning(f"Ignoring toggle of unknown model {model_id}")
                return False
        self._notify('toggle_model')
        return True

    def set_model_status(self, model_id: str, status: ModelStatus, fps: Optional[float] = None) -> None:
        with self._lock:
            for i, model in enumerate(self._models):
                if model.id == model_id:
                    if status == ModelStatus.IDLE:
                        new_fps = None
                    else:
                        new_fps = fps if fps is not None else model.fps
                    self._models[i] = replace(model, status=status, fps=new_fps)
                    break
            else:
                return
        self._notify('set_model_status')

    def set_operation_mode(self, mode_id: str) -> bool:
        """Enable exactly the models of a preset.

        Selecting the custom mode only relabels; the current toggles are kept.
        """
        mode = get_operation_mode(mode_id)
        if mode is None:
            logger.warning(f"Ignoring unknown operation mode {mode_id}")
            return False

        with self._lock:
            self._current_mode = mode.id
            if mode.id != CUSTOM_MODE:
                self._models = [replace(m, enabled=m.id in mode.models) for m in self._models]
        self._notify('set_operation_mode')
        return True

    def restore_model_config(self, model_states: Dict[str, bool], current_mode: Optional[str]) -> None:
        """Seed models from persisted preferences."""
        if current_mode and current_mode != CUSTOM_MODE and get_operation_mode(current_mode):
            self.set_operation_mode(current_mode)
            return
        if not model_states:
            return
        with self._lock:
            self._models = [
                replace(m, enabled=model_states.get(m.id, m.enabled)) for m in self._models
            ]
            self._current_mode = CUSTOM_MODE
        self._notify('restore_model_config')
