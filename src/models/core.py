"""
Core data models for the edge analytics dashboard.
Defines the entities streamed from the edge device and the derived UI state.

Wire payloads use camelCase keys; every entity exposes ``from_dict`` for
decoding a payload and ``to_dict`` for the reverse direction.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum


class CameraStatus(Enum):
    """Camera connection status enumeration."""
    ONLINE = "online"
    OFFLINE = "offline"
    ERROR = "error"


class ZoneType(Enum):
    """Zone type enumeration."""
    CROWD = "crowd"
    ENTRY = "entry"
    EXIT = "exit"
    RESTRICTED = "restricted"


class EventType(Enum):
    """Event type enumeration, shared by wire messages and ledger entries."""
    PERSON_DETECTED = "person_detected"
    FALL_DETECTED = "fall_detected"
    LOITER_ALERT = "loiter_alert"
    ZONE_UPDATE = "zone_update"
    CROWD_ALERT = "crowd_alert"


class EventSeverity(Enum):
    """Event severity enumeration."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class ModelStatus(Enum):
    """AI model runtime status."""
    IDLE = "idle"
    RUNNING = "running"
    LOADING = "loading"
    ERROR = "error"


class DataSource(Enum):
    """Which producer feeds the store."""
    LIVE = "live"
    MOCK = "mock"


def _require(data: Dict[str, Any], key: str) -> Any:
    if key not in data or data[key] is None:
        raise KeyError(f"missing required field '{key}'")
    return data[key]


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError(f"expected number, got {value!r}")
    return float(value)


@dataclass
class Camera:
    """Camera registered with the dashboard."""
    id: str
    name: str
    location: str
    stream_url: str
    status: CameraStatus
    resolution: str = "1920x1080"
    fps: float = 30

    @property
    def is_online(self) -> bool:
        return self.status == CameraStatus.ONLINE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Camera':
        return cls(
            id=str(_require(data, 'id')),
            name=str(data.get('name') or data['id']),
            location=str(data.get('location', '')),
            stream_url=str(data.get('streamUrl', '')),
            status=CameraStatus(data.get('status', 'offline')),
            resolution=str(data.get('resolution', '1920x1080')),
            fps=_as_float(data.get('fps', 30)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'location': self.location,
            'streamUrl': self.stream_url,
            'status': self.status.value,
            'resolution': self.resolution,
            'fps': self.fps,
        }


@dataclass
class Point:
    """Normalized (0-1) point on a camera frame."""
    x: float
    y: float

    def to_tuple(self):
        return (self.x, self.y)


@dataclass
class Zone:
    """Polygonal region on one camera's frame."""
    id: str
    name: str
    camera_id: str
    points: List[Point]
    color: str
    type: ZoneType
    max_capacity: Optional[int] = None
    loiter_threshold: Optional[float] = None  # seconds

    def is_active(self) -> bool:
        """Zones with fewer than 3 points are valid but inert."""
        return len(self.points) >= 3

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Zone':
        points = [Point(_as_float(p['x']), _as_float(p['y'])) for p in data.get('points') or []]
        return cls(
            id=str(_require(data, 'id')),
            name=str(data.get('name', data['id'])),
            camera_id=str(_require(data, 'cameraId')),
            points=points,
            color=str(data.get('color', '#00d4ff')),
            type=ZoneType(data.get('type', 'crowd')),
            max_capacity=data.get('maxCapacity'),
            loiter_threshold=data.get('loiterThreshold'),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'id': self.id,
            'name': self.name,
            'cameraId': self.camera_id,
            'points': [{'x': p.x, 'y': p.y} for p in self.points],
            'color': self.color,
            'type': self.type.value,
        }
        if self.max_capacity is not None:
            result['maxCapacity'] = self.max_capacity
        if self.loiter_threshold is not None:
            result['loiterThreshold'] = self.loiter_threshold
        return result


@dataclass
class BoundingBox:
    """Normalized bounding box. Inputs are not guaranteed to be clamped."""
    x: float
    y: float
    width: float
    height: float

    def foot_point(self):
        """Bottom-centre of the box, used for zone membership."""
        return (self.x + self.width / 2, self.y + self.height)

    def center(self):
        return (self.x + self.width / 2, self.y + self.height / 2)


@dataclass
class Keypoint:
    """Named pose keypoint."""
    name: str
    x: float
    y: float
    confidence: float


@dataclass
class Person:
    """A detection track on one camera."""
    id: str
    track_id: str
    camera_id: str
    bbox: BoundingBox
    confidence: float
    timestamp: int  # epoch milliseconds
    zone_id: Optional[str] = None
    keypoints: Optional[List[Keypoint]] = None
    dwell_time: int = 0  # milliseconds
    is_loitering: bool = False
    is_fallen: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Person':
        bbox = _require(data, 'bbox')
        keypoints = data.get('keypoints')
        return cls(
            id=str(_require(data, 'id')),
            track_id=str(data.get('trackId', data['id'])),
            camera_id=str(_require(data, 'cameraId')),
            zone_id=data.get('zoneId'),
            bbox=BoundingBox(
                x=_as_float(bbox['x']),
                y=_as_float(bbox['y']),
                width=_as_float(bbox['width']),
                height=_as_float(bbox['height']),
            ),
            keypoints=[
                Keypoint(str(k['name']), _as_float(k['x']), _as_float(k['y']),
                         _as_float(k.get('confidence', 0.0)))
                for k in keypoints
            ] if keypoints is not None else None,
            confidence=_as_float(data.get('confidence', 0.0)),
            timestamp=int(_require(data, 'timestamp')),
            dwell_time=int(data.get('dwellTime') or 0),
            is_loitering=bool(data.get('isLoitering', False)),
            is_fallen=bool(data.get('isFallen', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'id': self.id,
            'trackId': self.track_id,
            'cameraId': self.camera_id,
            'bbox': {
                'x': self.bbox.x,
                'y': self.bbox.y,
                'width': self.bbox.width,
                'height': self.bbox.height,
            },
            'confidence': self.confidence,
            'timestamp': self.timestamp,
            'dwellTime': self.dwell_time,
            'isLoitering': self.is_loitering,
            'isFallen': self.is_fallen,
        }
        if self.zone_id is not None:
            result['zoneId'] = self.zone_id
        if self.keypoints is not None:
            result['keypoints'] = [
                {'name': k.name, 'x': k.x, 'y': k.y, 'confidence': k.confidence}
                for k in self.keypoints
            ]
        return result


@dataclass
class HailoEvent:
    """Alert/log entry kept in the event ledger."""
    id: str
    type: EventType
    severity: EventSeverity
    camera_id: str
    message: str
    timestamp: int  # epoch milliseconds
    acknowledged: bool = False
    zone_id: Optional[str] = None
    person_id: Optional[str] = None
    snapshot_url: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HailoEvent':
        metadata = data.get('metadata')
        if metadata is not None:
            if not isinstance(metadata, dict):
                raise TypeError("metadata must be an object")
            metadata = {str(k): str(v) for k, v in metadata.items()}
        return cls(
            id=str(_require(data, 'id')),
            type=EventType(_require(data, 'type')),
            severity=EventSeverity(_require(data, 'severity')),
            camera_id=str(_require(data, 'cameraId')),
            zone_id=data.get('zoneId'),
            person_id=data.get('personId'),
            message=str(data.get('message', '')),
            timestamp=int(_require(data, 'timestamp')),
            acknowledged=bool(data.get('acknowledged', False)),
            snapshot_url=data.get('snapshotUrl'),
            metadata=metadata,
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'id': self.id,
            'type': self.type.value,
            'severity': self.severity.value,
            'cameraId': self.camera_id,
            'message': self.message,
            'timestamp': self.timestamp,
            'acknowledged': self.acknowledged,
        }
        for key, value in (('zoneId', self.zone_id), ('personId', self.person_id),
                           ('snapshotUrl', self.snapshot_url), ('metadata', self.metadata)):
            if value is not None:
                result[key] = value
        return result


@dataclass
class ZoneStats:
    """Point-in-time statistics for one zone."""
    zone_id: str
    current_count: int
    max_count: int
    avg_dwell_time: float
    peak_time: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ZoneStats':
        return cls(
            zone_id=str(_require(data, 'zoneId')),
            current_count=int(data.get('currentCount', 0)),
            max_count=int(data.get('maxCount', 0)),
            avg_dwell_time=_as_float(data.get('avgDwellTime', 0)),
            peak_time=str(data.get('peakTime', '')),
        )


@dataclass
class CameraStats:
    """Point-in-time statistics for one camera."""
    camera_id: str
    total_detections: int
    current_people: int
    zones: List[ZoneStats] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CameraStats':
        return cls(
            camera_id=str(_require(data, 'cameraId')),
            total_detections=int(data.get('totalDetections', 0)),
            current_people=int(data.get('currentPeople', 0)),
            zones=[ZoneStats.from_dict(z) for z in data.get('zones') or []],
        )


@dataclass
class DashboardStats:
    """Dashboard-wide statistics snapshot."""
    total_people_now: int
    total_detections_today: int
    alerts_today: int = 0
    critical_alerts_today: int = 0
    falls_detected: int = 0
    loitering_incidents: int = 0
    avg_dwell_time: float = 0
    peak_hour: str = ""
    cameras: List[CameraStats] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DashboardStats':
        return cls(
            total_people_now=int(_require(data, 'totalPeopleNow')),
            total_detections_today=int(_require(data, 'totalDetectionsToday')),
            alerts_today=int(data.get('alertsToday', 0)),
            critical_alerts_today=int(data.get('criticalAlertsToday', 0)),
            falls_detected=int(data.get('fallsDetected', 0)),
            loitering_incidents=int(data.get('loiteringIncidents', 0)),
            avg_dwell_time=_as_float(data.get('avgDwellTime', 0)),
            peak_hour=str(data.get('peakHour', '')),
            cameras=[CameraStats.from_dict(c) for c in data.get('cameras') or []],
        )


@dataclass
class HeatmapPoint:
    """Heatmap intensity sample; value is 0-1."""
    x: float
    y: float
    value: float


@dataclass
class HeatmapData:
    """Heatmap for one camera."""
    camera_id: str
    points: List[HeatmapPoint]
    timestamp: int


@dataclass
class TimeSeriesPoint:
    time: str
    value: float


@dataclass
class ZoneSeries:
    zone_id: str
    zone_name: str
    data: List[TimeSeriesPoint]


@dataclass
class CrowdChartData:
    """Chart series consumed by the analytics view."""
    hourly: List[TimeSeriesPoint] = field(default_factory=list)
    daily: List[TimeSeriesPoint] = field(default_factory=list)
    by_zone: List[ZoneSeries] = field(default_factory=list)


@dataclass
class AIModel:
    """AI model that can run on the edge device."""
    id: str
    name: str
    description: str
    icon: str
    enabled: bool
    fps: Optional[float] = None
    status: ModelStatus = ModelStatus.IDLE


@dataclass
class OperationModeConfig:
    """Preset selecting a set of models."""
    id: str
    name: str
    description: str
    icon: str
    models: List[str]
    alert_level: str


@dataclass
class RotationCursor:
    """Round-robin cursor over the online cameras."""
    enabled: bool = False
    index: Optional[int] = None
    camera_id: Optional[str] = None
    interval_ms: int = 400


@dataclass
class WSMessage:
    """Inbound wire message envelope."""
    type: EventType
    payload: Dict[str, Any]
    timestamp: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WSMessage':
        if not isinstance(data, dict):
            raise TypeError("message must be an object")
        payload = _require(data, 'payload')
        if not isinstance(payload, dict):
            raise TypeError("payload must be an object")
        timestamp = data.get('timestamp')
        return cls(
            type=EventType(_require(data, 'type')),
            payload=payload,
            timestamp=int(timestamp) if timestamp is not None else None,
        )
