"""
Synthetic dashboard dataset used in mock mode.
"""

import random
import time
from typing import Dict, List, Optional

from src.models.core import (
    BoundingBox,
    Camera,
    CameraStats,
    CameraStatus,
    CrowdChartData,
    DashboardStats,
    EventSeverity,
    EventType,
    HailoEvent,
    HeatmapData,
    HeatmapPoint,
    Keypoint,
    Person,
    Point,
    TimeSeriesPoint,
    Zone,
    ZoneSeries,
    ZoneStats,
    ZoneType,
)
from src.services.store import DashboardDataset


def mock_cameras() -> List[Camera]:
    def cam(cid, name, location, status=CameraStatus.ONLINE, resolution='1920x1080', fps=30):
        return Camera(cid, name, location, f'/streams/{cid}/stream.mjpeg', status, resolution, fps)

    return [
        cam('cam-01', 'Main Entrance', 'Building A - Front'),
        cam('cam-02', 'Lobby', 'Building A - Ground Floor'),
        cam('cam-03', 'Cafeteria', 'Building A - Floor 1', fps=25),
        cam('cam-04', 'Parking Lot', 'External - North', resolution='2560x1440'),
        cam('cam-05', 'Loading Dock', 'Building B - Rear', status=CameraStatus.OFFLINE),
        cam('cam-06', 'Stairwell A', 'Building A - Central', resolution='1280x720', fps=20),
    ]


def _rect(x1, y1, x2, y2) -> List[Point]:
    return [Point(x1, y1), Point(x2, y1), Point(x2, y2), Point(x1, y2)]


def mock_zones() -> List[Zone]:
    return [
        Zone('zone-01', 'Entry Queue', 'cam-01', _rect(0.1, 0.3, 0.5, 0.9), '#00d4ff',
             ZoneType.ENTRY, max_capacity=20, loiter_threshold=60),
        Zone('zone-02', 'Reception Desk', 'cam-02', _rect(0.3, 0.2, 0.7, 0.6), '#ff9500',
             ZoneType.CROWD, max_capacity=10, loiter_threshold=120),
        Zone('zone-03', 'Seating Area', 'cam-03', _rect(0.05, 0.1, 0.95, 0.85), '#00ff88',
             ZoneType.CROWD, max_capacity=50),
        Zone('zone-04', 'Restricted Area', 'cam-04', _rect(0.6, 0.5, 0.95, 0.95), '#ff3b3b',
             ZoneType.RESTRICTED, loiter_threshold=30),
        Zone('zone-05', 'Exit Gate', 'cam-01', _rect(0.6, 0.3, 0.9, 0.9), '#9945ff',
             ZoneType.EXIT, max_capacity=15),
    ]


# (name, dx, dy, confidence) offsets from the bbox origin
_SKELETON = [
    ('nose', 0.04, 0.02, 0.95), ('left_eye', 0.035, 0.015, 0.92), ('right_eye', 0.045, 0.015, 0.91),
    ('left_shoulder', 0.02, 0.05, 0.88), ('right_shoulder', 0.06, 0.05, 0.89),
    ('left_elbow', 0.01, 0.08, 0.82), ('right_elbow', 0.07, 0.08, 0.84),
    ('left_wrist', 0.005, 0.11, 0.78), ('right_wrist', 0.075, 0.11, 0.76),
    ('left_hip', 0.025, 0.1, 0.85), ('right_hip', 0.055, 0.1, 0.86),
    ('left_knee', 0.02, 0.14, 0.8), ('right_knee', 0.06, 0.14, 0.81),
    ('left_ankle', 0.02, 0.18, 0.75), ('right_ankle', 0.06, 0.18, 0.74),
]


def generate_mock_person(index: int, camera_id: str, zone_id: Optional[str],
                         rng: random.Random, now_ms: int) -> Person:
    base_x = rng.random() * 0.8 + 0.1
    base_y = rng.random() * 0.6 + 0.2
    return Person(
        id=f'person-{index}',
        track_id=f'track-{index}',
        camera_id=camera_id,
        zone_id=zone_id,
        bbox=BoundingBox(base_x, base_y, 0.08 + rng.random() * 0.04, 0.15 + rng.random() * 0.1),
        keypoints=[Keypoint(name, base_x + dx, base_y + dy, conf) for name, dx, dy, conf in _SKELETON],
        confidence=0.85 + rng.random() * 0.15,
        timestamp=now_ms,
        dwell_time=int(rng.random() * 300000),
        is_loitering=rng.random() > 0.85,
        is_fallen=rng.random() > 0.98,
    )


def mock_people(rng: random.Random, now_ms: int) -> List[Person]:
    people = []
    for i in range(5):
        people.append(generate_mock_person(i, 'cam-01', 'zone-01' if i % 2 == 0 else 'zone-05', rng, now_ms))
    for i in range(8):
        people.append(generate_mock_person(i + 5, 'cam-02', 'zone-02', rng, now_ms))
    for i in range(15):
        people.append(generate_mock_person(i + 13, 'cam-03', 'zone-03', rng, now_ms))
    for i in range(3):
        people.append(generate_mock_person(i + 28, 'cam-04', 'zone-04', rng, now_ms))
    for i in range(2):
        people.append(generate_mock_person(i + 31, 'cam-06', None, rng, now_ms))
    return people


def mock_events(now_ms: int) -> List[HailoEvent]:
    """Seed events, newest first."""
    E, S = EventType, EventSeverity
    return [
        HailoEvent('evt-001', E.FALL_DETECTED, S.CRITICAL, 'cam-06',
                   'Fall detected in Stairwell A - Person appears to have fallen', now_ms - 180000,
                   person_id='person-31', snapshot_url='/snapshots/fall-001.jpg',
                   metadata={'confidence': '0.94', 'duration_ms': '2500'}),
        HailoEvent('evt-002', E.LOITER_ALERT, S.WARNING, 'cam-04',
                   'Loitering detected in Restricted Area - 2m 15s duration', now_ms - 300000,
                   zone_id='zone-04', person_id='person-28', snapshot_url='/snapshots/loiter-001.jpg',
                   metadata={'duration_seconds': '135', 'threshold': '30'}),
        HailoEvent('evt-003', E.CROWD_ALERT, S.WARNING, 'cam-03',
                   'Crowd density warning - Cafeteria at 80% capacity', now_ms - 600000,
                   acknowledged=True, zone_id='zone-03',
                   metadata={'currentCount': '40', 'maxCapacity': '50', 'percentage': '80'}),
        HailoEvent('evt-004', E.LOITER_ALERT, S.CRITICAL, 'cam-01',
                   'Extended loitering at Entry Queue - 5m 30s duration', now_ms - 900000,
                   acknowledged=True, zone_id='zone-01', person_id='person-02',
                   snapshot_url='/snapshots/loiter-002.jpg',
                   metadata={'duration_seconds': '330', 'threshold': '60'}),
        HailoEvent('evt-005', E.PERSON_DETECTED, S.INFO, 'cam-04',
                   'Person entered Restricted Area', now_ms - 1200000,
                   acknowledged=True, zone_id='zone-04', person_id='person-29'),
        HailoEvent('evt-006', E.FALL_DETECTED, S.CRITICAL, 'cam-02',
                   'Fall detected in Lobby - Immediate response required', now_ms - 3600000,
                   acknowledged=True, person_id='person-08', snapshot_url='/snapshots/fall-002.jpg',
                   metadata={'confidence': '0.89', 'response_time_ms': '45000'}),
        HailoEvent('evt-007', E.ZONE_UPDATE, S.INFO, 'cam-03',
                   'Zone configuration updated - Seating Area capacity changed', now_ms - 7200000,
                   acknowledged=True, zone_id='zone-03',
                   metadata={'old_capacity': '40', 'new_capacity': '50'}),
    ]


def mock_dashboard_stats() -> DashboardStats:
    return DashboardStats(
        total_people_now=33,
        total_detections_today=1247,
        alerts_today=12,
        critical_alerts_today=2,
        falls_detected=2,
        loitering_incidents=8,
        avg_dwell_time=145,
        peak_hour='12:00',
        cameras=[
            CameraStats('cam-01', 312, 5, [ZoneStats('zone-01', 3, 20, 45, '09:00'),
                                            ZoneStats('zone-05', 2, 15, 15, '17:00')]),
            CameraStats('cam-02', 445, 8, [ZoneStats('zone-02', 8, 10, 180, '11:00')]),
            CameraStats('cam-03', 289, 15, [ZoneStats('zone-03', 15, 50, 900, '12:30')]),
            CameraStats('cam-04', 87, 3, [ZoneStats('zone-04', 3, 5, 60, '14:00')]),
            CameraStats('cam-06', 114, 2, []),
        ],
    )


def mock_heatmaps(now_ms: int) -> Dict[str, HeatmapData]:
    samples = {
        'cam-01': [(0.25, 0.5, 0.8), (0.3, 0.55, 0.9), (0.35, 0.6, 0.7), (0.75, 0.5, 0.6), (0.8, 0.6, 0.5)],
        'cam-02': [(0.5, 0.4, 0.95), (0.45, 0.45, 0.85), (0.55, 0.35, 0.75), (0.4, 0.5, 0.6), (0.6, 0.5, 0.65)],
        'cam-03': [(0.3, 0.4, 0.7), (0.5, 0.5, 0.9), (0.7, 0.4, 0.6), (0.4, 0.6, 0.8), (0.6, 0.6, 0.75),
                   (0.5, 0.3, 0.5)],
        'cam-04': [(0.75, 0.7, 0.6), (0.8, 0.75, 0.5)],
    }
    return {
        cid: HeatmapData(cid, [HeatmapPoint(x, y, v) for x, y, v in points], now_ms)
        for cid, points in samples.items()
    }


def mock_chart_data() -> CrowdChartData:
    hourly_values = [5, 3, 2, 1, 2, 5, 12, 28, 45, 52, 48, 55, 68, 62, 50, 48, 45, 52, 35, 22, 15, 10, 8, 6]
    daily_values = [('Mon', 342), ('Tue', 378), ('Wed', 395), ('Thu', 410), ('Fri', 385), ('Sat', 225),
                    ('Sun', 180)]
    hours = ['08:00', '09:00', '10:00', '11:00', '12:00']
    return CrowdChartData(
        hourly=[TimeSeriesPoint(f'{h:02d}:00', v) for h, v in enumerate(hourly_values)],
        daily=[TimeSeriesPoint(day, v) for day, v in daily_values],
        by_zone=[
            ZoneSeries('zone-01', 'Entry Queue',
                       [TimeSeriesPoint(t, v) for t, v in zip(hours, [12, 18, 15, 14, 22])]),
            ZoneSeries('zone-03', 'Cafeteria',
                       [TimeSeriesPoint(t, v) for t, v in zip(hours, [5, 8, 12, 25, 45])]),
        ],
    )


_EVENT_MESSAGES = {
    EventType.PERSON_DETECTED: ['Person entered zone', 'New detection in area', 'Movement detected'],
    EventType.FALL_DETECTED: ['Fall detected - immediate response needed', 'Person down alert',
                              'Emergency: Fall detected'],
    EventType.LOITER_ALERT: ['Loitering detected', 'Extended presence in zone',
                             'Suspicious activity - loitering'],
    EventType.CROWD_ALERT: ['Crowd density warning', 'Area approaching capacity', 'High density detected'],
}


def generate_mock_event(rng: random.Random, now_ms: Optional[int] = None,
                        cameras: Optional[List[Camera]] = None) -> HailoEvent:
    """Random alert on a random online camera."""
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    online = [c for c in (cameras if cameras is not None else mock_cameras()) if c.is_online]
    camera_id = rng.choice(online).id if online else 'unknown'

    event_type = rng.choice(list(_EVENT_MESSAGES))
    if event_type == EventType.FALL_DETECTED:
        severity = EventSeverity.CRITICAL
    elif event_type == EventType.PERSON_DETECTED:
        severity = EventSeverity.INFO
    else:
        severity = rng.choice(list(EventSeverity))

    suffix = ''.join(rng.choice('abcdefghijklmnopqrstuvwxyz0123456789') for _ in range(9))
    return HailoEvent(
        id=f'evt-{now_ms}-{suffix}',
        type=event_type,
        severity=severity,
        camera_id=camera_id,
        message=rng.choice(_EVENT_MESSAGES[event_type]),
        timestamp=now_ms,
    )


def build_mock_dataset(rng: Optional[random.Random] = None, now_ms: Optional[int] = None) -> DashboardDataset:
    rng = rng or random.Random()
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    return DashboardDataset(
        cameras=mock_cameras(),
        zones=mock_zones(),
        people=mock_people(rng, now_ms),
        events=mock_events(now_ms),
        stats=mock_dashboard_stats(),
        heatmaps=mock_heatmaps(now_ms),
        chart_data=mock_chart_data(),
    )
