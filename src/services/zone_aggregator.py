"""
Zone occupancy aggregation for the dashboard.
Assigns tracked people to polygonal zones and derives per-zone counts,
loitering and capacity status.
"""

import cv2
import numpy as np
import logging
from typing import Dict, Iterable, List, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

from src.models.core import Person, Zone


logger = logging.getLogger(__name__)

# Fraction of max capacity at which a zone is reported as "near"
NEAR_CAPACITY_RATIO = 0.8


class OccupancyStatus(Enum):
    """Zone occupancy status."""
    OK = "ok"
    NEAR = "near"
    OVER = "over"


@dataclass
class ZoneOccupancy:
    """Derived occupancy for one zone."""
    zone_id: str
    camera_id: str
    count: int
    max_capacity: Optional[int]
    loitering: int
    fallen: int
    status: OccupancyStatus
    person_ids: List[str]

    @property
    def utilization(self) -> Optional[float]:
        if not self.max_capacity:
            return None
        return self.count / self.max_capacity


def polygon_to_numpy(zone: Zone) -> np.ndarray:
    """Convert zone points to a float32 contour for OpenCV."""
    return np.array([[p.x, p.y] for p in zone.points], dtype=np.float32).reshape(-1, 1, 2)


def polygon_area(zone: Zone) -> float:
    """Normalized polygon area using the shoelace formula."""
    if not zone.is_active():
        return 0.0

    n = len(zone.points)
    area = 0.0
    for i in range(n):
        j = (i + 1) % n
        area += zone.points[i].x * zone.points[j].y
        area -= zone.points[j].x * zone.points[i].y
    return abs(area) / 2.0


def is_point_in_zone(zone: Zone, point: Tuple[float, float]) -> bool:
    """Check if a normalized point lies inside (or on the edge of) a zone."""
    if not zone.is_active():
        return False
    try:
        result = cv2.pointPolygonTest(polygon_to_numpy(zone), (float(point[0]), float(point[1])), False)
        return result >= 0
    except cv2.error as e:
        logger.error(f"Error checking point in zone {zone.id}: {e}")
        return False


def is_loitering(person: Person, zone: Optional[Zone]) -> bool:
    """Loitering when the wire flag says so or dwell time exceeds the zone threshold."""
    if person.is_loitering:
        return True
    if zone is None or zone.loiter_threshold is None:
        return False
    return person.dwell_time > zone.loiter_threshold * 1000


class ZoneAggregator:
    """Computes zone membership and occupancy from people and zones."""

    def assign_zone(self, person: Person, zones_by_id: Dict[str, Zone],
                    zones_by_camera: Dict[str, List[Zone]]) -> Optional[Zone]:
        """Resolve the zone a person belongs to.

        An explicit zone id wins when it names a known zone; a dangling id
        falls back to geometry. Geometry uses the bbox foot point against
        the zones of the person's camera, first match wins.
        """
        if person.zone_id is not None:
            zone = zones_by_id.get(person.zone_id)
            if zone is not None:
                return zone

        foot = person.bbox.foot_point()
        for zone in zones_by_camera.get(person.camera_id, []):
            if is_point_in_zone(zone, foot):
                return zone
        return None

    def compute_occupancy(self, zones: Iterable[Zone], people: Iterable[Person]) -> Dict[str, ZoneOccupancy]:
        """Per-zone occupancy for every zone, including empty and inert ones."""
        zones = list(zones)
        zones_by_id = {z.id: z for z in zones}
        zones_by_camera: Dict[str, List[Zone]] = {}
        for zone in zones:
            zones_by_camera.setdefault(zone.camera_id, []).append(zone)

        members: Dict[str, List[Person]] = {z.id: [] for z in zones}
        for person in people:
            zone = self.assign_zone(person, zones_by_id, zones_by_camera)
            if zone is not None:
                members[zone.id].append(person)

        result = {}
        for zone in zones:
            inside = members[zone.id]
            count = len(inside)
            result[zone.id] = ZoneOccupancy(
                zone_id=zone.id,
                camera_id=zone.camera_id,
                count=count,
                max_capacity=zone.max_capacity,
                loitering=sum(1 for p in inside if is_loitering(p, zone)),
                fallen=sum(1 for p in inside if p.is_fallen),
                status=self._status(count, zone.max_capacity),
                person_ids=[p.id for p in inside],
            )
        return result

    def count_by_camera(self, people: Iterable[Person]) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for person in people:
            counts[person.camera_id] = counts.get(person.camera_id, 0) + 1
        return counts

    def validate_zone(self, zone: Zone) -> List[str]:
        """Return validation warnings for a zone; an empty zone is valid but inert."""
        errors = []
        if zone.points and not zone.is_active():
            errors.append(f"Zone {zone.id} has fewer than 3 points and will not count people")
        for p in zone.points:
            if not (0.0 <= p.x <= 1.0 and 0.0 <= p.y <= 1.0):
                errors.append(f"Zone {zone.id} has a point outside the frame: ({p.x}, {p.y})")
                break
        if zone.is_active() and polygon_area(zone) == 0.0:
            errors.append(f"Zone {zone.id} polygon has zero area")
        if zone.max_capacity is not None and zone.max_capacity <= 0:
            errors.append(f"Zone {zone.id} max capacity must be positive")
        return errors

    @staticmethod
    def _status(count: int, max_capacity: Optional[int]) -> OccupancyStatus:
        if not max_capacity:
            return OccupancyStatus.OK
        if count > max_capacity:
            return OccupancyStatus.OVER
        if count >= max_capacity * NEAR_CAPACITY_RATIO:
            return OccupancyStatus.NEAR
        return OccupancyStatus.OK
