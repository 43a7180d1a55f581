"""
Camera discovery against a go2rtc-style stream server.
"""

import logging
import re
import threading
from typing import Callable, Dict, List, Optional
from urllib.parse import quote

import requests

from src.config.models import DEFAULT_DISCOVERY_URL
from src.models.core import Camera, CameraStatus
from src.services.errors import DiscoveryError
from src.utils.timers import RepeatingTimer


logger = logging.getLogger(__name__)

DISCOVERED_LOCATION = "Auto-discovered"


def format_camera_name(stream_id: str) -> str:
    """Human-readable name for a stream id, e.g. ``front_door-2`` -> ``Front Door 2``."""
    words = [w for w in re.split(r'[-_]', stream_id) if w]
    return ' '.join(w[0].upper() + w[1:] for w in words)


class CameraDiscoveryClient:
    """HTTP client for the stream server's discovery and frame endpoints."""

    def __init__(self, base_url: str = DEFAULT_DISCOVERY_URL, timeout: float = 5.0):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def discover_streams(self) -> List[str]:
        """Return the ids of every stream the server advertises.

        Raises:
            DiscoveryError: If the server is unreachable, answers with an
                error status, returns something other than an object, or
                advertises no streams.
        """
        url = f"{self.base_url}/api/streams"
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DiscoveryError(f"Failed to connect to stream server: {e}") from e

        try:
            streams = response.json()
        except ValueError as e:
            raise DiscoveryError(f"Invalid response from stream server: {e}") from e

        if not isinstance(streams, dict):
            raise DiscoveryError("Invalid response from stream server: expected an object")
        if not streams:
            raise DiscoveryError("No streams found on stream server")

        stream_ids = list(streams.keys())
        logger.info(f"Discovered {len(stream_ids)} streams at {self.base_url}")
        return stream_ids

    def frame_url(self, stream_id: str) -> str:
        return f"{self.base_url}/api/frame.jpeg?src={quote(stream_id, safe='')}"

    def fetch_frame(self, stream_id: str) -> bytes:
        """Fetch the latest JPEG frame for a stream as raw bytes."""
        try:
            response = requests.get(
                f"{self.base_url}/api/frame.jpeg",
                params={'src': stream_id},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DiscoveryError(f"Failed to fetch frame for {stream_id}: {e}") from e
        return response.content

    def build_cameras(self, stream_ids: List[str]) -> List[Camera]:
        return [
            Camera(
                id=stream_id,
                name=format_camera_name(stream_id),
                location=DISCOVERED_LOCATION,
                stream_url=self.frame_url(stream_id),
                status=CameraStatus.ONLINE,
                resolution='1920x1080',
                fps=30,
            )
            for stream_id in stream_ids
        ]


class FramePoller:
    """Refreshes preview frames for a set of streams on a fixed cadence.

    Failed fetches are logged and leave the last good frame in place.
    """

    def __init__(self, client: CameraDiscoveryClient, stream_ids: List[str],
                 interval_seconds: float = 2.0,
                 on_frame: Optional[Callable[[str, bytes], None]] = None,
                 timer_factory: Callable = RepeatingTimer):
        self.client = client
        self.stream_ids = list(stream_ids)
        self.interval_seconds = interval_seconds
        self.on_frame = on_frame
        self._timer_factory = timer_factory
        self._timer = None
        self._lock = threading.Lock()
        self.frames: Dict[str, bytes] = {}
        self.errors: Dict[str, str] = {}

    @property
    def is_running(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        if self._timer is not None:
            return
        self.poll()
        self._timer = self._timer_factory(self.interval_seconds, self.poll)
        self._timer.start()

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def poll(self) -> None:
        for stream_id in self.stream_ids:
            try:
                frame = self.client.fetch_frame(stream_id)
            except DiscoveryError as e:
                logger.warning(str(e))
                with self._lock:
                    self.errors[stream_id] = str(e)
                continue

            with self._lock:
                self.frames[stream_id] = frame
                self.errors.pop(stream_id, None)
            if self.on_frame:
                self.on_frame(stream_id, frame)

    def latest(self, stream_id: str) -> Optional[bytes]:
        with self._lock:
            return self.frames.get(stream_id)
