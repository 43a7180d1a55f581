"""
Camera setup controller.

Drives the discover -> select -> apply flow for cameras advertised by the
stream server and persists the resulting selection.
"""

import logging
from typing import Callable, List, Optional, Set

from src.config.manager import PreferencesStore
from src.models.core import Camera
from src.services.discovery import CameraDiscoveryClient, FramePoller, format_camera_name
from src.services.errors import DiscoveryError
from src.services.store import DashboardStore
from src.utils.timers import RepeatingTimer


logger = logging.getLogger(__name__)


class CameraSetupController:
    """Stateful controller behind the camera setup screen."""

    def __init__(self, store: DashboardStore, preferences: PreferencesStore,
                 base_url: str, timeout: float = 5.0,
                 preview_interval: float = 2.0, thumbnail_interval: float = 10.0,
                 client_factory: Callable[..., CameraDiscoveryClient] = CameraDiscoveryClient,
                 timer_factory: Callable = RepeatingTimer):
        self.store = store
        self.preferences = preferences
        self.base_url = base_url
        self.timeout = timeout
        self.preview_interval = preview_interval
        self.thumbnail_interval = thumbnail_interval
        self._client_factory = client_factory
        self._timer_factory = timer_factory

        self.discovered: List[str] = []
        self.selected: Set[str] = set()
        self.discovering = False
        self.error: Optional[str] = None

        # Callbacks
        self.on_applied: Optional[Callable[[List[Camera]], None]] = None

        saved = preferences.load().selected_cameras
        if saved:
            self.selected = set(saved)

    @property
    def client(self) -> CameraDiscoveryClient:
        return self._client_factory(self.base_url, self.timeout)

    def set_base_url(self, url: str) -> None:
        self.base_url = url.rstrip('/')

    def discover(self) -> List[str]:
        """Query the stream server.

        On failure the message is kept in ``error`` and the discovered list
        is left empty. A successful query persists the working URL and, if
        nothing is selected yet, selects every stream.
        """
        self.discovering = True
        self.error = None
        self.discovered = []
        try:
            self.discovered = self.client.discover_streams()
        except DiscoveryError as e:
            logger.error(f"Camera discovery failed: {e}")
            self.error = str(e)
            return []
        finally:
            self.discovering = False

        if not self.selected:
            self.selected = set(self.discovered)
        self.preferences.save_discovery_url(self.base_url)
        return list(self.discovered)

    def toggle(self, stream_id: str) -> bool:
        if stream_id in self.selected:
            self.selected.discard(stream_id)
            return False
        self.selected.add(stream_id)
        return True

    def select_all(self) -> None:
        self.selected = set(self.discovered)

    def select_none(self) -> None:
        self.selected = set()

    def selected_ids(self) -> List[str]:
        """Selected stream ids, in discovery order first."""
        ordered = [s for s in self.discovered if s in self.selected]
        return ordered + sorted(self.selected - set(ordered))

    def display_name(self, stream_id: str) -> str:
        return format_camera_name(stream_id)

    def apply(self) -> List[Camera]:
        """Replace the store's cameras with the selection and persist it."""
        stream_ids = self.selected_ids()
        cameras = self.client.build_cameras(stream_ids)
        self.store.set_cameras(cameras)
        self.preferences.save_selected_cameras(stream_ids)
        self.preferences.save_discovery_url(self.base_url)
        logger.info(f"Applied camera selection: {len(cameras)} cameras")

        if self.on_applied:
            self.on_applied(cameras)
        return cameras

    def preview_poller(self, on_frame: Optional[Callable[[str, bytes], None]] = None) -> FramePoller:
        """Poller refreshing previews of the discovered streams while choosing."""
        return FramePoller(self.client, self.discovered, self.preview_interval,
                           on_frame=on_frame, timer_factory=self._timer_factory)

    def thumbnail_poller(self, on_frame: Optional[Callable[[str, bytes], None]] = None) -> FramePoller:
        """Slower poller for thumbnails of the cameras in the store."""
        stream_ids = [c.id for c in self.store.get_cameras()]
        return FramePoller(self.client, stream_ids, self.thumbnail_interval,
                           on_frame=on_frame, timer_factory=self._timer_factory)

    def needs_setup(self) -> bool:
        """True when there are no cameras and no saved selection."""
        return not self.store.get_cameras() and self.preferences.load().selected_cameras is None
