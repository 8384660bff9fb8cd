"""Application-owned snapshot of discovered ALSA devices."""

import logging
import threading
import time
from typing import Callable, Optional

from ..models import AudioDevice
from .alsa import list_devices

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Holds the result of the last discovery until it is explicitly refreshed.

    Discovery is slow (each device is probed with a timeout), so HTTP reads
    are served from the snapshot. The snapshot is replaced wholesale; devices
    are never updated in place.
    """

    def __init__(self, discover: Callable[[], list[AudioDevice]] = list_devices):
        self._discover = discover
        self._lock = threading.Lock()
        self._devices: tuple[AudioDevice, ...] = ()
        self._refreshed_at: Optional[float] = None

    @property
    def devices(self) -> list[AudioDevice]:
        return list(self._devices)

    @property
    def refreshed_at(self) -> Optional[float]:
        """Unix time of the last successful refresh, None if never refreshed."""
        return self._refreshed_at

    def refresh(self) -> list[AudioDevice]:
        """Run discovery and replace the snapshot.

        On failure the previous snapshot is kept and the AudioError propagates.
        """
        with self._lock:
            devices = tuple(self._discover())
            self._devices = devices
            self._refreshed_at = time.time()
        logger.info("Device registry refreshed: %d device(s)", len(devices))
        return list(devices)

    def find(self, card_name: str, device: Optional[str] = None) -> Optional[AudioDevice]:
        """Look up a device by card id and, optionally, device number.

        Without ``device`` the first PCM device of the card is returned
        (e.g. "PCH" -> hw:0,0, while "PCH" + "3" -> hw:0,3). Bridge client
        names are derived from the card id only, so one device per card can
        be bridged at a time.
        """
        for candidate in self._devices:
            if candidate.card_name != card_name:
                continue
            if device is None or candidate.device == device:
                return candidate
        return None
