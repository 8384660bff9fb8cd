"""API routers for the ALSA-JACK Patchbay API."""

from .devices import router as devices_router
from .jack import router as jack_router

__all__ = [
    "devices_router",
    "jack_router",
]
