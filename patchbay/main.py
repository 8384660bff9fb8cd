"""
ALSA-JACK Patchbay API
FastAPI-based control interface for bridging ALSA devices into a JACK graph.
"""

from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool

from .error_codes import AudioError
from .exceptions import register_exception_handlers
from .routers import devices_router, jack_router
from .services.jack_server import start_jack_server, stop_jack_server
from .services.registry import DeviceRegistry

# OpenAPI tag descriptions
tags_metadata = [
    {
        "name": "devices",
        "description": "ALSA device discovery and bridge lifecycle",
    },
    {
        "name": "jack",
        "description": "JACK connection graph, port patching and server control",
    },
]


_logger = logging.getLogger(__name__)


def _env_flag(name: str, default: bool) -> bool:
    """Interpret an environment variable as a boolean."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def create_app(
    *,
    registry: DeviceRegistry | None = None,
    autostart_jack: bool | None = None,
    discover_on_startup: bool | None = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    - The JACK server is only started when `PATCHBAY_JACK_AUTOSTART=true`
      (or autostart_jack=True), and is then stopped again on shutdown.
    - Devices are discovered once at startup unless
      `PATCHBAY_DISCOVER_ON_STARTUP=false` (or discover_on_startup=False).
    """
    resolved_autostart = (
        _env_flag("PATCHBAY_JACK_AUTOSTART", False)
        if autostart_jack is None
        else autostart_jack
    )
    resolved_discover = (
        _env_flag("PATCHBAY_DISCOVER_ON_STARTUP", True)
        if discover_on_startup is None
        else discover_on_startup
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle."""
        jack_started = False
        if resolved_autostart:
            try:
                await run_in_threadpool(start_jack_server)
                jack_started = True
            except AudioError as exc:
                _logger.warning("JACK autostart failed: %s", exc)

        if resolved_discover:
            try:
                await run_in_threadpool(app.state.device_registry.refresh)
            except AudioError as exc:
                _logger.warning("Initial ALSA discovery failed: %s", exc)

        yield

        if jack_started:
            try:
                await run_in_threadpool(stop_jack_server)
            except AudioError as exc:
                _logger.warning("JACK shutdown encountered an error: %s", exc)

    app = FastAPI(
        lifespan=lifespan,
        title="ALSA-JACK Patchbay",
        description="""
## ALSA-JACK Patchbay API

Discover ALSA sound devices and bridge them into a JACK audio graph.

### Features
- **Discovery**: List ALSA devices with probed playback/capture parameters
- **Bridges**: Load/unload per-device capture and playback bridges
- **Graph**: Inspect which devices are bridged and what they connect to
- **JACK**: Server start/stop and port patching

### Authentication
Endpoints do not require authentication (local machine only).
    """,
        version="1.0.0",
        openapi_tags=tags_metadata,
    )
    app.state.device_registry = registry if registry is not None else DeviceRegistry()

    # Register exception handlers for unified error responses
    register_exception_handlers(app)

    app.include_router(devices_router)
    app.include_router(jack_router)

    return app


app = create_app()


# ============================================================================
# Main entry point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=3000)
