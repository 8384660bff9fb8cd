"""ALSA device listing and bridge lifecycle endpoints."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request

from ..constants import SAFE_DEVICE_NAME_PATTERN
from ..error_codes import AudioError, ErrorCode
from ..models import (
    ApiResponse,
    AudioDevice,
    ConnectDeviceRequest,
    DisconnectDeviceRequest,
)
from ..services.bridge import connect_device, disconnect_device
from ..services.registry import DeviceRegistry

router = APIRouter(prefix="/api", tags=["devices"])


def get_device_registry(request: Request) -> DeviceRegistry:
    """Return the registry owned by the running app."""
    return request.app.state.device_registry


def is_safe_device_name(name: str) -> bool:
    """Check if the device name is a plain ALSA card id."""
    return SAFE_DEVICE_NAME_PATTERN.match(name) is not None


def _validate_device_name(name: str) -> None:
    if not is_safe_device_name(name):
        raise AudioError(
            error_code=ErrorCode.VALIDATION_INVALID_DEVICE_NAME.value,
            message=f"Invalid device name format: {name!r}",
        )


@router.get("/alsa-devices", response_model=list[AudioDevice])
def list_alsa_devices(
    registry: DeviceRegistry = Depends(get_device_registry),
) -> list[AudioDevice]:
    """
    List ALSA devices from the last discovery.

    Use POST /api/alsa-devices/refresh to re-run discovery.
    """
    return registry.devices


@router.post("/alsa-devices/refresh", response_model=list[AudioDevice])
def refresh_alsa_devices(
    registry: DeviceRegistry = Depends(get_device_registry),
) -> list[AudioDevice]:
    """
    Re-run ALSA discovery and replace the device list.

    Each device is probed for playback and capture parameters, so this can
    take a few seconds per device.
    """
    return registry.refresh()


@router.post("/connect-alsa-to-jack", response_model=ApiResponse)
def connect_alsa_to_jack(
    request: ConnectDeviceRequest,
    registry: DeviceRegistry = Depends(get_device_registry),
) -> ApiResponse:
    """
    Request JACK bridges for an ALSA device.

    Success means the bridge loaders were spawned, not that audio is flowing.
    Poll GET /api/jack-connection to confirm the device appears in the graph.
    """
    _validate_device_name(request.card_name)

    device = registry.find(request.card_name, request.device)
    if device is None:
        target = request.card_name
        if request.device is not None:
            target += f" device {request.device}"
        raise AudioError(
            error_code=ErrorCode.ALSA_DEVICE_NOT_FOUND.value,
            message=f"ALSA device {target} not found",
        )

    try:
        launch = connect_device(
            device,
            periods=request.periods,
            nperiods=request.nperiods,
            rate=request.rate,
            client=request.client,
        )
    except ValueError as e:
        raise AudioError(
            error_code=ErrorCode.VALIDATION_INVALID_BRIDGE_SETTINGS.value,
            message=str(e),
        ) from e

    return ApiResponse(
        success=True,
        message=f"Bridge launch requested for ALSA device {device.card_name}",
        data=asdict(launch),
    )


@router.post("/disconnect-alsa-from-jack", response_model=ApiResponse)
def disconnect_alsa_from_jack(request: DisconnectDeviceRequest) -> ApiResponse:
    """
    Unload the JACK bridges of an ALSA device.

    Disconnecting a device that is not bridged succeeds.
    """
    _validate_device_name(request.device_name)

    teardown = disconnect_device(request.device_name)
    return ApiResponse(
        success=True,
        message=f"ALSA device {request.device_name} disconnected from JACK",
        data=asdict(teardown),
    )
