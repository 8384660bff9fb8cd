"""Pydantic models for the ALSA-JACK Patchbay API."""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constants import (
    DEFAULT_BRIDGE_CLIENT,
    DEFAULT_NPERIODS,
    DEFAULT_PERIODS,
    JACK_DEFAULT_DRIVER,
    JACK_DEFAULT_PERIOD,
    JACK_DEFAULT_RATE,
)


# ============================================================================
# Device Parameter Models
# ============================================================================


class ParamRange(BaseModel):
    """Inclusive numeric range reported by a hw-params dump (e.g. RATE)."""

    model_config = ConfigDict(frozen=True)

    min: int
    max: int

    @model_validator(mode="after")
    def _check_order(self) -> "ParamRange":
        if self.min > self.max:
            raise ValueError("min must be <= max")
        return self


# Scalar (int) | Range (ParamRange) | Text (str)
ParamValue = Union[int, ParamRange, str]

# camelCase parameter name -> value; always holds "rate" and "periods"
DeviceParams = dict[str, ParamValue]

# "zalsa": jack_load zalsa_in/zalsa_out, "alsa": standalone alsa_in/alsa_out
BridgeClient = Literal["zalsa", "alsa"]


class AudioDevice(BaseModel):
    """ALSA PCM device discovered from the card listing.

    Identity is the (card, device) pair. ``card_name`` is the ALSA card id
    used to build bridge and port names.
    """

    model_config = ConfigDict(frozen=True)

    card: str = Field(description="ALSA card number (e.g., '0')")
    card_name: str = Field(description="ALSA card id (e.g., 'PCH', 'USB')")
    device: str = Field(description="ALSA device number on the card")
    description: str = Field(description="Device description from aplay -l")
    playback_params: Optional[DeviceParams] = Field(
        default=None, description="Playback hw params, absent if probe failed"
    )
    capture_params: Optional[DeviceParams] = Field(
        default=None, description="Capture hw params, absent if probe failed"
    )

    @property
    def hw_address(self) -> str:
        return f"hw:{self.card},{self.device}"

    @property
    def can_playback(self) -> bool:
        return self.playback_params is not None

    @property
    def can_capture(self) -> bool:
        return self.capture_params is not None


# ============================================================================
# Connection Graph Models
# ============================================================================


class GraphEdge(BaseModel):
    """Connection from a bridged device to a peer port."""

    source: str = Field(description="Bridged device name (ALSA card id)")
    destination: str = Field(description="Peer JACK port (e.g., 'system:playback_1')")


class ConnectionGraph(BaseModel):
    """Point-in-time snapshot of bridged devices and their connections."""

    bridged_devices: list[str] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)


# ============================================================================
# Request Models
# ============================================================================


class ConnectDeviceRequest(BaseModel):
    """Request payload for POST /api/connect-alsa-to-jack."""

    card_name: str = Field(description="ALSA card id of the device to bridge")
    device: Optional[str] = Field(
        default=None,
        pattern=r"^\d+$",
        description="ALSA device number on the card (first device if omitted)",
    )
    periods: int = Field(default=DEFAULT_PERIODS, gt=0, description="Frames per period")
    nperiods: int = Field(default=DEFAULT_NPERIODS, gt=0, description="Number of periods")
    rate: Optional[int] = Field(
        default=None, gt=0, description="Sampling rate (defaults to device rate)"
    )
    client: BridgeClient = Field(
        default=DEFAULT_BRIDGE_CLIENT, description="Bridge client: zalsa or alsa"
    )


class DisconnectDeviceRequest(BaseModel):
    """Request payload for POST /api/disconnect-alsa-from-jack."""

    device_name: str = Field(description="ALSA card id of the bridged device")


class JackServerStartRequest(BaseModel):
    """Request payload for POST /api/jack/start."""

    rate: int = Field(default=JACK_DEFAULT_RATE, gt=0)
    period: int = Field(default=JACK_DEFAULT_PERIOD, gt=0)
    driver: str = Field(default=JACK_DEFAULT_DRIVER, pattern=r"^[a-z0-9_]+$")


class PortPatchRequest(BaseModel):
    """Request payload for port connect/disconnect."""

    source: str = Field(description="Output port (e.g., 'alsa_USB_src:capture_1')")
    destination: str = Field(description="Input port (e.g., 'system:playback_1')")


# ============================================================================
# Response Models
# ============================================================================


class JackServerStatus(BaseModel):
    """JACK server status response."""

    running: bool
    status: str = Field(description="Raw jack_control status output")


class ApiResponse(BaseModel):
    """Standard API response model for mutations."""

    success: bool
    message: str
    data: Optional[dict[str, Any]] = None


# ============================================================================
# Error Response Models (RFC 9457 Problem Details)
# ============================================================================


class InnerError(BaseModel):
    """Details of the external command that failed."""

    command: Optional[str] = Field(default=None, description="Command line that failed")
    returncode: Optional[int] = Field(default=None, description="Process exit status")
    stderr: Optional[str] = Field(default=None, description="Captured error output")


class InvalidParam(BaseModel):
    """One rejected request field."""

    name: str = Field(description="Field location (e.g., 'body.periods')")
    reason: str


class ErrorResponse(BaseModel):
    """RFC 9457 Problem Details compliant error response.

    Content-Type: application/problem+json

    Example:
        {
            "type": "/errors/bridge-launch-failed",
            "title": "Bridge Launch Failed",
            "status": 500,
            "detail": "Failed to launch capture bridge alsa_USB_src: ...",
            "error_code": "BRIDGE_LAUNCH_FAILED",
            "category": "bridge",
            "inner_error": {"command": "jack_load alsa_USB_src zalsa_in ..."}
        }
    """

    type: Optional[str] = Field(
        default=None,
        description="URI reference identifying the problem type",
    )
    title: Optional[str] = Field(
        default=None, description="Short human-readable summary of the problem"
    )
    status: Optional[int] = Field(
        default=None, description="HTTP status code for this error"
    )
    detail: str = Field(description="Human-readable error description")
    error_code: Optional[str] = Field(
        default=None,
        description="Application-specific error code (e.g., 'JACK_QUERY_FAILED')",
    )
    category: Optional[str] = Field(
        default=None, description="Error category (e.g., 'alsa', 'jack')"
    )
    inner_error: Optional[InnerError] = Field(
        default=None, description="Details of the failing command"
    )
    invalid_params: Optional[list[InvalidParam]] = Field(
        default=None, description="Rejected request fields"
    )
