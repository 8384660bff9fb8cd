"""Error codes for the ALSA/JACK command layer.

Every failure surfaced by the services carries one of these codes. The HTTP
layer maps them to status codes via ERROR_MAPPINGS.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error category classification.

    Categories are used for:
    - Grouping related errors
    - Determining appropriate HTTP status codes
    """

    ALSA = "alsa"
    BRIDGE = "bridge"
    JACK = "jack"
    VALIDATION = "validation"
    INTERNAL = "internal"


class ErrorCode(str, Enum):
    """Error codes raised by the services layer."""

    # ALSA
    ALSA_LIST_FAILED = "ALSA_LIST_FAILED"
    ALSA_DEVICE_NOT_FOUND = "ALSA_DEVICE_NOT_FOUND"

    # Bridge lifecycle
    BRIDGE_LAUNCH_FAILED = "BRIDGE_LAUNCH_FAILED"
    BRIDGE_TEARDOWN_FAILED = "BRIDGE_TEARDOWN_FAILED"
    BRIDGE_NO_CAPABILITY = "BRIDGE_NO_CAPABILITY"

    # JACK server / graph
    JACK_QUERY_FAILED = "JACK_QUERY_FAILED"
    JACK_NO_BRIDGED_DEVICES = "JACK_NO_BRIDGED_DEVICES"
    JACK_SERVER_FAILED = "JACK_SERVER_FAILED"
    JACK_PORT_PATCH_FAILED = "JACK_PORT_PATCH_FAILED"

    # Validation
    VALIDATION_INVALID_DEVICE_NAME = "VALIDATION_INVALID_DEVICE_NAME"
    VALIDATION_INVALID_PORT_NAME = "VALIDATION_INVALID_PORT_NAME"
    VALIDATION_INVALID_BRIDGE_SETTINGS = "VALIDATION_INVALID_BRIDGE_SETTINGS"
    VALIDATION_INVALID_REQUEST = "VALIDATION_INVALID_REQUEST"

    # Internal
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True)
class ErrorMapping:
    """Mapping from error code to HTTP response details."""

    http_status: int
    category: ErrorCategory
    title: str


ERROR_MAPPINGS: dict[ErrorCode, ErrorMapping] = {
    ErrorCode.ALSA_LIST_FAILED: ErrorMapping(
        500, ErrorCategory.ALSA, "ALSA Device Listing Failed"
    ),
    ErrorCode.ALSA_DEVICE_NOT_FOUND: ErrorMapping(
        404, ErrorCategory.ALSA, "ALSA Device Not Found"
    ),
    ErrorCode.BRIDGE_LAUNCH_FAILED: ErrorMapping(
        500, ErrorCategory.BRIDGE, "Bridge Launch Failed"
    ),
    ErrorCode.BRIDGE_TEARDOWN_FAILED: ErrorMapping(
        500, ErrorCategory.BRIDGE, "Bridge Teardown Failed"
    ),
    ErrorCode.BRIDGE_NO_CAPABILITY: ErrorMapping(
        409, ErrorCategory.BRIDGE, "Device Has No Usable Direction"
    ),
    ErrorCode.JACK_QUERY_FAILED: ErrorMapping(
        503, ErrorCategory.JACK, "JACK Graph Query Failed"
    ),
    ErrorCode.JACK_NO_BRIDGED_DEVICES: ErrorMapping(
        404, ErrorCategory.JACK, "No Bridged Devices"
    ),
    ErrorCode.JACK_SERVER_FAILED: ErrorMapping(
        503, ErrorCategory.JACK, "JACK Server Control Failed"
    ),
    ErrorCode.JACK_PORT_PATCH_FAILED: ErrorMapping(
        500, ErrorCategory.JACK, "JACK Port Patch Failed"
    ),
    ErrorCode.VALIDATION_INVALID_DEVICE_NAME: ErrorMapping(
        400, ErrorCategory.VALIDATION, "Invalid Device Name"
    ),
    ErrorCode.VALIDATION_INVALID_PORT_NAME: ErrorMapping(
        400, ErrorCategory.VALIDATION, "Invalid Port Name"
    ),
    ErrorCode.VALIDATION_INVALID_BRIDGE_SETTINGS: ErrorMapping(
        400, ErrorCategory.VALIDATION, "Invalid Bridge Settings"
    ),
    ErrorCode.VALIDATION_INVALID_REQUEST: ErrorMapping(
        422, ErrorCategory.VALIDATION, "Invalid Request"
    ),
    ErrorCode.INTERNAL_ERROR: ErrorMapping(
        500, ErrorCategory.INTERNAL, "Internal Server Error"
    ),
}

# Default mapping for unknown error codes
_DEFAULT_MAPPING = ErrorMapping(500, ErrorCategory.INTERNAL, "Internal Error")


def get_error_mapping(error_code: str) -> ErrorMapping:
    """Get error mapping for a given error code string.

    Returns the default 500/INTERNAL mapping for unknown codes.
    """
    try:
        code = ErrorCode(error_code)
        return ERROR_MAPPINGS.get(code, _DEFAULT_MAPPING)
    except ValueError:
        return _DEFAULT_MAPPING


@dataclass
class AudioError(Exception):
    """Exception raised when an audio command fails.

    Attributes:
        error_code: Application error code (e.g., "BRIDGE_LAUNCH_FAILED")
        message: Human-readable error message
        inner_error: Optional command details (command, returncode, stderr)
    """

    error_code: str
    message: str
    inner_error: dict[str, Any] | None = field(default=None)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    @property
    def http_status(self) -> int:
        """Get HTTP status code for this error."""
        return get_error_mapping(self.error_code).http_status

    @property
    def category(self) -> str:
        """Get error category."""
        return get_error_mapping(self.error_code).category.value

    @property
    def title(self) -> str:
        """Get human-readable error title."""
        return get_error_mapping(self.error_code).title


def command_error(
    error_code: ErrorCode,
    message: str,
    command: list[str],
    returncode: int | None = None,
    stderr: str | None = None,
) -> AudioError:
    """Build an AudioError that records the failing command."""
    inner: dict[str, Any] = {"command": " ".join(command)}
    if returncode is not None:
        inner["returncode"] = returncode
    if stderr:
        inner["stderr"] = stderr.strip()
    return AudioError(error_code=error_code.value, message=message, inner_error=inner)
