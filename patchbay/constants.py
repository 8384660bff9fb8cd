"""Constants for the ALSA-JACK Patchbay API."""

import os
import re


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# ============================================================================
# ALSA discovery
# ============================================================================

LIST_DEVICES_COMMAND = ["aplay", "-l"]
PLAYBACK_PROBE_COMMAND = "aplay"
CAPTURE_PROBE_COMMAND = "arecord"
PLAYBACK_PROBE_SOURCE = "/dev/zero"
CAPTURE_PROBE_SINK = "/dev/null"

# aplay/arecord open the device after dumping, so the probe is always cut short
PROBE_TIMEOUT_SEC = _env_float("PATCHBAY_PROBE_TIMEOUT_SEC", 1.0)
COMMAND_TIMEOUT_SEC = _env_float("PATCHBAY_COMMAND_TIMEOUT_SEC", 5.0)

# Seed values of every DeviceParams before probed values override them
DEFAULT_PARAM_RATE = 48000
DEFAULT_PARAM_PERIODS = 1

# "card 0: PCH [HDA Intel PCH], device 0: ALC256 Analog [ALC256 Analog]"
CARD_DEVICE_PATTERN = re.compile(
    r"card (?P<card>\d+): (?P<card_name>\S+) \[(?P<card_label>.+?)\], "
    r"device (?P<device>\d+): (?P<device_label>.+) \[(?P<description>.+?)\]"
)

# hw-params dumps are framed by lines of 20 dashes
DUMP_DELIMITER_PATTERN = re.compile(r"^\s*-{10,}\s*$")

# ============================================================================
# Bridges
# ============================================================================

BRIDGE_PREFIX = os.getenv("PATCHBAY_BRIDGE_PREFIX", "alsa")
CAPTURE_SUFFIX = "src"
PLAYBACK_SUFFIX = "sink"
# "zalsa": in-process jack_load modules, "alsa": standalone alsa_in/alsa_out
DEFAULT_BRIDGE_CLIENT = os.getenv("PATCHBAY_BRIDGE_CLIENT", "zalsa")
ZALSA_CAPTURE_MODULE = "zalsa_in"
ZALSA_PLAYBACK_MODULE = "zalsa_out"
ALSA_CAPTURE_PROGRAM = "alsa_in"
ALSA_PLAYBACK_PROGRAM = "alsa_out"
# Seconds to wait for a standalone bridge to exit after SIGTERM
BRIDGE_STOP_TIMEOUT_SEC = _env_float("PATCHBAY_BRIDGE_STOP_TIMEOUT_SEC", 3.0)

DEFAULT_SAMPLE_RATE = _env_int("PATCHBAY_SAMPLE_RATE", 48000)
DEFAULT_PERIODS = _env_int("PATCHBAY_PERIODS", 128)
DEFAULT_NPERIODS = _env_int("PATCHBAY_NPERIODS", 2)

# jack_unload: "<name> is not a running client"
NOT_RUNNING_MARKERS = ("is not a running client",)
# jack_disconnect: "cannot disconnect client, already disconnected?"
NOT_CONNECTED_MARKERS = ("already disconnected", "not connected")

# ============================================================================
# JACK server
# ============================================================================

JACK_DEFAULT_RATE = _env_int("PATCHBAY_JACK_RATE", 96000)
JACK_DEFAULT_PERIOD = _env_int("PATCHBAY_JACK_PERIOD", 128)
JACK_DEFAULT_DRIVER = os.getenv("PATCHBAY_JACK_DRIVER", "dummy")

# ============================================================================
# Name validation
# ============================================================================

# ALSA card ids: "PCH", "USB", "Device_1"
SAFE_DEVICE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")

# JACK port names: "client:port", client names may contain spaces
SAFE_PORT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-. ()]{1,128}:[A-Za-z0-9_\-. ]{1,128}$")
