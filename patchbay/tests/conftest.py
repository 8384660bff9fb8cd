"""Shared fixtures: captured ALSA/JACK command output."""

import pytest

APLAY_LIST_OUTPUT = """**** List of PLAYBACK Hardware Devices ****
card 0: PCH [HDA Intel PCH], device 0: ALC256 Analog [ALC256 Analog]
  Subdevices: 1/1
  Subdevice #0: subdevice #0
card 0: PCH [HDA Intel PCH], device 3: HDMI 0 [HDMI 0]
  Subdevices: 1/1
  Subdevice #0: subdevice #0
card 1: USB [Scarlett 2i2 USB], device 0: USB Audio [USB Audio]
  Subdevices: 1/1
  Subdevice #0: subdevice #0
"""

HW_PARAMS_DUMP = """Playing raw data '/dev/zero' : Unsigned 8 bit, Rate 8000 Hz, Mono
HW Params of device "hw:1,0":
--------------------
ACCESS:  MMAP_INTERLEAVED RW_INTERLEAVED
FORMAT:  S16_LE S32_LE
SUBFORMAT:  STD
SAMPLE_BITS: [16 32]
FRAME_BITS: [32 64]
CHANNELS: 2
RATE: [44100 192000]
PERIOD_TIME: (83 371520]
PERIOD_SIZE: [16 16384]
PERIODS: [2 32]
BUFFER_SIZE: [32 32768]
TICK_TIME: ALL
--------------------
aplay: set_params:1343: Sample format non available
Available formats:
- S16_LE
- S32_LE
"""

DEVICE_BUSY_OUTPUT = "aplay: main:831: audio open error: Device or resource busy\n"

JACK_LSP_OUTPUT = """alsa_USB_src:capture_1
   system:playback_1
alsa_USB_src:capture_2
   system:playback_2
alsa_USB_sink:playback_1
alsa_USB_sink:playback_2
alsa_PCH_sink:playback_1
   alsa_USB_src:capture_1
"""


# What every JACK client tool prints when no server is running
JACK_NOT_RUNNING_OUTPUT = """Cannot connect to server socket err = No such file or directory
Cannot connect to server request channel
jack server is not running or cannot be started
JackShmReadWritePtr::~JackShmReadWritePtr - Init not done for -1, skipping unlock
JackShmReadWritePtr::~JackShmReadWritePtr - Init not done for -1, skipping unlock
"""


@pytest.fixture(autouse=True)
def disable_startup_side_effects(monkeypatch):
    """Keep app startup from touching JACK or probing real hardware."""
    monkeypatch.setenv("PATCHBAY_JACK_AUTOSTART", "false")
    monkeypatch.setenv("PATCHBAY_DISCOVER_ON_STARTUP", "false")
    yield


@pytest.fixture(autouse=True)
def empty_bridge_processes(monkeypatch):
    """Start every test without standalone bridges left over from another."""
    monkeypatch.setattr("patchbay.services.bridge._bridge_processes", {})


@pytest.fixture
def aplay_list_output() -> str:
    return APLAY_LIST_OUTPUT


@pytest.fixture
def hw_params_dump() -> str:
    return HW_PARAMS_DUMP


@pytest.fixture
def device_busy_output() -> str:
    return DEVICE_BUSY_OUTPUT


@pytest.fixture
def jack_lsp_output() -> str:
    return JACK_LSP_OUTPUT


@pytest.fixture
def jack_not_running_output() -> str:
    return JACK_NOT_RUNNING_OUTPUT
