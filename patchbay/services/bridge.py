"""Bridge lifecycle: start/stop ALSA bridge clients in the JACK graph.

A device is bridged by one JACK client per direction:
- ``<prefix>_<card_name>_src``: capture bridge (hardware -> graph sources)
- ``<prefix>_<card_name>_sink``: playback bridge (graph sinks -> hardware)

Two bridge clients are supported:
- ``zalsa``: zalsa_in/zalsa_out loaded into the JACK server with jack_load,
  removed again with jack_unload
- ``alsa``: standalone alsa_in/alsa_out processes, stopped by terminating
  the process started here

Launches are fire-and-forget. Whether a bridge actually came up is only
visible through the connection graph (see graph.py).
"""

import logging
import subprocess
import threading
from dataclasses import dataclass, field
from typing import Optional, get_args

from ..constants import (
    ALSA_CAPTURE_PROGRAM,
    ALSA_PLAYBACK_PROGRAM,
    BRIDGE_PREFIX,
    BRIDGE_STOP_TIMEOUT_SEC,
    CAPTURE_SUFFIX,
    COMMAND_TIMEOUT_SEC,
    DEFAULT_BRIDGE_CLIENT,
    DEFAULT_NPERIODS,
    DEFAULT_PERIODS,
    DEFAULT_SAMPLE_RATE,
    NOT_RUNNING_MARKERS,
    PLAYBACK_SUFFIX,
    ZALSA_CAPTURE_MODULE,
    ZALSA_PLAYBACK_MODULE,
)
from ..error_codes import AudioError, ErrorCode, command_error
from ..models import AudioDevice, BridgeClient, DeviceParams, ParamRange

logger = logging.getLogger(__name__)

BRIDGE_CLIENTS: tuple[str, ...] = get_args(BridgeClient)

# JACK client name -> standalone alsa_in/alsa_out process started by us
_bridge_processes: dict[str, subprocess.Popen] = {}
_processes_lock = threading.Lock()


@dataclass
class BridgeLaunch:
    """Acknowledgment of a connect request.

    Lists the clients that were requested to start. Nothing here confirms
    that audio is flowing.
    """

    device_name: str
    hw_address: str
    client: str
    rate: int
    periods: int
    nperiods: int
    capture_client: Optional[str] = None
    capture_pid: Optional[int] = None
    playback_client: Optional[str] = None
    playback_pid: Optional[int] = None


@dataclass
class BridgeTeardown:
    """Result of a disconnect request."""

    device_name: str
    unloaded: list[str] = field(default_factory=list)
    already_absent: list[str] = field(default_factory=list)


def bridge_base_name(device_name: str) -> str:
    """Return the JACK client base name for a device ("USB" -> "alsa_USB")."""
    return f"{BRIDGE_PREFIX}_{device_name}"


def capture_client_name(device_name: str) -> str:
    return f"{bridge_base_name(device_name)}_{CAPTURE_SUFFIX}"


def playback_client_name(device_name: str) -> str:
    return f"{bridge_base_name(device_name)}_{PLAYBACK_SUFFIX}"


def resolve_sample_rate(params: DeviceParams | None, default: int = DEFAULT_SAMPLE_RATE) -> int:
    """
    Pick the bridge sampling rate from a device's playback parameters.

    - Scalar rate: used as-is
    - Range: the default if it lies inside the range, otherwise the range max
    - Missing or textual rate: the default
    """
    if params is None:
        return default
    rate = params.get("rate")
    if isinstance(rate, bool):
        return default
    if isinstance(rate, int):
        return rate
    if isinstance(rate, ParamRange):
        if rate.min <= default <= rate.max:
            return default
        return rate.max
    return default


def build_load_command(
    client_name: str,
    module: str,
    hw_address: str,
    rate: int,
    periods: int,
    nperiods: int,
) -> list[str]:
    """Build the jack_load command for an in-process zalsa bridge."""
    return [
        "jack_load",
        client_name,
        module,
        "-i",
        f"-d {hw_address} -r {rate} -p {periods} -n {nperiods}",
    ]


def build_standalone_command(
    client_name: str,
    program: str,
    hw_address: str,
    rate: int,
    periods: int,
    nperiods: int,
) -> list[str]:
    """Build the command line for a standalone alsa_in/alsa_out bridge."""
    return [
        program,
        "-j",
        client_name,
        "-d",
        hw_address,
        "-r",
        str(rate),
        "-p",
        str(periods),
        "-n",
        str(nperiods),
    ]


def build_bridge_command(
    client: BridgeClient,
    capture: bool,
    client_name: str,
    hw_address: str,
    rate: int,
    periods: int,
    nperiods: int,
) -> list[str]:
    """Build the launch command for one direction of a bridge."""
    if client == "zalsa":
        module = ZALSA_CAPTURE_MODULE if capture else ZALSA_PLAYBACK_MODULE
        return build_load_command(client_name, module, hw_address, rate, periods, nperiods)
    program = ALSA_CAPTURE_PROGRAM if capture else ALSA_PLAYBACK_PROGRAM
    return build_standalone_command(client_name, program, hw_address, rate, periods, nperiods)


def _launch(command: list[str]) -> subprocess.Popen:
    """Start a bridge command without waiting for it."""
    try:
        return subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except FileNotFoundError as e:
        logger.error("Bridge command not found: %s", command[0])
        raise command_error(
            ErrorCode.BRIDGE_LAUNCH_FAILED,
            f"{command[0]} command not found",
            command,
        ) from e
    except (subprocess.SubprocessError, OSError) as e:
        logger.error("Failed to launch %s: %s", " ".join(command[:3]), e)
        raise command_error(
            ErrorCode.BRIDGE_LAUNCH_FAILED,
            f"Failed to launch {command[0]}: {e}",
            command,
        ) from e


def _stop_process(client_name: str, process: subprocess.Popen) -> bool:
    """Terminate a standalone bridge. Returns False if it had already exited."""
    if process.poll() is not None:
        return False
    process.terminate()
    try:
        process.wait(timeout=BRIDGE_STOP_TIMEOUT_SEC)
    except subprocess.TimeoutExpired:
        logger.warning("Bridge %s ignored SIGTERM; killing it", client_name)
        process.kill()
        process.wait(timeout=BRIDGE_STOP_TIMEOUT_SEC)
    return True


def _start(client: BridgeClient, client_name: str, command: list[str]) -> int:
    """Launch one bridge client and return its PID."""
    logger.info("Launching bridge %s: %s", client_name, " ".join(command))
    if client == "zalsa":
        return _launch(command).pid

    with _processes_lock:
        previous = _bridge_processes.pop(client_name, None)
        if previous is not None and _stop_process(client_name, previous):
            logger.info("Replaced running bridge %s", client_name)
        process = _launch(command)
        _bridge_processes[client_name] = process
    return process.pid


def connect_device(
    device: AudioDevice,
    periods: int = DEFAULT_PERIODS,
    nperiods: int = DEFAULT_NPERIODS,
    rate: Optional[int] = None,
    client: str = DEFAULT_BRIDGE_CLIENT,
) -> BridgeLaunch:
    """
    Request bridges for every direction the device supports.

    Returns once the bridge commands have been spawned.

    Raises:
        ValueError: If periods or nperiods is not positive, or the bridge
            client is unknown
        AudioError: BRIDGE_NO_CAPABILITY if neither direction was probed,
            BRIDGE_LAUNCH_FAILED if a bridge cannot be spawned
    """
    if periods <= 0:
        raise ValueError("periods must be > 0")
    if nperiods <= 0:
        raise ValueError("nperiods must be > 0")
    if client not in BRIDGE_CLIENTS:
        raise ValueError(f"client must be one of {', '.join(BRIDGE_CLIENTS)}")

    if not device.can_capture and not device.can_playback:
        raise AudioError(
            error_code=ErrorCode.BRIDGE_NO_CAPABILITY.value,
            message=(
                f"ALSA device {device.card_name} ({device.hw_address}) "
                "has no probed playback or capture parameters"
            ),
        )

    sample_rate = rate if rate is not None else resolve_sample_rate(device.playback_params)
    launch = BridgeLaunch(
        device_name=device.card_name,
        hw_address=device.hw_address,
        client=client,
        rate=sample_rate,
        periods=periods,
        nperiods=nperiods,
    )

    if device.can_capture:
        name = capture_client_name(device.card_name)
        command = build_bridge_command(
            client, True, name, device.hw_address, sample_rate, periods, nperiods
        )
        launch.capture_pid = _start(client, name, command)
        launch.capture_client = name

    if device.can_playback:
        name = playback_client_name(device.card_name)
        command = build_bridge_command(
            client, False, name, device.hw_address, sample_rate, periods, nperiods
        )
        try:
            launch.playback_pid = _start(client, name, command)
        except AudioError:
            if launch.capture_client:
                logger.warning(
                    "Capture bridge %s was already requested; playback launch failed",
                    launch.capture_client,
                )
            raise
        launch.playback_client = name

    return launch


def _unload(client_name: str) -> bool:
    """Unload one in-process bridge client.

    Returns:
        True if unloaded, False if no such client was running.
    """
    command = ["jack_unload", client_name]
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=COMMAND_TIMEOUT_SEC,
        )
    except FileNotFoundError as e:
        raise command_error(
            ErrorCode.BRIDGE_TEARDOWN_FAILED, "jack_unload command not found", command
        ) from e
    except (subprocess.SubprocessError, OSError) as e:
        raise command_error(
            ErrorCode.BRIDGE_TEARDOWN_FAILED,
            f"Failed to unload {client_name}: {e}",
            command,
        ) from e

    if result.returncode == 0:
        return True

    output = f"{result.stderr}\n{result.stdout}".lower()
    if any(marker in output for marker in NOT_RUNNING_MARKERS):
        return False

    message = result.stderr.strip() or result.stdout.strip() or "unknown error"
    logger.error("Failed to unload %s: %s", client_name, message)
    raise command_error(
        ErrorCode.BRIDGE_TEARDOWN_FAILED,
        f"Failed to unload {client_name}: {message}",
        command,
        returncode=result.returncode,
        stderr=result.stderr,
    )


def _teardown(client_name: str) -> bool:
    with _processes_lock:
        process = _bridge_processes.pop(client_name, None)
    if process is None:
        return _unload(client_name)
    try:
        return _stop_process(client_name, process)
    except (subprocess.SubprocessError, OSError) as e:
        raise AudioError(
            error_code=ErrorCode.BRIDGE_TEARDOWN_FAILED.value,
            message=f"Failed to stop {client_name}: {e}",
            inner_error={"command": f"kill {process.pid}"},
        ) from e


def disconnect_device(device_name: str) -> BridgeTeardown:
    """
    Stop both bridge clients of a device.

    Standalone bridges started by this process are terminated; any other
    client is unloaded with jack_unload. A client that is not running counts
    as success, so repeated calls are harmless.

    Raises:
        AudioError: BRIDGE_TEARDOWN_FAILED for any other failure, including
            an unreachable JACK server
    """
    teardown = BridgeTeardown(device_name=device_name)
    for client_name in (capture_client_name(device_name), playback_client_name(device_name)):
        if _teardown(client_name):
            logger.info("Stopped bridge client %s", client_name)
            teardown.unloaded.append(client_name)
        else:
            logger.info("Bridge client %s was not running", client_name)
            teardown.already_absent.append(client_name)
    return teardown
