"""ALSA device discovery and capability probing."""

import logging
import subprocess
from typing import Literal

from ..constants import (
    CAPTURE_PROBE_COMMAND,
    CAPTURE_PROBE_SINK,
    CARD_DEVICE_PATTERN,
    COMMAND_TIMEOUT_SEC,
    LIST_DEVICES_COMMAND,
    PLAYBACK_PROBE_COMMAND,
    PLAYBACK_PROBE_SOURCE,
    PROBE_TIMEOUT_SEC,
)
from ..error_codes import ErrorCode, command_error
from ..models import AudioDevice, DeviceParams
from .params import parse_hw_params_output

logger = logging.getLogger(__name__)

Direction = Literal["playback", "capture"]


def _to_text(data: str | bytes | None) -> str:
    # TimeoutExpired carries raw bytes even when text=True was requested
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def build_probe_command(direction: Direction, hw_address: str) -> list[str]:
    """Build the hw-params dump command for one direction of a device."""
    if direction == "playback":
        return [
            PLAYBACK_PROBE_COMMAND,
            "--dump-hw-params",
            "-D",
            hw_address,
            PLAYBACK_PROBE_SOURCE,
        ]
    return [
        CAPTURE_PROBE_COMMAND,
        "--dump-hw-params",
        "-D",
        hw_address,
        CAPTURE_PROBE_SINK,
    ]


def probe_device_params(
    direction: Direction, hw_address: str, timeout: float = PROBE_TIMEOUT_SEC
) -> DeviceParams | None:
    """
    Probe hardware parameters of one direction of a device.

    The dump is written to stderr before the device starts streaming, so the
    command is normally still running when the timeout expires. Whatever was
    captured up to that point is searched for a dump block.

    Returns:
        DeviceParams, or None when no complete dump block was produced
        (device busy or absent, timeout before the dump, missing binary).
    """
    command = build_probe_command(direction, hw_address)
    try:
        result = subprocess.run(command, capture_output=True, text=True, timeout=timeout)
        stdout, stderr = result.stdout, result.stderr
        outcome = f"exit {result.returncode}"
    except subprocess.TimeoutExpired as e:
        stdout, stderr = _to_text(e.stdout), _to_text(e.stderr)
        outcome = f"timeout after {timeout}s"
    except (subprocess.SubprocessError, OSError) as e:
        logger.info("%s probe for %s failed: %s", direction, hw_address, e)
        return None

    output = _to_text(stderr) + "\n" + _to_text(stdout)
    params = parse_hw_params_output(output)
    if params is None:
        logger.info(
            "%s probe for %s produced no hw params (%s)", direction, hw_address, outcome
        )
        return None
    return params


def parse_card_listing(output: str) -> list[tuple[str, str, str, str]]:
    """
    Parse ``aplay -l`` output.

    Returns:
        (card, card_name, device, description) tuples in listing order.
    """
    entries: list[tuple[str, str, str, str]] = []
    for line in output.split("\n"):
        match = CARD_DEVICE_PATTERN.search(line)
        if not match:
            if line.strip():
                logger.debug("Skipping card listing line: %s", line)
            continue
        entries.append(
            (
                match.group("card"),
                match.group("card_name"),
                match.group("device"),
                match.group("description"),
            )
        )
    return entries


def list_card_entries() -> list[tuple[str, str, str, str]]:
    """Run the card listing command and parse it.

    Raises:
        AudioError: ALSA_LIST_FAILED if the command cannot be run or fails.
    """
    try:
        result = subprocess.run(
            LIST_DEVICES_COMMAND,
            capture_output=True,
            text=True,
            timeout=COMMAND_TIMEOUT_SEC,
        )
    except FileNotFoundError as e:
        raise command_error(
            ErrorCode.ALSA_LIST_FAILED,
            f"{LIST_DEVICES_COMMAND[0]} command not found",
            LIST_DEVICES_COMMAND,
        ) from e
    except subprocess.TimeoutExpired as e:
        raise command_error(
            ErrorCode.ALSA_LIST_FAILED,
            "Timeout while listing ALSA devices",
            LIST_DEVICES_COMMAND,
        ) from e
    except (subprocess.SubprocessError, OSError) as e:
        raise command_error(
            ErrorCode.ALSA_LIST_FAILED,
            f"Failed to list ALSA devices: {e}",
            LIST_DEVICES_COMMAND,
        ) from e

    if result.returncode != 0:
        # "aplay: device_list:274: no soundcards found..." also exits non-zero
        if "no soundcards found" in result.stderr.lower():
            return []
        logger.error("ALSA device listing failed: %s", result.stderr.strip())
        raise command_error(
            ErrorCode.ALSA_LIST_FAILED,
            f"Failed to list ALSA devices: {result.stderr.strip() or 'unknown error'}",
            LIST_DEVICES_COMMAND,
            returncode=result.returncode,
            stderr=result.stderr,
        )
    return parse_card_listing(result.stdout)


def list_devices(probe_timeout: float = PROBE_TIMEOUT_SEC) -> list[AudioDevice]:
    """
    Discover ALSA devices and probe their playback/capture parameters.

    Probes run one after another: ALSA hardware nodes are opened exclusively
    and concurrent probes on the same node fail with "resource busy".

    Returns:
        AudioDevice list in card listing order.

    Raises:
        AudioError: ALSA_LIST_FAILED if the card listing fails.
    """
    devices: list[AudioDevice] = []
    for card, card_name, device, description in list_card_entries():
        hw_address = f"hw:{card},{device}"
        playback = probe_device_params("playback", hw_address, probe_timeout)
        capture = probe_device_params("capture", hw_address, probe_timeout)
        devices.append(
            AudioDevice(
                card=card,
                card_name=card_name,
                device=device,
                description=description,
                playback_params=playback,
                capture_params=capture,
            )
        )
        logger.info(
            "Discovered %s (%s): playback=%s capture=%s",
            hw_address,
            card_name,
            playback is not None,
            capture is not None,
        )
    return devices
