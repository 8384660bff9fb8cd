"""JACK connection graph queries and port patching.

``jack_lsp -c`` lists each port followed by its connected peers, indented::

    alsa_USB_src:capture_1
       system:playback_1
    alsa_USB_sink:playback_1
"""

import logging
import re
import subprocess
from typing import Optional

from ..constants import (
    BRIDGE_PREFIX,
    CAPTURE_SUFFIX,
    COMMAND_TIMEOUT_SEC,
    NOT_CONNECTED_MARKERS,
    PLAYBACK_SUFFIX,
    SAFE_PORT_NAME_PATTERN,
)
from ..error_codes import ErrorCode, command_error
from ..models import ConnectionGraph, GraphEdge

logger = logging.getLogger(__name__)


def bridge_port_pattern(prefix: str = BRIDGE_PREFIX) -> re.Pattern[str]:
    """Pattern for "<prefix>_<device>_<src|sink>:<port>" port lines."""
    return re.compile(
        rf"^{re.escape(prefix)}_(?P<device>.+)_(?:{CAPTURE_SUFFIX}|{PLAYBACK_SUFFIX})"
        r":(?P<port>\S.*)$"
    )


def parse_connection_listing(
    output: str, prefix: str = BRIDGE_PREFIX
) -> Optional[ConnectionGraph]:
    """
    Rebuild the bridged devices and their edges from ``jack_lsp -c`` output.

    A non-indented bridge port line sets the current device. Every other
    non-blank line is a peer of the current device.

    Returns:
        ConnectionGraph, or None if no bridge port appears in the output.
    """
    pattern = bridge_port_pattern(prefix)
    graph = ConnectionGraph()
    current: Optional[str] = None

    for line in output.split("\n"):
        if not line.strip():
            continue
        match = pattern.match(line)
        if match:
            current = match.group("device")
            if current not in graph.bridged_devices:
                graph.bridged_devices.append(current)
            continue
        if current is None:
            logger.debug("Ignoring port line before any bridge port: %s", line)
            continue
        graph.edges.append(GraphEdge(source=current, destination=line.strip()))

    if not graph.bridged_devices:
        return None
    return graph


def read_connection_graph(prefix: str = BRIDGE_PREFIX) -> Optional[ConnectionGraph]:
    """
    Query JACK for bridge ports and their connections.

    Returns:
        ConnectionGraph, or None when no bridged devices are present.

    Raises:
        AudioError: JACK_QUERY_FAILED when jack_lsp is unavailable or reports
            an error (e.g. JACK server not running)
    """
    command = ["jack_lsp", "-c", f"{prefix}_"]
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=COMMAND_TIMEOUT_SEC,
        )
    except FileNotFoundError as e:
        raise command_error(
            ErrorCode.JACK_QUERY_FAILED, "jack_lsp command not found", command
        ) from e
    except subprocess.TimeoutExpired as e:
        raise command_error(
            ErrorCode.JACK_QUERY_FAILED, "Timeout while querying JACK ports", command
        ) from e
    except (subprocess.SubprocessError, OSError) as e:
        raise command_error(
            ErrorCode.JACK_QUERY_FAILED, f"Failed to query JACK ports: {e}", command
        ) from e

    stdout = result.stdout or ""
    stderr = result.stderr or ""
    if result.returncode != 0:
        # A filter with no matches may exit non-zero without printing anything
        if not stdout.strip() and not stderr.strip():
            return None
        logger.error("jack_lsp failed: %s", stderr.strip() or stdout.strip())
        raise command_error(
            ErrorCode.JACK_QUERY_FAILED,
            f"Failed to query JACK ports: {stderr.strip() or stdout.strip()}",
            command,
            returncode=result.returncode,
            stderr=stderr,
        )

    if not stdout.strip():
        return None
    return parse_connection_listing(stdout, prefix)


def is_safe_port_name(port: str) -> bool:
    """Check if the port name matches the allowed "client:port" pattern."""
    return SAFE_PORT_NAME_PATTERN.match(port) is not None


def _patch_ports(tool: str, source: str, destination: str, tolerated: tuple[str, ...]) -> bool:
    command = [tool, source, destination]
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=COMMAND_TIMEOUT_SEC,
        )
    except FileNotFoundError as e:
        raise command_error(
            ErrorCode.JACK_PORT_PATCH_FAILED, f"{tool} command not found", command
        ) from e
    except (subprocess.SubprocessError, OSError) as e:
        raise command_error(
            ErrorCode.JACK_PORT_PATCH_FAILED, f"{tool} failed: {e}", command
        ) from e

    if result.returncode == 0:
        return True

    output = f"{result.stderr}\n{result.stdout}".lower()
    if any(marker in output for marker in tolerated):
        return False

    message = result.stderr.strip() or result.stdout.strip() or "unknown error"
    raise command_error(
        ErrorCode.JACK_PORT_PATCH_FAILED,
        f"{source} -> {destination}: {message}",
        command,
        returncode=result.returncode,
        stderr=result.stderr,
    )


def connect_ports(source: str, destination: str) -> bool:
    """Connect two JACK ports.

    Returns:
        True if a new connection was made, False if it already existed.
    """
    changed = _patch_ports("jack_connect", source, destination, ("already", "exists"))
    logger.info(
        "Connected %s -> %s" if changed else "Ports %s -> %s already connected",
        source,
        destination,
    )
    return changed


def disconnect_ports(source: str, destination: str) -> bool:
    """Disconnect two JACK ports.

    Returns:
        True if a connection was removed, False if none existed.
    """
    changed = _patch_ports(
        "jack_disconnect", source, destination, NOT_CONNECTED_MARKERS
    )
    logger.info(
        "Disconnected %s -> %s" if changed else "Ports %s -> %s were not connected",
        source,
        destination,
    )
    return changed
