"""Services for the ALSA-JACK Patchbay API."""

from .alsa import list_devices, probe_device_params
from .bridge import (
    BridgeLaunch,
    BridgeTeardown,
    build_bridge_command,
    connect_device,
    disconnect_device,
)
from .graph import (
    connect_ports,
    disconnect_ports,
    is_safe_port_name,
    parse_connection_listing,
    read_connection_graph,
)
from .jack_server import get_jack_status, start_jack_server, stop_jack_server
from .params import parse_param_value, snake_to_camel
from .registry import DeviceRegistry

__all__ = [
    # alsa
    "list_devices",
    "probe_device_params",
    # bridge
    "BridgeLaunch",
    "BridgeTeardown",
    "build_bridge_command",
    "connect_device",
    "disconnect_device",
    # graph
    "connect_ports",
    "disconnect_ports",
    "is_safe_port_name",
    "parse_connection_listing",
    "read_connection_graph",
    # jack server
    "get_jack_status",
    "start_jack_server",
    "stop_jack_server",
    # params
    "parse_param_value",
    "snake_to_camel",
    # registry
    "DeviceRegistry",
]
