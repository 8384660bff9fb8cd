"""JACK graph and server endpoints."""

from fastapi import APIRouter

from ..error_codes import AudioError, ErrorCode
from ..models import (
    ApiResponse,
    ConnectionGraph,
    JackServerStartRequest,
    JackServerStatus,
    PortPatchRequest,
)
from ..services.graph import (
    connect_ports,
    disconnect_ports,
    is_safe_port_name,
    read_connection_graph,
)
from ..services.jack_server import get_jack_status, start_jack_server, stop_jack_server

router = APIRouter(prefix="/api", tags=["jack"])


def _validate_ports(request: PortPatchRequest) -> None:
    for port in (request.source, request.destination):
        if not is_safe_port_name(port):
            raise AudioError(
                error_code=ErrorCode.VALIDATION_INVALID_PORT_NAME.value,
                message=f"Invalid port name: {port!r}",
            )


@router.get("/jack-connection", response_model=ConnectionGraph)
def get_jack_connection() -> ConnectionGraph:
    """
    Return bridged ALSA devices and their JACK connections.

    Responds 404 when no device is currently bridged.
    """
    graph = read_connection_graph()
    if graph is None:
        raise AudioError(
            error_code=ErrorCode.JACK_NO_BRIDGED_DEVICES.value,
            message="No bridged ALSA devices found",
        )
    return graph


@router.get("/jack/status", response_model=JackServerStatus)
def jack_status() -> JackServerStatus:
    """Get JACK server status."""
    return get_jack_status()


@router.post("/jack/start", response_model=ApiResponse)
def jack_start(request: JackServerStartRequest | None = None) -> ApiResponse:
    """Start the JACK server with the given driver parameters."""
    request = request or JackServerStartRequest()
    start_jack_server(rate=request.rate, period=request.period, driver=request.driver)
    return ApiResponse(
        success=True,
        message="JACK server started",
        data=request.model_dump(),
    )


@router.post("/jack/stop", response_model=ApiResponse)
def jack_stop() -> ApiResponse:
    """Stop the JACK server."""
    stop_jack_server()
    return ApiResponse(success=True, message="JACK server stopped")


@router.post("/jack/ports/connect", response_model=ApiResponse)
def jack_ports_connect(request: PortPatchRequest) -> ApiResponse:
    """Connect two JACK ports. Connecting an existing connection succeeds."""
    _validate_ports(request)
    changed = connect_ports(request.source, request.destination)
    return ApiResponse(
        success=True,
        message="Ports connected" if changed else "Ports already connected",
        data={"changed": changed},
    )


@router.post("/jack/ports/disconnect", response_model=ApiResponse)
def jack_ports_disconnect(request: PortPatchRequest) -> ApiResponse:
    """Disconnect two JACK ports. Missing connections are not an error."""
    _validate_ports(request)
    changed = disconnect_ports(request.source, request.destination)
    return ApiResponse(
        success=True,
        message="Ports disconnected" if changed else "Ports were not connected",
        data={"changed": changed},
    )
