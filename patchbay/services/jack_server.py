"""JACK server control via jack_control (D-Bus)."""

import logging
import subprocess

from ..constants import (
    COMMAND_TIMEOUT_SEC,
    JACK_DEFAULT_DRIVER,
    JACK_DEFAULT_PERIOD,
    JACK_DEFAULT_RATE,
)
from ..error_codes import ErrorCode, command_error
from ..models import JackServerStatus

logger = logging.getLogger(__name__)


def _run(*args: str) -> subprocess.CompletedProcess:
    """Run one jack_control subcommand without checking its exit status."""
    command = ["jack_control", *args]
    try:
        return subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=COMMAND_TIMEOUT_SEC,
        )
    except FileNotFoundError as e:
        raise command_error(
            ErrorCode.JACK_SERVER_FAILED, "jack_control command not found", command
        ) from e
    except (subprocess.SubprocessError, OSError) as e:
        raise command_error(
            ErrorCode.JACK_SERVER_FAILED, f"jack_control {args[0]} failed: {e}", command
        ) from e


def _jack_control(*args: str) -> subprocess.CompletedProcess:
    """Run one jack_control subcommand, raising AudioError on failure."""
    result = _run(*args)
    if result.returncode != 0:
        error_msg = result.stderr.strip() or result.stdout.strip() or "unknown error"
        logger.error("jack_control %s failed: %s", " ".join(args), error_msg)
        raise command_error(
            ErrorCode.JACK_SERVER_FAILED,
            f"jack_control {' '.join(args)} failed: {error_msg}",
            ["jack_control", *args],
            returncode=result.returncode,
            stderr=result.stderr,
        )
    return result


def get_jack_status() -> JackServerStatus:
    """Return whether the JACK server is started.

    ``jack_control status`` prints "started" or "stopped" on its last line
    and exits non-zero when stopped.
    """
    result = _run("status")
    output = (result.stdout or "").strip()
    lines = output.splitlines()
    running = result.returncode == 0 and bool(lines) and lines[-1].strip() == "started"
    return JackServerStatus(running=running, status=output or (result.stderr or "").strip())


def start_jack_server(
    rate: int = JACK_DEFAULT_RATE,
    period: int = JACK_DEFAULT_PERIOD,
    driver: str = JACK_DEFAULT_DRIVER,
) -> None:
    """Start the JACK server, then select the driver and its parameters.

    Raises:
        AudioError: JACK_SERVER_FAILED if any step fails
    """
    logger.info("Starting JACK server (driver=%s rate=%d period=%d)", driver, rate, period)
    _jack_control("start")
    _jack_control("ds", driver)
    _jack_control("dps", "rate", str(rate))
    _jack_control("dps", "period", str(period))
    logger.info("JACK server started")


def stop_jack_server() -> None:
    """Stop the JACK server and terminate the D-Bus service.

    Raises:
        AudioError: JACK_SERVER_FAILED if any step fails
    """
    logger.info("Stopping JACK server...")
    _jack_control("stop")
    _jack_control("exit")
    logger.info("JACK server stopped")
