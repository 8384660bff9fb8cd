"""Tests for the bridge lifecycle (jack_load/jack_unload and alsa_in/alsa_out)."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from patchbay.error_codes import AudioError, ErrorCode
from patchbay.models import AudioDevice, ParamRange
from patchbay.services import bridge
from patchbay.services.bridge import (
    build_bridge_command,
    build_load_command,
    capture_client_name,
    connect_device,
    disconnect_device,
    playback_client_name,
    resolve_sample_rate,
)


def _device(playback=None, capture=None, card_name="USB") -> AudioDevice:
    return AudioDevice(
        card="1",
        card_name=card_name,
        device="0",
        description="USB Audio",
        playback_params=playback,
        capture_params=capture,
    )


FULL_PARAMS = {"rate": ParamRange(min=44100, max=192000), "periods": ParamRange(min=2, max=32)}


class TestNaming:
    def test_client_names(self):
        assert capture_client_name("USB") == "alsa_USB_src"
        assert playback_client_name("USB") == "alsa_USB_sink"

    def test_load_command(self):
        command = build_load_command("alsa_USB_src", "zalsa_in", "hw:1,0", 48000, 128, 2)
        assert command == [
            "jack_load",
            "alsa_USB_src",
            "zalsa_in",
            "-i",
            "-d hw:1,0 -r 48000 -p 128 -n 2",
        ]

    def test_standalone_commands(self):
        capture = build_bridge_command("alsa", True, "alsa_USB_src", "hw:1,0", 48000, 128, 2)
        playback = build_bridge_command("alsa", False, "alsa_USB_sink", "hw:1,0", 48000, 128, 2)
        assert capture == [
            "alsa_in", "-j", "alsa_USB_src", "-d", "hw:1,0",
            "-r", "48000", "-p", "128", "-n", "2",
        ]
        assert playback[:3] == ["alsa_out", "-j", "alsa_USB_sink"]

    def test_zalsa_commands(self):
        capture = build_bridge_command("zalsa", True, "alsa_USB_src", "hw:1,0", 48000, 128, 2)
        playback = build_bridge_command("zalsa", False, "alsa_USB_sink", "hw:1,0", 48000, 128, 2)
        assert capture[:3] == ["jack_load", "alsa_USB_src", "zalsa_in"]
        assert playback[:3] == ["jack_load", "alsa_USB_sink", "zalsa_out"]


class TestResolveSampleRate:
    def test_scalar_rate_is_used(self):
        assert resolve_sample_rate({"rate": 44100, "periods": 1}) == 44100

    def test_range_containing_default(self):
        assert resolve_sample_rate({"rate": ParamRange(min=8000, max=192000)}) == 48000

    def test_range_above_default_uses_max(self):
        assert resolve_sample_rate({"rate": ParamRange(min=88200, max=96000)}) == 96000

    def test_missing_params(self):
        assert resolve_sample_rate(None) == 48000

    def test_textual_rate(self):
        assert resolve_sample_rate({"rate": "ALL"}) == 48000


class TestConnectDevice:
    """Tests for connect_device()."""

    def test_launches_both_directions(self):
        device = _device(playback=FULL_PARAMS, capture=FULL_PARAMS)
        with patch("subprocess.Popen") as mock_popen:
            mock_popen.side_effect = [MagicMock(pid=101), MagicMock(pid=102)]
            launch = connect_device(device, periods=256, nperiods=3)

        assert launch.capture_client == "alsa_USB_src"
        assert launch.capture_pid == 101
        assert launch.playback_client == "alsa_USB_sink"
        assert launch.playback_pid == 102
        assert launch.rate == 48000

        capture_cmd = mock_popen.call_args_list[0].args[0]
        playback_cmd = mock_popen.call_args_list[1].args[0]
        assert capture_cmd[:3] == ["jack_load", "alsa_USB_src", "zalsa_in"]
        assert playback_cmd[:3] == ["jack_load", "alsa_USB_sink", "zalsa_out"]
        assert capture_cmd[4] == "-d hw:1,0 -r 48000 -p 256 -n 3"

    def test_does_not_wait_for_loader(self):
        device = _device(capture=FULL_PARAMS)
        with patch("subprocess.Popen") as mock_popen:
            process = MagicMock(pid=7)
            mock_popen.return_value = process
            connect_device(device)

        process.wait.assert_not_called()
        process.communicate.assert_not_called()
        assert mock_popen.call_args.kwargs["start_new_session"] is True

    def test_capture_only_device(self):
        device = _device(capture=FULL_PARAMS)
        with patch("subprocess.Popen", return_value=MagicMock(pid=5)) as mock_popen:
            launch = connect_device(device)

        assert mock_popen.call_count == 1
        assert launch.capture_client == "alsa_USB_src"
        assert launch.playback_client is None

    def test_playback_only_device(self):
        device = _device(playback={"rate": 44100, "periods": 1})
        with patch("subprocess.Popen", return_value=MagicMock(pid=5)) as mock_popen:
            launch = connect_device(device)

        assert mock_popen.call_count == 1
        assert launch.capture_client is None
        assert launch.playback_client == "alsa_USB_sink"
        assert launch.rate == 44100

    def test_explicit_rate_wins(self):
        device = _device(playback={"rate": 44100, "periods": 1})
        with patch("subprocess.Popen", return_value=MagicMock(pid=5)):
            launch = connect_device(device, rate=96000)
        assert launch.rate == 96000

    def test_device_without_capabilities(self):
        with patch("subprocess.Popen") as mock_popen:
            with pytest.raises(AudioError) as exc_info:
                connect_device(_device())

        assert exc_info.value.error_code == ErrorCode.BRIDGE_NO_CAPABILITY.value
        assert exc_info.value.http_status == 409
        mock_popen.assert_not_called()

    @pytest.mark.parametrize("periods,nperiods", [(0, 2), (128, 0), (-1, 2)])
    def test_rejects_non_positive_buffering(self, periods, nperiods):
        with pytest.raises(ValueError):
            connect_device(_device(capture=FULL_PARAMS), periods=periods, nperiods=nperiods)

    def test_missing_jack_load(self):
        device = _device(capture=FULL_PARAMS)
        with patch("subprocess.Popen", side_effect=FileNotFoundError):
            with pytest.raises(AudioError) as exc_info:
                connect_device(device)

        assert exc_info.value.error_code == ErrorCode.BRIDGE_LAUNCH_FAILED.value
        assert "jack_load" in exc_info.value.inner_error["command"]

    def test_playback_failure_after_capture_launch(self):
        device = _device(playback=FULL_PARAMS, capture=FULL_PARAMS)
        with patch("subprocess.Popen") as mock_popen:
            mock_popen.side_effect = [MagicMock(pid=1), OSError("fork failed")]
            with pytest.raises(AudioError) as exc_info:
                connect_device(device)

        assert exc_info.value.error_code == ErrorCode.BRIDGE_LAUNCH_FAILED.value


class TestDisconnectDevice:
    """Tests for disconnect_device()."""

    def test_unloads_both_clients(self):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
            teardown = disconnect_device("USB")

        commands = [c.args[0] for c in mock_run.call_args_list]
        assert commands == [
            ["jack_unload", "alsa_USB_src"],
            ["jack_unload", "alsa_USB_sink"],
        ]
        assert teardown.unloaded == ["alsa_USB_src", "alsa_USB_sink"]
        assert teardown.already_absent == []

    def test_unknown_device_is_not_an_error(self):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(
                returncode=1, stdout="", stderr="alsa_ghost_src is not a running client\n"
            )
            teardown = disconnect_device("ghost")

        assert teardown.unloaded == []
        assert teardown.already_absent == ["alsa_ghost_src", "alsa_ghost_sink"]

    def test_repeated_disconnect(self):
        results = [
            MagicMock(returncode=0, stdout="", stderr=""),
            MagicMock(returncode=0, stdout="", stderr=""),
            MagicMock(returncode=1, stdout="", stderr="alsa_USB_src is not a running client"),
            MagicMock(returncode=1, stdout="", stderr="alsa_USB_sink is not a running client"),
        ]
        with patch("subprocess.run", side_effect=results):
            first = disconnect_device("USB")
            second = disconnect_device("USB")

        assert len(first.unloaded) == 2
        assert len(second.already_absent) == 2

    def test_jack_server_down_raises(self, jack_not_running_output):
        """"No such file or directory" from the server socket is not a missing client."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(
                returncode=1, stdout="", stderr=jack_not_running_output
            )
            with pytest.raises(AudioError) as exc_info:
                disconnect_device("USB")

        assert exc_info.value.error_code == ErrorCode.BRIDGE_TEARDOWN_FAILED.value
        assert exc_info.value.inner_error["stderr"].startswith("Cannot connect to server socket")
        assert mock_run.call_count == 1

    def test_timeout_raises(self):
        with patch(
            "subprocess.run", side_effect=subprocess.TimeoutExpired(["jack_unload"], 5.0)
        ):
            with pytest.raises(AudioError) as exc_info:
                disconnect_device("USB")
        assert exc_info.value.error_code == ErrorCode.BRIDGE_TEARDOWN_FAILED.value


class TestStandaloneBridges:
    """alsa_in/alsa_out bridges run as processes owned by this service."""

    def _running(self, pid):
        process = MagicMock(pid=pid)
        process.poll.return_value = None
        return process

    def test_connect_launches_alsa_in_and_alsa_out(self):
        device = _device(playback=FULL_PARAMS, capture=FULL_PARAMS)
        capture, playback = self._running(21), self._running(22)
        with patch("subprocess.Popen", side_effect=[capture, playback]) as mock_popen:
            launch = connect_device(device, client="alsa")

        commands = [c.args[0] for c in mock_popen.call_args_list]
        assert commands[0] == [
            "alsa_in", "-j", "alsa_USB_src", "-d", "hw:1,0",
            "-r", "48000", "-p", "128", "-n", "2",
        ]
        assert commands[1][:3] == ["alsa_out", "-j", "alsa_USB_sink"]
        assert launch.client == "alsa"
        assert bridge._bridge_processes == {"alsa_USB_src": capture, "alsa_USB_sink": playback}

    def test_unknown_client_is_rejected(self):
        with patch("subprocess.Popen") as mock_popen:
            with pytest.raises(ValueError):
                connect_device(_device(capture=FULL_PARAMS), client="pulse")
        mock_popen.assert_not_called()

    def test_disconnect_terminates_processes(self):
        device = _device(playback=FULL_PARAMS, capture=FULL_PARAMS)
        capture, playback = self._running(21), self._running(22)
        with patch("subprocess.Popen", side_effect=[capture, playback]):
            connect_device(device, client="alsa")

        with patch("subprocess.run") as mock_run:
            teardown = disconnect_device("USB")

        mock_run.assert_not_called()
        capture.terminate.assert_called_once_with()
        playback.terminate.assert_called_once_with()
        assert teardown.unloaded == ["alsa_USB_src", "alsa_USB_sink"]
        assert bridge._bridge_processes == {}

    def test_exited_process_counts_as_absent(self):
        device = _device(capture=FULL_PARAMS)
        process = self._running(21)
        with patch("subprocess.Popen", return_value=process):
            connect_device(device, client="alsa")
        process.poll.return_value = 1

        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(
                returncode=1, stdout="", stderr="alsa_USB_sink is not a running client\n"
            )
            teardown = disconnect_device("USB")

        process.terminate.assert_not_called()
        assert teardown.already_absent == ["alsa_USB_src", "alsa_USB_sink"]

    def test_stubborn_process_is_killed(self):
        device = _device(capture=FULL_PARAMS)
        process = self._running(21)
        process.wait.side_effect = [subprocess.TimeoutExpired(["alsa_in"], 3.0), 0]
        with patch("subprocess.Popen", return_value=process):
            connect_device(device, client="alsa")

        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(
                returncode=1, stdout="", stderr="alsa_USB_sink is not a running client\n"
            )
            teardown = disconnect_device("USB")

        process.kill.assert_called_once_with()
        assert teardown.unloaded == ["alsa_USB_src"]

    def test_reconnect_replaces_running_process(self):
        device = _device(capture=FULL_PARAMS)
        first, second = self._running(21), self._running(31)
        with patch("subprocess.Popen", side_effect=[first, second]):
            connect_device(device, client="alsa")
            launch = connect_device(device, client="alsa")

        first.terminate.assert_called_once_with()
        assert launch.capture_pid == 31
        assert bridge._bridge_processes["alsa_USB_src"] is second
