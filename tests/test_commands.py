"""Tests for the adb executable bridge - subprocess calls are mocked."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from wired_link.adb.commands import AdbCommands, require_adb
from wired_link.adb.config import config
from wired_link.utils.error_handler import AdbCommandError, AdbNotFoundError

ADB = "/opt/platform-tools/adb"
SERIAL = "1WMHH815K10234"


def _completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def run_mock():
    with patch("wired_link.adb.commands.subprocess.run") as mock_run:
        mock_run.return_value = _completed()
        yield mock_run


@pytest.fixture
def adb():
    return AdbCommands(ADB, timeout=5)


def _argv(mock_run, index=-1):
    return mock_run.call_args_list[index][0][0]


class TestRun:
    def test_builds_command_with_serial(self, adb, run_mock):
        adb.forward_port(SERIAL, 9943)
        assert _argv(run_mock) == [ADB, "-s", SERIAL, "forward", "tcp:9943", "tcp:9943"]
        assert run_mock.call_args.kwargs["timeout"] == 5
        assert run_mock.call_args.kwargs["capture_output"] is True

    def test_default_timeout_from_config(self, run_mock):
        adb = AdbCommands(ADB)
        adb.kill_server()
        assert adb.timeout == config.COMMAND_TIMEOUT
        assert run_mock.call_args.kwargs["timeout"] == config.COMMAND_TIMEOUT

    def test_nonzero_exit_raises(self, adb, run_mock):
        run_mock.return_value = _completed(returncode=1, stderr="error: device offline")
        with pytest.raises(AdbCommandError) as exc_info:
            adb.uninstall_package(SERIAL, "alvr.client")
        assert exc_info.value.returncode == 1
        assert "device offline" in exc_info.value.output

    def test_timeout_raises(self, adb, run_mock):
        run_mock.side_effect = subprocess.TimeoutExpired(cmd="adb", timeout=5)
        with pytest.raises(AdbCommandError, match="timed out"):
            adb.list_devices()

    def test_spawn_failure_raises(self, adb, run_mock):
        run_mock.side_effect = FileNotFoundError(2, "No such file or directory")
        with pytest.raises(AdbCommandError, match="Failed to run adb"):
            adb.kill_server()


class TestDevicesAndPorts:
    def test_list_devices(self, adb, run_mock):
        run_mock.return_value = _completed("List of devices attached\n1WMHH815K10234 device usb:1-1 transport_id:3\n")
        devices = adb.list_devices()
        assert _argv(run_mock) == [ADB, "devices", "-l"]
        assert [d.serial for d in devices] == [SERIAL]

    def test_forwarded_ports_filtered_by_serial(self, adb, run_mock):
        run_mock.return_value = _completed(f"{SERIAL} tcp:9943 tcp:9943\nOTHER tcp:9944 tcp:9944\n")
        ports = adb.list_forwarded_ports(SERIAL)
        assert [p.local for p in ports] == [9943]

    def test_malformed_forward_list_raises(self, adb, run_mock):
        run_mock.return_value = _completed("what is this\n")
        with pytest.raises(AdbCommandError, match="Malformed"):
            adb.list_forwarded_ports(SERIAL)


class TestPackages:
    def test_is_package_installed(self, adb, run_mock):
        run_mock.return_value = _completed("package:alvr.client.dev\npackage:alvr.client\n")
        assert adb.is_package_installed(SERIAL, "alvr.client")
        assert _argv(run_mock)[3:] == ["shell", "pm", "list", "packages", "alvr.client"]

    def test_get_package_sha1(self, adb, run_mock):
        digest = "a94a8fe5ccb19ba61c4c0873d391e987982fbbd3"
        run_mock.side_effect = [
            _completed("package:/data/app/alvr.client-1/base.apk\n"),
            _completed(f"{digest}  /data/app/alvr.client-1/base.apk\n"),
        ]
        assert adb.get_package_sha1(SERIAL, "alvr.client") == digest
        assert _argv(run_mock)[3:] == ["shell", "sha1sum", "/data/app/alvr.client-1/base.apk"]

    def test_get_package_sha1_not_installed(self, adb, run_mock):
        run_mock.return_value = _completed("", returncode=1)
        assert adb.get_package_sha1(SERIAL, "alvr.client") is None
        assert run_mock.call_count == 1

    @pytest.mark.parametrize(
        "returncode,stderr",
        [(1, "error: device unauthorized."), (255, ""), (255, "error: no devices/emulators found")],
    )
    def test_get_package_sha1_bridge_error(self, adb, run_mock, returncode, stderr):
        run_mock.return_value = _completed("", returncode=returncode, stderr=stderr)
        with pytest.raises(AdbCommandError):
            adb.get_package_sha1(SERIAL, "alvr.client")
        assert run_mock.call_count == 1

    def test_install_failure_in_output(self, adb, run_mock):
        run_mock.return_value = _completed("Performing Streamed Install\nFailure [INSTALL_FAILED_VERSION_DOWNGRADE]\n")
        with pytest.raises(AdbCommandError, match="INSTALL_FAILED_VERSION_DOWNGRADE"):
            adb.install_package(SERIAL, "/tmp/client.apk")
        assert _argv(run_mock) == [ADB, "-s", SERIAL, "install", "-r", "/tmp/client.apk"]

    def test_grant_permission(self, adb, run_mock):
        adb.grant_permission(SERIAL, "alvr.client", "android.permission.RECORD_AUDIO")
        assert _argv(run_mock)[3:] == ["shell", "pm", "grant", "alvr.client", "android.permission.RECORD_AUDIO"]


class TestLifecycle:
    def test_get_process_id(self, adb, run_mock):
        run_mock.return_value = _completed("4242\n")
        assert adb.get_process_id(SERIAL, "alvr.client") == 4242

    def test_get_process_id_not_running(self, adb, run_mock):
        run_mock.return_value = _completed("", returncode=1)
        assert adb.get_process_id(SERIAL, "alvr.client") is None

    def test_get_process_id_bridge_error(self, adb, run_mock):
        run_mock.return_value = _completed("", returncode=255, stderr="error: no devices/emulators found")
        with pytest.raises(AdbCommandError):
            adb.get_process_id(SERIAL, "alvr.client")

    def test_is_activity_resumed(self, adb, run_mock):
        run_mock.return_value = _completed("ACTIVITY alvr.client/.Activity\n  mResumed=true mStopped=false\n")
        assert adb.is_activity_resumed(SERIAL, "alvr.client")

    def test_start_application(self, adb, run_mock):
        adb.start_application(SERIAL, "alvr.client")
        assert _argv(run_mock)[3:] == [
            "shell", "monkey", "-p", "alvr.client", "-c", "android.intent.category.LAUNCHER", "1",
        ]

    def test_kill_server(self, adb, run_mock):
        adb.kill_server()
        assert _argv(run_mock) == [ADB, "kill-server"]


class TestRequireAdb:
    def test_env_var_wins(self, layout, tmp_path, monkeypatch):
        exe = tmp_path / "custom-adb"
        exe.write_text("")
        monkeypatch.setenv("ADB", str(exe))
        assert require_adb(layout, MagicMock()) == str(exe)

    def test_bundled_adb(self, layout, monkeypatch):
        monkeypatch.delenv("ADB", raising=False)
        local = layout.local_adb_exe()
        local.parent.mkdir(parents=True)
        local.write_text("")
        assert require_adb(layout, MagicMock()) == str(local)

    def test_installer_used_when_missing(self, layout, tmp_path, monkeypatch):
        monkeypatch.delenv("ADB", raising=False)
        monkeypatch.setattr("wired_link.adb.commands.shutil.which", lambda name: None)
        exe = tmp_path / "downloaded-adb"
        exe.write_text("")
        progress = MagicMock()
        installer = MagicMock(return_value=str(exe))

        assert require_adb(layout, progress, installer) == str(exe)
        installer.assert_called_once_with(layout, progress)

    def test_not_found(self, layout, monkeypatch):
        monkeypatch.delenv("ADB", raising=False)
        monkeypatch.setattr("wired_link.adb.commands.shutil.which", lambda name: None)
        with pytest.raises(AdbNotFoundError):
            require_adb(layout, MagicMock())
