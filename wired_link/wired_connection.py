"""
Wired Link - Wired Connection Manager

Keeps a USB-connected headset ready for streaming: finds the wired device,
forwards the control and stream ports, keeps the client package in sync
with a local APK, and launches the client when allowed.

setup() never waits for the device. Each call is one probe-and-react pass
and returns a WiredConnectionStatus; the caller polls it (about once per
second, see WiredConnectionPoller).
"""

import hashlib
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional

from .adb.base import BaseDeviceBridge
from .adb.commands import AdbCommands, ProgressCallback, require_adb
from .adb.config import config
from .client_ids import get_application_ids, is_stable_build
from .models import (
    ClientFlavor,
    Layout,
    NotReadyReason,
    WiredClientAutoInstallConfig,
    WiredConnectionStatus,
)
from .utils.error_handler import ErrorContext, PackageSyncError, WiredLinkError

logger = logging.getLogger(__name__)


def file_sha1(path: Path) -> str:
    """Hex SHA-1 of a file, read in chunks"""
    hasher = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


class WiredConnection:
    """
    Wired connection readiness state machine.

    Holds two episode timestamps (monotonic seconds):
    - initial_wait_start: set when a wired device is first seen, cleared when
      no wired device is found. Autolaunch waits PRE_AUTOLAUNCH_DELAY after it.
    - post_launch_wait_start: set when the client is launched automatically,
      cleared once POST_AUTOLAUNCH_DELAY has passed with the client resumed.

    Use as a context manager (or call close()) so the adb server is stopped
    when the connection is dropped.
    """

    def __init__(
        self,
        layout: Layout,
        download_progress_callback: ProgressCallback,
        bridge: Optional[BaseDeviceBridge] = None,
        installer: Optional[Callable] = None,
        stable: Optional[bool] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the wired connection

        Args:
            layout: Filesystem layout used to find adb and resolve package paths
            download_progress_callback: Progress reporter, only used if adb must be installed
            bridge: Device bridge to use instead of locating adb
            installer: Hook that installs adb when it cannot be found
            stable: Build channel override, defaults to the package version's channel
            clock: Monotonic time source

        Raises:
            AdbNotFoundError: If no bridge is given and adb cannot be located or installed
        """
        self.layout = layout
        if bridge is None:
            adb_path = require_adb(layout, download_progress_callback, installer)
            bridge = AdbCommands(adb_path)
            logger.info(f"[WiredConnection] Using adb at {adb_path}")
        self.bridge = bridge
        self.stable = is_stable_build() if stable is None else stable
        self._clock = clock

        self.initial_wait_start: Optional[float] = None
        self.post_launch_wait_start: Optional[float] = None
        self._closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self):
        """Stop the adb server. Failures are logged, never raised."""
        if self._closed:
            return
        self._closed = True

        logger.debug("[WiredConnection] Killing ADB server")
        try:
            self.bridge.kill_server()
        except Exception as e:
            logger.error(f"[WiredConnection] Failed to kill ADB server: {e}")

    def _elapsed(self, since: float) -> float:
        return self._clock() - since

    def setup(
        self,
        control_port: int,
        stream_port: int,
        client_flavor: ClientFlavor,
        client_autolaunch: bool,
        client_autoinstall: Optional[WiredClientAutoInstallConfig] = None,
    ) -> WiredConnectionStatus:
        """
        Run one reconciliation pass against the current device state.

        Args:
            control_port: Port to forward for the control socket
            stream_port: Port to forward for the stream socket
            client_flavor: Which client package family to look for
            client_autolaunch: Start the client when it is not running
            client_autoinstall: Keep the client in sync with this package file

        Returns:
            WiredConnectionStatus (ready, or not ready with a reason)

        Raises:
            WiredLinkError: On adb failures or an unreadable package file.
                Episode timers are left as they were.
        """
        serial = self._find_wired_device()
        if serial is None:
            self.initial_wait_start = None
            self.post_launch_wait_start = None
            return WiredConnectionStatus.not_ready(NotReadyReason.NO_WIRED_DEVICES)

        # Pre autolaunch delay starts as soon as there is an adb connection
        if self.initial_wait_start is None:
            self.initial_wait_start = self._clock()
            logger.debug(f"[WiredConnection] Device {serial} visible, starting pre autolaunch delay")
        initial_wait_start = self.initial_wait_start

        self._forward_missing_ports(serial, control_port, stream_port)

        application_ids = get_application_ids(client_flavor, self.stable)

        if client_autoinstall is not None:
            self._sync_client_package(serial, application_ids, client_autoinstall)

        package_id = self._find_installed_package(serial, application_ids)
        if package_id is None:
            return WiredConnectionStatus.not_ready(NotReadyReason.NO_CLIENT_INSTALLED)

        if self.bridge.get_process_id(serial, package_id) is None:
            if not client_autolaunch or self.post_launch_wait_start is not None:
                return WiredConnectionStatus.not_ready(NotReadyReason.CLIENT_NOT_RUNNING)

            if self._elapsed(initial_wait_start) < config.PRE_AUTOLAUNCH_DELAY:
                return WiredConnectionStatus.not_ready(NotReadyReason.PRE_AUTOLAUNCH_DELAY)

            logger.info(f"[WiredConnection] Starting {package_id} on {serial}")
            self.bridge.start_application(serial, package_id)
            self.post_launch_wait_start = self._clock()
            return WiredConnectionStatus.not_ready(NotReadyReason.STARTING_CLIENT)

        if not self.bridge.is_activity_resumed(serial, package_id):
            return WiredConnectionStatus.not_ready(NotReadyReason.CLIENT_PAUSED)

        if self.post_launch_wait_start is not None:
            if self._elapsed(self.post_launch_wait_start) < config.POST_AUTOLAUNCH_DELAY:
                return WiredConnectionStatus.not_ready(NotReadyReason.POST_AUTOLAUNCH_DELAY)
            self.post_launch_wait_start = None

        return WiredConnectionStatus.ready()

    def _find_wired_device(self) -> Optional[str]:
        """First device serial that is not a loopback (network relayed) device"""
        for device in self.bridge.list_devices():
            if device.serial and not device.serial.startswith(config.LOOPBACK_SERIAL_PREFIX):
                return device.serial
        return None

    def _forward_missing_ports(self, serial: str, control_port: int, stream_port: int):
        """Forward required ports that are not forwarded yet. Existing forwards are never removed."""
        forwarded = {p.local for p in self.bridge.list_forwarded_ports(serial)}
        for port in sorted({control_port, stream_port} - forwarded):
            self.bridge.forward_port(serial, port)
            logger.info(f"[WiredConnection] Forwarded port {port} of device {serial}")

    def _resolve_package_location(self, location: str) -> Path:
        path = Path(location)
        if not path.is_absolute():
            path = self.layout.static_resources_dir / path
        return path

    def _sync_client_package(
        self,
        serial: str,
        application_ids: List[str],
        autoinstall: WiredClientAutoInstallConfig,
    ):
        """
        Install the client package, or replace it when the installed copy differs.

        | installed sha1 | action                          |
        |----------------|---------------------------------|
        | none           | install, grant permissions      |
        | differs        | uninstall, install, grant       |
        | matches        | nothing                         |
        """
        apk_path = self._resolve_package_location(autoinstall.client_package_location)
        logger.debug(f"[WiredConnection] Checking auto install path {apk_path}")

        if not apk_path.exists() or not application_ids:
            return
        application_id = application_ids[0]

        installed_sha1 = self.bridge.get_package_sha1(serial, application_id)
        logger.debug(f"[WiredConnection] Installed package sha1 is {installed_sha1}")

        if installed_sha1 is not None:
            with ErrorContext(f"hashing client package {apk_path}", raise_as=PackageSyncError):
                local_sha1 = file_sha1(apk_path)
            logger.debug(f"[WiredConnection] Local client sha1 is {local_sha1}")

            if installed_sha1.lower() == local_sha1.lower():
                logger.debug("[WiredConnection] Hashes match, client is up to date")
                return

            logger.info(f"[WiredConnection] Client hash mismatch, uninstalling {application_id}")
            self.bridge.uninstall_package(serial, application_id)

        logger.info(f"[WiredConnection] Installing client package from {apk_path}")
        self.bridge.install_package(serial, str(apk_path))
        for permission in autoinstall.permissions:
            logger.info(f"[WiredConnection] Granting permission {permission}")
            self.bridge.grant_permission(serial, application_id, permission)

    def _find_installed_package(self, serial: str, application_ids: List[str]) -> Optional[str]:
        """First candidate id installed on the device. A failed probe counts as not installed."""
        for application_id in application_ids:
            try:
                if self.bridge.is_package_installed(serial, application_id):
                    return application_id
            except WiredLinkError as e:
                logger.warning(f"[WiredConnection] Could not check if {application_id} is installed: {e}")
        return None
