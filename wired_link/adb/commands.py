"""
Wired Link - ADB Commands

Device bridge implementation that drives the adb executable through
subprocess. Each method is one blocking round-trip to adb.
"""

import logging
import os
import shutil
import subprocess
from typing import Callable, List, Optional

from .base import BaseDeviceBridge
from .config import config
from .parse import (
    Device,
    ForwardedPort,
    parse_activity_resumed,
    parse_devices,
    parse_forwarded_ports,
    parse_package_list,
    parse_package_path,
    parse_pid,
    parse_sha1sum,
)
from ..utils.error_handler import AdbCommandError, AdbNotFoundError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, Optional[int]], None]


def _find_adb_executable(layout) -> Optional[str]:
    """
    Find adb in the environment, the layout's platform-tools or PATH.

    Returns:
        Path to adb executable, or None
    """
    # Check environment variable first
    adb_from_env = os.environ.get(config.ADB_ENV_VAR)
    if adb_from_env and os.path.isfile(adb_from_env):
        logger.debug(f"[AdbCommands] Using adb from environment: {adb_from_env}")
        return adb_from_env

    local_adb = layout.local_adb_exe()
    if local_adb.is_file():
        logger.debug(f"[AdbCommands] Using bundled adb: {local_adb}")
        return str(local_adb)

    adb_path = shutil.which("adb")
    if adb_path:
        logger.debug(f"[AdbCommands] Using adb from PATH: {adb_path}")
        return adb_path

    return None


def require_adb(
    layout,
    download_progress_callback: ProgressCallback,
    installer: Optional[Callable] = None,
) -> str:
    """
    Locate adb, falling back to an installer hook when it is missing.

    Args:
        layout: Filesystem layout (see wired_link.models.Layout)
        download_progress_callback: Called with (bytes_downloaded, total_bytes) by the installer
        installer: Optional callable(layout, download_progress_callback) -> adb path

    Returns:
        Path to the adb executable

    Raises:
        AdbNotFoundError: If adb is not found and could not be installed
    """
    adb_path = _find_adb_executable(layout)
    if adb_path:
        return adb_path

    if installer is not None:
        logger.info("[AdbCommands] adb not found, installing platform-tools")
        adb_path = installer(layout, download_progress_callback)
        if adb_path and os.path.isfile(adb_path):
            return str(adb_path)
        logger.warning(f"[AdbCommands] Installer returned unusable adb path: {adb_path}")

    raise AdbNotFoundError(
        searched=[f"${config.ADB_ENV_VAR}", str(layout.local_adb_exe()), "PATH"]
    )


class AdbCommands(BaseDeviceBridge):
    """
    Device bridge backed by the adb executable.

    Every failure (spawn, timeout, non-zero exit, unparseable output) is
    raised as AdbCommandError.
    """

    def __init__(self, adb_path: str, timeout: Optional[float] = None):
        self.adb_path = adb_path
        self.timeout = timeout if timeout is not None else config.COMMAND_TIMEOUT

    def _run(
        self,
        args: List[str],
        serial: Optional[str] = None,
        timeout: Optional[float] = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """
        Run one adb command.

        Args:
            args: adb arguments (without the executable)
            serial: Target device serial, adds "-s <serial>"
            timeout: Command timeout (uses default if None)
            check: Raise on non-zero exit status

        Returns:
            Completed process with text stdout/stderr
        """
        cmd = [self.adb_path]
        if serial:
            cmd += ["-s", serial]
        cmd += args

        logger.debug(f"[AdbCommands] > {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout or self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise AdbCommandError(f"adb command timed out: {' '.join(args)}", command=cmd)
        except OSError as e:
            raise AdbCommandError(f"Failed to run adb: {e}", command=cmd) from e

        if check and result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()
            raise AdbCommandError(
                f"adb {' '.join(args)} exited with {result.returncode}: {output}",
                command=cmd,
                returncode=result.returncode,
                output=output,
            )
        return result

    def _parse(self, parser, output: str, *args):
        """Run a parser, turning malformed output into AdbCommandError"""
        try:
            return parser(output, *args)
        except ValueError as e:
            raise AdbCommandError(f"Malformed adb output: {e}", output=output) from e

    # === Devices and ports ===

    def list_devices(self) -> List[Device]:
        result = self._run(["devices", "-l"])
        return self._parse(parse_devices, result.stdout)

    def list_forwarded_ports(self, serial: str) -> List[ForwardedPort]:
        result = self._run(["forward", "--list"], serial=serial)
        ports = self._parse(parse_forwarded_ports, result.stdout)
        return [p for p in ports if p.serial == serial]

    def forward_port(self, serial: str, port: int) -> None:
        self._run(["forward", f"tcp:{port}", f"tcp:{port}"], serial=serial)

    # === Packages ===

    def is_package_installed(self, serial: str, package_id: str) -> bool:
        result = self._run(["shell", "pm", "list", "packages", package_id], serial=serial)
        return parse_package_list(result.stdout, package_id)

    def get_package_sha1(self, serial: str, package_id: str) -> Optional[str]:
        # pm path exits 1 when the package is missing, anything else is a bridge error
        result = self._run(["shell", "pm", "path", package_id], serial=serial, check=False)
        if result.returncode not in (0, 1) or result.stderr.strip():
            raise AdbCommandError(
                f"adb shell pm path exited with {result.returncode}: {result.stderr.strip()}",
                returncode=result.returncode,
                output=result.stderr.strip(),
            )
        apk_path = parse_package_path(result.stdout)
        if apk_path is None:
            logger.debug(f"[AdbCommands] {package_id} has no package path on {serial}")
            return None

        result = self._run(["shell", "sha1sum", apk_path], serial=serial)
        return self._parse(parse_sha1sum, result.stdout)

    def install_package(self, serial: str, apk_path: str) -> None:
        result = self._run(["install", "-r", apk_path], serial=serial, timeout=config.INSTALL_TIMEOUT)
        # Older adb versions exit 0 on install failure
        if "Failure" in result.stdout:
            raise AdbCommandError(
                f"adb install failed: {result.stdout.strip()}",
                command=[self.adb_path, "-s", serial, "install", "-r", apk_path],
                returncode=result.returncode,
                output=result.stdout.strip(),
            )

    def uninstall_package(self, serial: str, package_id: str) -> None:
        self._run(["uninstall", package_id], serial=serial)

    def grant_permission(self, serial: str, package_id: str, permission: str) -> None:
        self._run(["shell", "pm", "grant", package_id, permission], serial=serial)

    # === Application lifecycle ===

    def get_process_id(self, serial: str, package_id: str) -> Optional[int]:
        # pidof exits 1 when nothing matches
        result = self._run(["shell", "pidof", package_id], serial=serial, check=False)
        if result.returncode not in (0, 1):
            raise AdbCommandError(
                f"adb shell pidof exited with {result.returncode}: {result.stderr.strip()}",
                returncode=result.returncode,
                output=result.stderr.strip(),
            )
        return self._parse(parse_pid, result.stdout)

    def is_activity_resumed(self, serial: str, package_id: str) -> bool:
        result = self._run(["shell", "dumpsys", "activity", package_id], serial=serial)
        return parse_activity_resumed(result.stdout)

    def start_application(self, serial: str, package_id: str) -> None:
        # monkey launches the LAUNCHER activity without knowing its name
        self._run(
            ["shell", "monkey", "-p", package_id, "-c", "android.intent.category.LAUNCHER", "1"],
            serial=serial,
        )

    def kill_server(self) -> None:
        self._run(["kill-server"])
