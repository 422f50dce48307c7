"""pytest configuration and fakes for Wired Link tests."""

import hashlib
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest

from wired_link.adb.base import BaseDeviceBridge
from wired_link.adb.parse import Device, ForwardedPort
from wired_link.models import Layout
from wired_link.wired_connection import WiredConnection


class FakeBridge(BaseDeviceBridge):
    """In-memory device bridge that records every call."""

    def __init__(self):
        self.serials: List[Optional[str]] = []
        self.forwarded: Set[int] = set()
        self.installed: Set[str] = set()
        self.sha1: Dict[str, str] = {}
        self.pids: Dict[str, int] = {}
        self.resumed: Set[str] = set()
        self.fail_on: Dict[str, Exception] = {}
        self.calls: List[tuple] = []
        # Package id an installed APK registers as
        self.apk_package = "alvr.client"

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise self.fail_on[name]

    def calls_to(self, name):
        return [c for c in self.calls if c[0] == name]

    def list_devices(self):
        self._call("list_devices")
        return [Device(serial=s, state="device") for s in self.serials]

    def list_forwarded_ports(self, serial):
        self._call("list_forwarded_ports", serial)
        return [ForwardedPort(serial=serial, local=p, remote=f"tcp:{p}") for p in sorted(self.forwarded)]

    def forward_port(self, serial, port):
        self._call("forward_port", serial, port)
        self.forwarded.add(port)

    def is_package_installed(self, serial, package_id):
        self._call("is_package_installed", serial, package_id)
        return package_id in self.installed

    def get_package_sha1(self, serial, package_id):
        self._call("get_package_sha1", serial, package_id)
        if package_id not in self.installed:
            return None
        return self.sha1.get(package_id)

    def install_package(self, serial, apk_path):
        self._call("install_package", serial, apk_path)
        self.installed.add(self.apk_package)
        self.sha1[self.apk_package] = hashlib.sha1(Path(apk_path).read_bytes()).hexdigest()

    def uninstall_package(self, serial, package_id):
        self._call("uninstall_package", serial, package_id)
        self.installed.discard(package_id)
        self.sha1.pop(package_id, None)

    def grant_permission(self, serial, package_id, permission):
        self._call("grant_permission", serial, package_id, permission)

    def get_process_id(self, serial, package_id):
        self._call("get_process_id", serial, package_id)
        return self.pids.get(package_id)

    def is_activity_resumed(self, serial, package_id):
        self._call("is_activity_resumed", serial, package_id)
        return package_id in self.resumed

    def start_application(self, serial, package_id):
        self._call("start_application", serial, package_id)

    def kill_server(self):
        self._call("kill_server")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def layout(tmp_path):
    resources = tmp_path / "resources"
    resources.mkdir()
    executables = tmp_path / "bin"
    executables.mkdir()
    return Layout(executables_dir=executables, static_resources_dir=resources)


@pytest.fixture
def bridge():
    return FakeBridge()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def connection(layout, bridge, clock):
    return WiredConnection(layout, lambda done, total: None, bridge=bridge, stable=True, clock=clock)
