"""
Device bridge contract.

Everything the wired connection manager needs from the device goes through
this interface, so the state machine can run against a fake bridge in tests.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from .parse import Device, ForwardedPort


class BaseDeviceBridge(ABC):
    """Primitive device operations used by WiredConnection"""

    @abstractmethod
    def list_devices(self) -> List[Device]:
        ...

    @abstractmethod
    def list_forwarded_ports(self, serial: str) -> List[ForwardedPort]:
        ...

    @abstractmethod
    def forward_port(self, serial: str, port: int) -> None:
        ...

    @abstractmethod
    def is_package_installed(self, serial: str, package_id: str) -> bool:
        ...

    @abstractmethod
    def get_package_sha1(self, serial: str, package_id: str) -> Optional[str]:
        """Hex SHA-1 of the installed package file, None if not installed"""

    @abstractmethod
    def install_package(self, serial: str, apk_path: str) -> None:
        ...

    @abstractmethod
    def uninstall_package(self, serial: str, package_id: str) -> None:
        ...

    @abstractmethod
    def grant_permission(self, serial: str, package_id: str, permission: str) -> None:
        ...

    @abstractmethod
    def get_process_id(self, serial: str, package_id: str) -> Optional[int]:
        ...

    @abstractmethod
    def is_activity_resumed(self, serial: str, package_id: str) -> bool:
        ...

    @abstractmethod
    def start_application(self, serial: str, package_id: str) -> None:
        ...

    @abstractmethod
    def kill_server(self) -> None:
        ...
