"""
Wired Link - Models

Pydantic models for the filesystem layout, client identity, auto-install
settings and the status reported by the wired connection manager.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from .adb.config import config


class Layout(BaseModel):
    """Filesystem layout used to find adb and resolve relative package paths"""
    executables_dir: Path
    static_resources_dir: Path

    def local_adb_exe(self) -> Path:
        """Location of the bundled adb inside the platform-tools directory"""
        return self.executables_dir / "platform-tools" / config.ADB_EXECUTABLE


class FlavorKind(str, Enum):
    """Client distribution flavor"""
    STORE = "store"
    GITHUB = "github"
    CUSTOM = "custom"


class ClientFlavor(BaseModel):
    """Which client build the server expects, custom flavors carry their own package id"""
    kind: FlavorKind = FlavorKind.STORE
    custom_id: Optional[str] = None

    @model_validator(mode="after")
    def check_custom_id(self):
        if self.kind == FlavorKind.CUSTOM and not self.custom_id:
            raise ValueError("custom flavor requires a custom_id")
        if self.kind != FlavorKind.CUSTOM and self.custom_id is not None:
            raise ValueError(f"{self.kind.value} flavor does not take a custom_id")
        return self

    @classmethod
    def store(cls) -> "ClientFlavor":
        return cls(kind=FlavorKind.STORE)

    @classmethod
    def github(cls) -> "ClientFlavor":
        return cls(kind=FlavorKind.GITHUB)

    @classmethod
    def custom(cls, package_id: str) -> "ClientFlavor":
        return cls(kind=FlavorKind.CUSTOM, custom_id=package_id)


class WiredClientAutoInstallConfig(BaseModel):
    """Client package to keep installed on the device, and permissions to grant after install"""
    client_package_location: str  # Relative paths resolve against Layout.static_resources_dir
    permissions: List[str] = Field(default_factory=list)


class WiredConnectionSettings(BaseModel):
    """Arguments for one WiredConnection.setup() pass"""
    control_port: int = Field(9943, ge=1, le=65535)
    stream_port: int = Field(9944, ge=1, le=65535)
    client_flavor: ClientFlavor = Field(default_factory=ClientFlavor.store)
    client_autolaunch: bool = True
    client_autoinstall: Optional[WiredClientAutoInstallConfig] = None


class NotReadyReason(str, Enum):
    """Why a wired connection is not ready yet"""
    NO_WIRED_DEVICES = "No wired devices found"
    NO_CLIENT_INSTALLED = "No suitable ALVR client is installed"
    CLIENT_NOT_RUNNING = "ALVR client is not running"
    PRE_AUTOLAUNCH_DELAY = "Awaiting pre autolaunch delay"
    STARTING_CLIENT = "Starting ALVR client"
    CLIENT_PAUSED = "ALVR client is paused"
    POST_AUTOLAUNCH_DELAY = "Awaiting post autolaunch delay"


class WiredConnectionStatus(BaseModel):
    """Result of a setup() pass: ready, or not ready with a reason"""
    is_ready: bool
    reason: Optional[NotReadyReason] = None

    @classmethod
    def ready(cls) -> "WiredConnectionStatus":
        return cls(is_ready=True)

    @classmethod
    def not_ready(cls, reason: NotReadyReason) -> "WiredConnectionStatus":
        return cls(is_ready=False, reason=reason)

    def __str__(self) -> str:
        return "Ready" if self.is_ready else f"NotReady({self.reason.value})"
