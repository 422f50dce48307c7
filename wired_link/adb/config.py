"""
ADB Connection Configuration.
Centralized configuration for the wired connection manager.
"""
import os
from dataclasses import dataclass


@dataclass
class ADBConfig:
    """Configuration for wired ADB connections."""

    # Timeouts
    COMMAND_TIMEOUT: float = 10.0  # seconds
    INSTALL_TIMEOUT: float = 120.0  # seconds, APKs can be large

    # Autolaunch grace periods
    PRE_AUTOLAUNCH_DELAY: float = 15.0  # seconds after first seeing a device
    POST_AUTOLAUNCH_DELAY: float = 5.0  # seconds after starting the client

    # Polling
    POLL_INTERVAL: float = 1.0  # seconds

    # Devices reachable only through a network relay show up with this prefix
    LOOPBACK_SERIAL_PREFIX: str = "127.0.0.1"

    # Executable lookup
    ADB_ENV_VAR: str = "ADB"
    ADB_EXECUTABLE: str = "adb.exe" if os.name == "nt" else "adb"

    @classmethod
    def from_env(cls) -> "ADBConfig":
        """Build a config with WIRED_LINK_* environment overrides applied"""
        return cls(
            COMMAND_TIMEOUT=float(os.getenv("WIRED_LINK_ADB_TIMEOUT", cls.COMMAND_TIMEOUT)),
            INSTALL_TIMEOUT=float(os.getenv("WIRED_LINK_INSTALL_TIMEOUT", cls.INSTALL_TIMEOUT)),
            POLL_INTERVAL=float(os.getenv("WIRED_LINK_POLL_INTERVAL", cls.POLL_INTERVAL)),
        )


# Global configuration instance
config = ADBConfig.from_env()
