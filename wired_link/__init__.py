"""
Wired Link

Keeps a USB-connected headset reachable over adb: device discovery, port
forwarding, client package sync and client launch.
"""
__version__ = "0.3.0"

from .models import (
    ClientFlavor,
    FlavorKind,
    Layout,
    NotReadyReason,
    WiredClientAutoInstallConfig,
    WiredConnectionSettings,
    WiredConnectionStatus,
)
from .wired_connection import WiredConnection
from .poller import WiredConnectionPoller

__all__ = [
    'ClientFlavor',
    'FlavorKind',
    'Layout',
    'NotReadyReason',
    'WiredClientAutoInstallConfig',
    'WiredConnectionSettings',
    'WiredConnectionStatus',
    'WiredConnection',
    'WiredConnectionPoller',
]
