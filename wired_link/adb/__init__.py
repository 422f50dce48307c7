"""
ADB Device Bridge Package
"""
from .base import BaseDeviceBridge
from .commands import AdbCommands, require_adb
from .config import ADBConfig, config
from .parse import Device, ForwardedPort

__all__ = [
    'BaseDeviceBridge',
    'AdbCommands',
    'require_adb',
    'ADBConfig',
    'config',
    'Device',
    'ForwardedPort',
]
