"""
Centralized Error Handling Module for Wired Link

Provides the exception hierarchy, troubleshooting hints and user-friendly
messages for wired connection failures.
"""

import logging
from typing import Dict, Any, List, Optional

# Configure logging
logger = logging.getLogger("wired_link")


# =============================================================================
# ERROR HINTS - User-friendly troubleshooting suggestions
# =============================================================================

ERROR_HINTS = {
    "adb_not_found": {
        "message": "ADB executable not found",
        "hint": "Install Android Platform Tools, put adb on your PATH, or set the ADB environment variable.",
    },
    "device_offline": {
        "message": "Device not connected",
        "hint": "Check the USB cable and that USB debugging is enabled and authorized on the headset.",
    },
    "timeout": {
        "message": "ADB command timed out",
        "hint": "The device may be busy or the ADB server is stuck. Replug the cable or restart the ADB server.",
    },
    "install_failed": {
        "message": "Failed to install client package",
        "hint": "Check free storage on the device and that the package file is a valid APK.",
    },
    "package_file": {
        "message": "Client package file could not be read",
        "hint": "Check the auto-install package location and file permissions.",
    },
    "permission_denied": {
        "message": "Permission grant failed",
        "hint": "The permission may not exist on this Android version or is not declared by the client.",
    },
    "adb_command": {
        "message": "ADB command failed",
        "hint": "Revoke USB debugging authorizations on the device, replug the cable and accept the prompt.",
    },
}


def get_error_with_hint(error_type: str, original_message: str = "") -> dict:
    """
    Get error message with troubleshooting hint.

    Args:
        error_type: Key from ERROR_HINTS dictionary
        original_message: Original error message to include

    Returns:
        Dict with error and hint
    """
    hint_info = ERROR_HINTS.get(error_type, {})
    return {
        "error": original_message or hint_info.get("message", "Unknown error"),
        "hint": hint_info.get("hint", ""),
    }


def classify_error(error_message: str) -> str:
    """
    Classify an error message to determine the appropriate hint type.

    Args:
        error_message: The error message to classify

    Returns:
        Error type key for ERROR_HINTS lookup
    """
    msg = error_message.lower()

    if "adb" in msg and ("not found" in msg or "no such file" in msg):
        return "adb_not_found"
    if "device" in msg and ("not found" in msg or "offline" in msg or "unauthorized" in msg):
        return "device_offline"
    if "timeout" in msg or "timed out" in msg:
        return "timeout"
    if "install" in msg:
        return "install_failed"
    if "package file" in msg or "hashing" in msg:
        return "package_file"
    if "permission" in msg or "grant" in msg:
        return "permission_denied"
    if "adb" in msg:
        return "adb_command"

    # Default - no specific hint
    return ""


class WiredLinkError(Exception):
    """Base exception for all Wired Link errors"""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class AdbNotFoundError(WiredLinkError):
    """Raised when the adb executable cannot be located or acquired"""

    def __init__(self, searched: Optional[List[str]] = None):
        super().__init__(
            "ADB executable not found",
            code="ADB_NOT_FOUND",
            details={"searched": searched or []},
        )


class AdbCommandError(WiredLinkError):
    """Raised when an adb invocation fails to spawn, times out, exits non-zero or prints garbage"""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        output: str = "",
    ):
        super().__init__(
            message,
            code="ADB_COMMAND_ERROR",
            details={"command": command or [], "returncode": returncode, "output": output},
        )
        self.command = command or []
        self.returncode = returncode
        self.output = output


class PackageSyncError(WiredLinkError):
    """Raised when the local client package cannot be read for auto-install"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(
            message, code="PACKAGE_SYNC_ERROR", details={"path": path}
        )


def get_user_friendly_message(error: Exception) -> str:
    """
    Get a user-friendly error message for status display

    Args:
        error: The exception

    Returns:
        User-friendly error message
    """
    if isinstance(error, AdbNotFoundError):
        return "ADB was not found. Install Android Platform Tools or set the ADB environment variable."

    elif isinstance(error, AdbCommandError):
        hint = get_error_with_hint(classify_error(error.message), error.message)
        if hint["hint"]:
            return f"{hint['error']} ({hint['hint']})"
        return f"ADB command failed: {error.message}"

    elif isinstance(error, PackageSyncError):
        return f"Could not prepare the client package: {error.message}"

    else:
        return f"An unexpected error occurred: {str(error)}"


# Context manager for error handling
class ErrorContext:
    """
    Context manager for error handling

    Usage:
        with ErrorContext("hashing client package", raise_as=PackageSyncError):
            # code that might fail
            pass
    """

    def __init__(self, operation: str, raise_as: type = WiredLinkError):
        self.operation = operation
        self.raise_as = raise_as

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            logger.error(f"Error during {self.operation}: {exc_val}")
            # Re-raise as WiredLinkError
            if not isinstance(exc_val, WiredLinkError):
                raise self.raise_as(f"Failed {self.operation}: {exc_val}") from exc_val
        return False  # Don't suppress exception
