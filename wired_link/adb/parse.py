"""
Parsers for adb command output.
"""
import re
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class Device:
    """One line of `adb devices -l`"""
    serial: Optional[str]
    state: Optional[str] = None
    product: Optional[str] = None
    model: Optional[str] = None
    device: Optional[str] = None
    transport_id: Optional[int] = None


@dataclass
class ForwardedPort:
    """One line of `adb forward --list`"""
    serial: str
    local: int
    remote: str


_PROPERTY_RE = re.compile(r"^(product|model|device|transport_id):(.*)$")
_FORWARD_SPEC_RE = re.compile(r"^[a-z]+:\S+$")
_NON_TCP_FORWARD_KINDS = ("localabstract", "localreserved", "localfilesystem", "jdwp", "dev")


def parse_devices(output: str) -> List[Device]:
    """
    Parse `adb devices -l` output.

    Format: "1WMHH815K10234   device usb:1-1 product:hollywood model:Quest_2 device:hollywood transport_id:3"

    Returns:
        List of Device, header and daemon status lines skipped
    """
    devices = []
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("List of devices") or line.startswith("*"):
            continue

        parts = line.split()
        device = Device(serial=parts[0] or None)
        if len(parts) > 1:
            device.state = parts[1]

        for part in parts[2:]:
            match = _PROPERTY_RE.match(part)
            if not match:
                continue  # usb:1-1 and friends
            key, value = match.groups()
            if key == "transport_id":
                device.transport_id = int(value) if value.isdigit() else None
            else:
                setattr(device, key, value)

        devices.append(device)
    return devices


def parse_forwarded_ports(output: str) -> List[ForwardedPort]:
    """
    Parse `adb forward --list` output.

    Format: "1WMHH815K10234 tcp:9943 tcp:9943"

    Raises:
        ValueError: If a line is malformed
    """
    ports = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue

        parts = line.split()
        if len(parts) != 3 or not all(_FORWARD_SPEC_RE.match(p) for p in parts[1:]):
            raise ValueError(f"Malformed forward entry: {line!r}")

        kind, local = parts[1].split(":", 1)
        if kind in _NON_TCP_FORWARD_KINDS:
            continue  # no local tcp port
        if kind != "tcp" or not local.isdigit():
            raise ValueError(f"Malformed local port in forward entry: {line!r}")
        ports.append(ForwardedPort(serial=parts[0], local=int(local), remote=parts[2]))
    return ports


def parse_package_list(output: str, package_id: str) -> bool:
    """True if `pm list packages <id>` output lists exactly package_id (it does prefix matching)"""
    return any(line.strip() == f"package:{package_id}" for line in output.splitlines())


def parse_package_path(output: str) -> Optional[str]:
    """
    Pick the base APK path from `pm path <id>` output.

    Split APK installs print several "package:" lines, the base.apk one is what
    gets compared against the local package file.
    """
    paths = [
        line.strip()[len("package:"):]
        for line in output.splitlines()
        if line.strip().startswith("package:")
    ]
    if not paths:
        return None
    for path in paths:
        if path.endswith("/base.apk"):
            return path
    return paths[0]


def parse_sha1sum(output: str) -> str:
    """
    Extract the digest from `sha1sum <file>` output.

    Raises:
        ValueError: If the output does not start with a 40 char hex digest
    """
    digest = output.strip().split()[0] if output.strip() else ""
    if not re.fullmatch(r"[0-9a-fA-F]{40}", digest):
        raise ValueError(f"Unexpected sha1sum output: {output.strip()!r}")
    return digest


def parse_pid(output: str) -> Optional[int]:
    """
    Parse `pidof <id>` output, None if nothing is running.

    Raises:
        ValueError: If the output is not a pid list
    """
    text = output.strip()
    if not text:
        return None
    first = text.split()[0]
    if not first.isdigit():
        raise ValueError(f"Unexpected pidof output: {text!r}")
    return int(first)


def parse_activity_resumed(output: str) -> bool:
    """True if `dumpsys activity <id>` reports a resumed activity"""
    for line in output.splitlines():
        match = re.search(r"mResumed=(true|false)", line)
        if match and match.group(1) == "true":
            return True
    return False
