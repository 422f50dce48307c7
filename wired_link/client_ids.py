"""
Client package identities.

Maps a client flavor and the build channel to the package ids to probe on
the device, most preferred first.
"""
import re
from typing import List

from . import __version__
from .models import ClientFlavor, FlavorKind

PACKAGE_NAME_STORE = "alvr.client"
PACKAGE_NAME_GITHUB_STABLE = "alvr.client.stable"
PACKAGE_NAME_GITHUB_DEV = "alvr.client.dev"


def is_stable_build(version: str = __version__) -> bool:
    """Plain release versions (1.2.3) are stable, anything with a pre-release or dev tag is not"""
    return re.fullmatch(r"\d+(\.\d+)*", version) is not None


def get_application_ids(flavor: ClientFlavor, stable: bool) -> List[str]:
    """
    Candidate package ids for a client flavor.

    Args:
        flavor: Requested client flavor
        stable: Whether the running server is a stable build

    Returns:
        Package ids in probing order
    """
    if flavor.kind == FlavorKind.STORE:
        if stable:
            return [PACKAGE_NAME_STORE, PACKAGE_NAME_GITHUB_STABLE]
        return [PACKAGE_NAME_GITHUB_DEV]

    if flavor.kind == FlavorKind.GITHUB:
        if stable:
            return [PACKAGE_NAME_GITHUB_STABLE, PACKAGE_NAME_STORE]
        return [PACKAGE_NAME_GITHUB_DEV]

    if stable:
        return [flavor.custom_id, PACKAGE_NAME_STORE, PACKAGE_NAME_GITHUB_STABLE]
    return [flavor.custom_id, PACKAGE_NAME_GITHUB_DEV]
