"""Tests for client package id resolution."""

import pytest
from pydantic import ValidationError

from wired_link.client_ids import (
    PACKAGE_NAME_GITHUB_DEV,
    PACKAGE_NAME_GITHUB_STABLE,
    PACKAGE_NAME_STORE,
    get_application_ids,
    is_stable_build,
)
from wired_link.models import ClientFlavor, FlavorKind


@pytest.mark.parametrize(
    "flavor,stable,expected",
    [
        (ClientFlavor.store(), True, [PACKAGE_NAME_STORE, PACKAGE_NAME_GITHUB_STABLE]),
        (ClientFlavor.store(), False, [PACKAGE_NAME_GITHUB_DEV]),
        (ClientFlavor.github(), True, [PACKAGE_NAME_GITHUB_STABLE, PACKAGE_NAME_STORE]),
        (ClientFlavor.github(), False, [PACKAGE_NAME_GITHUB_DEV]),
        (ClientFlavor.custom("com.example.vr"), True,
         ["com.example.vr", PACKAGE_NAME_STORE, PACKAGE_NAME_GITHUB_STABLE]),
        (ClientFlavor.custom("com.example.vr"), False, ["com.example.vr", PACKAGE_NAME_GITHUB_DEV]),
    ],
)
def test_get_application_ids(flavor, stable, expected):
    assert get_application_ids(flavor, stable) == expected


@pytest.mark.parametrize(
    "version,stable",
    [("20.11.1", True), ("1.0", True), ("21.0.0-dev03", False), ("0.3.0rc1", False)],
)
def test_is_stable_build(version, stable):
    assert is_stable_build(version) is stable


def test_custom_flavor_requires_id():
    with pytest.raises(ValidationError):
        ClientFlavor(kind=FlavorKind.CUSTOM)


def test_store_flavor_rejects_custom_id():
    with pytest.raises(ValidationError):
        ClientFlavor(kind=FlavorKind.STORE, custom_id="com.example.vr")
