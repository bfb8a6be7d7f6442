from __future__ import annotations

import pytest

from tagrel.services.release.version import (
    VersionTag,
    is_version_tag,
    parse_version_tag,
    previous_version_tag,
)


@pytest.mark.parametrize("tag", ["v0.1.0", "v1.2.3", "v10.0.12"])
def test_valid_tags(tag: str) -> None:
    assert is_version_tag(tag)
    parsed = parse_version_tag(tag)
    assert parsed is not None
    assert parsed.to_tag() == tag


@pytest.mark.parametrize("tag", ["1.2.3", "v1.2", "v1.2.3-rc1", "v01.2.3", "release-1", "v1.2.x"])
def test_invalid_tags(tag: str) -> None:
    assert not is_version_tag(tag)


def test_ordering_is_numeric() -> None:
    assert VersionTag(0, 10, 0) > VersionTag(0, 9, 9)
    assert VersionTag(1, 0, 0) > VersionTag(0, 99, 99)


def test_previous_version_tag_picks_highest_below() -> None:
    tags = ["v0.1.0", "v0.10.0", "v0.2.0", "v0.9.1", "nightly", "v1.0.0"]
    assert previous_version_tag("v0.10.0", tags) == "v0.9.1"
    assert previous_version_tag("v1.0.0", tags) == "v0.10.0"


def test_previous_version_tag_first_release() -> None:
    assert previous_version_tag("v0.1.0", ["v0.1.0"]) is None
    assert previous_version_tag("v0.1.0", []) is None


def test_previous_version_tag_ignores_creation_order() -> None:
    # A backport tag created after v0.3.0 must not shadow it.
    assert previous_version_tag("v0.4.0", ["v0.3.0", "v0.2.5"]) == "v0.3.0"
