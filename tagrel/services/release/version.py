from __future__ import annotations

import re
from dataclasses import dataclass

# Same shape as TRIGGER_PATTERN, without leading zeros.
_TAG_RE = re.compile(r"^v(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")

TAG_GLOB = "v*.*.*"

# GitHub Actions filter syntax: `+` repeats the preceding class, `.` is literal.
TRIGGER_PATTERN = "v[0-9]+.[0-9]+.[0-9]+"


@dataclass(frozen=True, slots=True, order=True)
class VersionTag:
    major: int
    minor: int
    patch: int

    def to_tag(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}"

    def __str__(self) -> str:
        return self.to_tag()


def parse_version_tag(tag: str) -> VersionTag | None:
    m = _TAG_RE.match(tag.strip())
    if m is None:
        return None
    return VersionTag(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def is_version_tag(tag: str) -> bool:
    return parse_version_tag(tag) is not None


def previous_version_tag(tag: str, candidates: list[str]) -> str | None:
    """Highest version tag strictly below ``tag`` among ``candidates``.

    Non-version tags are ignored. Returns None when ``tag`` is the first
    release.
    """
    current = parse_version_tag(tag)
    if current is None:
        return None

    best: VersionTag | None = None
    for candidate in candidates:
        v = parse_version_tag(candidate)
        if v is None or v >= current:
            continue
        if best is None or v > best:
            best = v
    return best.to_tag() if best is not None else None
