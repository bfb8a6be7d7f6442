from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "invalid_input",
    "invalid_tag",
    "tag_missing",
    "tag_not_on_branch",
    "gh_missing",
    "gh_auth_required",
    "permission_denied",
    "tool_missing",
    "platform_unavailable",
    "build_failed",
    "no_wheels",
    "artifact_exists",
    "artifact_conflict",
    "artifacts_incomplete",
    "changelog_failed",
    "release_exists",
    "publish_failed",
    "state_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical pipeline error payload.

    Stable across stages so the CLI can render it and map ``kind`` to an exit
    code without knowing which stage failed.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
