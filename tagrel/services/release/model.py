from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from tagrel.git.repository import Commit
from tagrel.services.release.errors import ReleaseError

PipelineState = Literal[
    "triggered",
    "gate-checked",
    "skipped",
    "building",
    "built",
    "releasing",
    "released",
    "failed",
]

TERMINAL_STATES: frozenset[PipelineState] = frozenset({"skipped", "released", "failed"})

GateReason = Literal["ok", "template-repository", "template-marker", "not-a-version-tag"]
TriggerSource = Literal["option", "github-ref"]


@dataclass(frozen=True, slots=True)
class Trigger:
    """A validated version-tag push."""

    tag: str
    sha: str
    source: TriggerSource


@dataclass(frozen=True, slots=True)
class GateDecision:
    proceed: bool
    reason: GateReason
    repository: str | None

    @property
    def output_value(self) -> str:
        """Value written to the CI step output ``should_release``."""
        return "true" if self.proceed else "false"


@dataclass(frozen=True, slots=True)
class PlatformTarget:
    """One fan-out job: a cibuildwheel platform at a matrix index."""

    platform: str
    index: int

    def artifact_name(self, prefix: str) -> str:
        return f"{prefix}-{self.platform}-{self.index}"


@dataclass(frozen=True, slots=True)
class BuildOutcome:
    target: PlatformTarget
    artifact: str
    wheels: tuple[str, ...] = ()
    log_path: Path | None = None
    error: ReleaseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class Changelog:
    tag: str
    previous_tag: str | None
    commits: tuple[Commit, ...]
    text: str


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    tag: str
    title: str
    notes_path: Path
    assets: tuple[Path, ...]
    url: str | None
