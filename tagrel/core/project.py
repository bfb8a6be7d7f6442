"""Project detection and paths.

The project is the git checkout being released. It is identified by a `.git`
entry (directory or worktree file) at its root.

Layout of tagrel state under the project root:
- .tagrel/runs/<tag>/run.json        run record
- .tagrel/runs/<tag>/build/<name>/   per-platform cibuildwheel output
- .tagrel/runs/<tag>/artifacts/      artifact store (one dir per artifact)
- .tagrel/runs/<tag>/logs/           per-platform build logs
- .tagrel/runs/<tag>/release/        collected files, notes, manifest
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result

__all__ = [
    "PROJECT_ENV_VAR",
    "Project",
    "ProjectError",
    "RunPaths",
    "detect_project",
    "find_project_upward",
    "is_project_root",
]

PROJECT_ENV_VAR = "TAGREL_PROJECT_ROOT"


@dataclass(frozen=True)
class ProjectError:
    """Error when the project root cannot be detected."""

    message: str
    searched_from: Path | None = None


@dataclass(frozen=True, slots=True)
class RunPaths:
    """Paths of a single pipeline run (one per tag)."""

    root: Path

    @property
    def record_path(self) -> Path:
        return self.root / "run.json"

    @property
    def build_dir(self) -> Path:
        return self.root / "build"

    @property
    def artifacts_dir(self) -> Path:
        return self.root / "artifacts"

    @property
    def logs_dir(self) -> Path:
        return self.root / "logs"

    @property
    def release_dir(self) -> Path:
        return self.root / "release"

    @property
    def dist_dir(self) -> Path:
        """Flat collection of every downloaded artifact file."""
        return self.release_dir / "dist"

    @property
    def notes_path(self) -> Path:
        return self.release_dir / "CHANGELOG.md"

    @property
    def manifest_path(self) -> Path:
        return self.release_dir / "manifest.json"


@dataclass(frozen=True, slots=True)
class Project:
    """A detected project checkout."""

    root: Path

    @property
    def state_dir(self) -> Path:
        """Path to tagrel state directory (.tagrel/). Should be gitignored."""
        return self.root / ".tagrel"

    @property
    def runs_dir(self) -> Path:
        return self.state_dir / "runs"

    def run_paths(self, tag: str) -> RunPaths:
        return RunPaths(root=self.runs_dir / tag)

    def __str__(self) -> str:
        return str(self.root)


def is_project_root(path: Path) -> bool:
    return (path / ".git").exists()


def find_project_upward(start: Path) -> Path | None:
    for parent in (start, *start.parents):
        if is_project_root(parent):
            return parent
    return None


def detect_project(
    *,
    start_dir: Path | None = None,
    env_var: str = PROJECT_ENV_VAR,
) -> Result[Project, ProjectError]:
    """Detect the project root.

    Detection order:
    1. TAGREL_PROJECT_ROOT environment variable (if set, it must be valid)
    2. Search upward from start_dir (or cwd) for a `.git` entry
    """
    env_value = os.environ.get(env_var)
    if env_value:
        env_path = Path(env_value).expanduser().resolve()
        if env_path.is_dir() and is_project_root(env_path):
            return Ok(Project(root=env_path))
        return Err(
            ProjectError(
                message=f"${env_var} is set to '{env_value}' but it is not a git checkout",
                searched_from=env_path if env_path.is_dir() else None,
            )
        )

    search_start = (start_dir or Path.cwd()).resolve()
    found = find_project_upward(search_start)
    if found is None:
        return Err(
            ProjectError(
                message="Could not find project root (.git not found)",
                searched_from=search_start,
            )
        )
    return Ok(Project(root=found))
