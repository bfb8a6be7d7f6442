"""Git repository abstraction.

This module provides the Repository class for the read-only git queries the
release pipeline needs: tags, commit ranges, ancestry and remotes.
All operations that can fail return Result types.

Usage:
    repo = Repository(Path("/path/to/project"))

    match repo.log_range("v0.1.0", "v0.2.0"):
        case Ok(commits):
            for c in commits:
                print(c.short_sha, c.subject)
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from tagrel.core.result import Err, Ok, Result
from tagrel.platform.process import ProcessError
from tagrel.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0

# Unit/record separators keep subjects containing tabs or newlines intact.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = f"%H{_FIELD_SEP}%an{_FIELD_SEP}%s{_RECORD_SEP}"

_REMOTE_SLUG_RE = re.compile(
    r"""
    (?:github\.com[:/])          # https://github.com/ or git@github.com:
    (?P<owner>[^/\s]+)/
    (?P<name>[^/\s]+?)
    (?:\.git)?/?$
    """,
    re.VERBOSE,
)

__all__ = [
    "Commit",
    "GitError",
    "Repository",
    "parse_remote_slug",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class Commit:
    sha: str
    author: str
    subject: str

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


def parse_remote_slug(url: str) -> str | None:
    """Extract ``owner/name`` from a GitHub remote URL (https or ssh form)."""
    m = _REMOTE_SLUG_RE.search(url.strip())
    if m is None:
        return None
    return f"{m.group('owner')}/{m.group('name')}"


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def tags(self, pattern: str = "v*") -> Result[list[str], GitError]:
        """List tags matching a glob pattern."""
        result = self._run(["tag", "--list", pattern])
        match result:
            case Err(e):
                return Err(self._error("tag --list", e, "git tag failed"))
            case Ok(stdout):
                return Ok([ln.strip() for ln in stdout.splitlines() if ln.strip()])

    def tag_exists(self, tag: str) -> bool:
        result = self._run(["rev-parse", "-q", "--verify", f"refs/tags/{tag}"])
        return isinstance(result, Ok)

    def ref_exists(self, ref: str) -> bool:
        result = self._run(["rev-parse", "-q", "--verify", f"{ref}^{{commit}}"])
        return isinstance(result, Ok)

    def resolve_commit(self, ref: str) -> Result[str, GitError]:
        """Resolve a ref (tag, branch, sha) to a full commit sha."""
        result = self._run(["rev-parse", "--verify", f"{ref}^{{commit}}"])
        match result:
            case Err(e):
                return Err(self._error("rev-parse", e, f"unknown ref: {ref}"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def is_ancestor(self, ancestor: str, descendant: str) -> Result[bool, GitError]:
        """Return whether ``ancestor`` is reachable from ``descendant``.

        ``git merge-base --is-ancestor`` exits 1 for "no"; any other failure
        is an error.
        """
        result = self._run(["merge-base", "--is-ancestor", ancestor, descendant])
        match result:
            case Ok(_):
                return Ok(True)
            case Err(e) if e.returncode == 1:
                return Ok(False)
            case Err(e):
                return Err(self._error("merge-base", e, "git merge-base failed"))

    def log_range(self, start: str | None, end: str) -> Result[list[Commit], GitError]:
        """Commits reachable from ``end`` and not from ``start``, newest first.

        With ``start=None`` every commit reachable from ``end`` is returned.
        """
        rev = end if start is None else f"{start}..{end}"
        result = self._run(["log", f"--format={_LOG_FORMAT}", rev])
        match result:
            case Err(e):
                return Err(self._error("log", e, f"git log {rev} failed"))
            case Ok(stdout):
                return Ok(self._parse_log(stdout))

    def remote_url(self, name: str = "origin") -> str | None:
        result = self._run(["remote", "get-url", name])
        match result:
            case Ok(stdout):
                url = stdout.strip()
                return url or None
            case Err(_):
                return None

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        return run_process(
            ["git", "-C", str(self.path), *args], cwd=self.path, timeout=_GIT_TIMEOUT_SECONDS
        )

    def _error(self, command: str, e: ProcessError, fallback: str) -> GitError:
        return GitError(
            command=command,
            message=e.stderr.strip() or fallback,
            returncode=e.returncode,
        )

    def _parse_log(self, output: str) -> list[Commit]:
        commits: list[Commit] = []
        for record in output.split(_RECORD_SEP):
            record = record.strip("\n")
            if not record:
                continue
            parts = record.split(_FIELD_SEP)
            if len(parts) != 3:
                continue
            sha, author, subject = parts
            commits.append(Commit(sha=sha.strip(), author=author, subject=subject.strip()))
        return commits
