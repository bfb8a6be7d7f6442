"""Release notes from the commits between two version tags.

The commit range for tag ``T`` is ``prev..T`` where ``prev`` is the highest
version tag strictly below ``T``; the first release covers every commit
reachable from ``T``.
"""

from __future__ import annotations

import re
from pathlib import Path

from tagrel.core.config import ChangelogConfig
from tagrel.core.result import Err, Ok, Result
from tagrel.git.repository import Commit, Repository
from tagrel.platform.files import atomic_write_text
from tagrel.platform.process import run as run_process
from tagrel.services.release.errors import ReleaseError
from tagrel.services.release.model import Changelog
from tagrel.services.release.timeouts import CHANGELOG_TIMEOUT_SECONDS
from tagrel.services.release.version import TAG_GLOB, previous_version_tag

EMPTY_CHANGELOG = "No changes."

_CONVENTIONAL_RE = re.compile(r"^(?P<type>[a-zA-Z]+)(?:\([^)]*\))?!?:\s*(?P<desc>.+)$")

_SECTIONS: tuple[tuple[str, str], ...] = (
    ("feat", "Features"),
    ("fix", "Bug Fixes"),
    ("perf", "Performance"),
    ("refactor", "Refactoring"),
    ("docs", "Documentation"),
)
_OTHER_SECTION = "Other Changes"


def commit_range(
    repo: Repository, tag: str
) -> Result[tuple[str | None, list[Commit]], ReleaseError]:
    tags = repo.tags(TAG_GLOB).map_err(
        lambda e: ReleaseError(kind="changelog_failed", message=e.message)
    )
    if isinstance(tags, Err):
        return tags

    previous = previous_version_tag(tag, tags.value)
    commits = repo.log_range(previous, tag)
    if isinstance(commits, Err):
        return Err(
            ReleaseError(
                kind="changelog_failed",
                message=commits.error.message,
                hint=f"{previous}..{tag}" if previous else tag,
            )
        )
    return Ok((previous, commits.value))


def _classify(commit: Commit) -> tuple[str, str]:
    m = _CONVENTIONAL_RE.match(commit.subject)
    if m is None:
        return _OTHER_SECTION, commit.subject
    kind = m.group("type").lower()
    for prefix, title in _SECTIONS:
        if kind == prefix:
            return title, m.group("desc").strip()
    return _OTHER_SECTION, commit.subject


def render_markdown(commits: list[Commit]) -> str:
    """Group commits by conventional-commit type, keeping log order."""
    if not commits:
        return EMPTY_CHANGELOG + "\n"

    grouped: dict[str, list[str]] = {}
    for c in commits:
        section, text = _classify(c)
        grouped.setdefault(section, []).append(f"- {text} ({c.short_sha})")

    lines: list[str] = []
    for title in [t for _, t in _SECTIONS] + [_OTHER_SECTION]:
        entries = grouped.get(title)
        if not entries:
            continue
        if lines:
            lines.append("")
        lines.append(f"### {title}")
        lines.append("")
        lines.extend(entries)
    return "\n".join(lines) + "\n"


def strip_preamble(output: str, preamble_lines: int) -> str:
    """Drop the leading version heading the external generator emits."""
    lines = output.splitlines()[preamble_lines:]
    text = "\n".join(lines).strip()
    return (text or EMPTY_CHANGELOG) + "\n"


def _run_generator(
    *, project_root: Path, config: ChangelogConfig
) -> Result[str, ReleaseError]:
    result = run_process(
        list(config.command), cwd=project_root, timeout=CHANGELOG_TIMEOUT_SECONDS
    )
    if isinstance(result, Err):
        e = result.error
        if e.not_started:
            return Err(
                ReleaseError(
                    kind="tool_missing",
                    message=f"{config.command[0]}: missing",
                    hint="npm install -g conventional-changelog-cli",
                )
            )
        return Err(
            ReleaseError(
                kind="changelog_failed",
                message=f"{config.command[0]} failed (exit {e.returncode})",
                hint=e.stderr.strip() or None,
            )
        )
    return Ok(strip_preamble(result.value, config.preamble_lines))


def compute_changelog(
    *,
    project_root: Path,
    tag: str,
    config: ChangelogConfig,
) -> Result[Changelog, ReleaseError]:
    repo = Repository(project_root)
    found = commit_range(repo, tag)
    if isinstance(found, Err):
        return found
    previous, commits = found.value

    if config.backend == "conventional-changelog":
        text = _run_generator(project_root=project_root, config=config)
        if isinstance(text, Err):
            return text
        body = text.value
    else:
        body = render_markdown(commits)

    return Ok(Changelog(tag=tag, previous_tag=previous, commits=tuple(commits), text=body))


def write_notes(changelog: Changelog, path: Path) -> Result[Path, ReleaseError]:
    try:
        atomic_write_text(path, changelog.text)
    except OSError as e:
        return Err(
            ReleaseError(
                kind="state_failed",
                message=f"failed to write release notes: {e}",
                hint=str(path),
            )
        )
    return Ok(path)
