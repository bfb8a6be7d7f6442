"""Template-flag gate.

A project generated from a template repository carries the template's release
workflow. Two situations must not publish anything:

- the pipeline runs on the template repository itself;
- the project still carries the template marker file, i.e. it was just
  instantiated and has not been renamed/initialised yet.

A missing marker file is the normal case and never an error.

A pushed tag that only looks like a release (`v1.2.3-rc1` matches a loose
`v*.*.*` filter) is skipped here too, so the build jobs never start.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from tagrel.core.config import RepositoryConfig
from tagrel.core.result import Err, Ok, Result
from tagrel.git.repository import Repository, parse_remote_slug
from tagrel.services.release.errors import ReleaseError
from tagrel.services.release.model import GateDecision
from tagrel.services.release.version import is_version_tag

OUTPUT_NAME = "should_release"

_TAG_REF_PREFIX = "refs/tags/"


def repository_slug(repo: Repository, environ: Mapping[str, str] | None = None) -> str | None:
    """Identity of the repository being released (``owner/name``)."""
    env = os.environ if environ is None else environ
    slug = (env.get("GITHUB_REPOSITORY") or "").strip()
    if slug:
        return slug

    url = repo.remote_url("origin")
    if url is None:
        return None
    return parse_remote_slug(url)


def evaluate_gate(
    *,
    project_root: Path,
    repository: str | None,
    template: str | None,
    marker: str,
    tag: str | None = None,
) -> GateDecision:
    if tag is not None and not is_version_tag(tag):
        return GateDecision(proceed=False, reason="not-a-version-tag", repository=repository)

    if template and repository and repository.lower() == template.lower():
        return GateDecision(proceed=False, reason="template-repository", repository=repository)

    if (project_root / marker).exists():
        return GateDecision(proceed=False, reason="template-marker", repository=repository)

    return GateDecision(proceed=True, reason="ok", repository=repository)


def check_gate(
    *,
    project_root: Path,
    config: RepositoryConfig,
    environ: Mapping[str, str] | None = None,
    tag: str | None = None,
) -> GateDecision:
    """Evaluate the gate for this checkout.

    ``tag`` defaults to the tag named by ``GITHUB_REF``; branch pushes and local
    runs carry no tag and skip that check.
    """
    repo = Repository(project_root)
    return evaluate_gate(
        project_root=project_root,
        repository=repository_slug(repo, environ),
        template=config.template,
        marker=config.marker,
        tag=tag if tag is not None else _pushed_tag(environ),
    )


def _pushed_tag(environ: Mapping[str, str] | None) -> str | None:
    env = os.environ if environ is None else environ
    ref = (env.get("GITHUB_REF") or "").strip()
    if not ref.startswith(_TAG_REF_PREFIX):
        return None
    return ref.removeprefix(_TAG_REF_PREFIX)


def describe(decision: GateDecision, *, marker: str) -> str:
    match decision.reason:
        case "ok":
            return "gate: continue"
        case "template-repository":
            return f"gate: skip ({decision.repository} is the template repository)"
        case "template-marker":
            return f"gate: skip (template marker present: {marker})"
        case "not-a-version-tag":
            return "gate: skip (pushed tag is not a vMAJOR.MINOR.PATCH release tag)"


def write_github_output(
    decision: GateDecision,
    environ: Mapping[str, str] | None = None,
) -> Result[Path | None, ReleaseError]:
    """Append ``should_release=<bool>`` to $GITHUB_OUTPUT when running in CI."""
    env = os.environ if environ is None else environ
    target = (env.get("GITHUB_OUTPUT") or "").strip()
    if not target:
        return Ok(None)

    path = Path(target)
    try:
        with path.open("a", encoding="utf-8") as handle:
            handle.write(f"{OUTPUT_NAME}={decision.output_value}\n")
    except OSError as e:
        return Err(
            ReleaseError(
                kind="state_failed",
                message=f"failed to write step output: {e}",
                hint=str(path),
            )
        )
    return Ok(path)
