from __future__ import annotations

import os
from collections.abc import Mapping

from tagrel.core.config import TriggerConfig
from tagrel.core.result import Err, Ok, Result
from tagrel.git.repository import Repository
from tagrel.services.release.errors import ReleaseError
from tagrel.services.release.model import Trigger, TriggerSource
from tagrel.services.release.version import TAG_GLOB, is_version_tag

_TAG_REF_PREFIX = "refs/tags/"


def tag_from_environment(
    environ: Mapping[str, str] | None = None,
) -> Result[str | None, ReleaseError]:
    """Read the pushed tag from ``GITHUB_REF``; Ok(None) when not running in CI."""
    env = os.environ if environ is None else environ
    ref = (env.get("GITHUB_REF") or "").strip()
    if not ref:
        return Ok(None)
    if not ref.startswith(_TAG_REF_PREFIX):
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"not a tag push: {ref}",
                hint=f"The pipeline is triggered by pushing a {TAG_GLOB} tag.",
            )
        )
    return Ok(ref.removeprefix(_TAG_REF_PREFIX))


def default_branch_ref(repo: Repository, branch: str) -> str | None:
    """Prefer the remote-tracking branch; CI checkouts rarely have a local one."""
    for candidate in (f"origin/{branch}", branch):
        if repo.ref_exists(candidate):
            return candidate
    return None


def resolve_trigger(
    *,
    repo: Repository,
    tag_option: str | None,
    default_branch: str,
    config: TriggerConfig,
    environ: Mapping[str, str] | None = None,
) -> Result[Trigger, ReleaseError]:
    source: TriggerSource = "option"
    tag = tag_option.strip() if tag_option else None
    if not tag:
        from_env = tag_from_environment(environ)
        if isinstance(from_env, Err):
            return from_env
        if from_env.value is None:
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message="no release tag given",
                    hint="Pass --tag vX.Y.Z or run from a tag-push CI job (GITHUB_REF).",
                )
            )
        tag = from_env.value
        source = "github-ref"

    if not is_version_tag(tag):
        return Err(
            ReleaseError(
                kind="invalid_tag",
                message=f"not a version tag: {tag}",
                hint="Expected v<major>.<minor>.<patch>, e.g. v1.2.3",
            )
        )

    if not repo.tag_exists(tag):
        return Err(
            ReleaseError(
                kind="tag_missing",
                message=f"tag not found locally: {tag}",
                hint="Run: git fetch --tags",
            )
        )

    sha = repo.resolve_commit(tag).map_err(
        lambda e: ReleaseError(kind="tag_missing", message=e.message, hint=tag)
    )
    if isinstance(sha, Err):
        return sha

    if config.require_default_branch:
        branch_ref = default_branch_ref(repo, default_branch)
        if branch_ref is None:
            return Err(
                ReleaseError(
                    kind="tag_not_on_branch",
                    message=f"default branch not found: {default_branch}",
                    hint="Fetch the default branch or set trigger.require_default_branch = false",
                )
            )
        reachable = repo.is_ancestor(sha.value, branch_ref)
        if isinstance(reachable, Err):
            return Err(
                ReleaseError(kind="invalid_input", message=reachable.error.message, hint=tag)
            )
        if not reachable.value:
            return Err(
                ReleaseError(
                    kind="tag_not_on_branch",
                    message=f"{tag} is not on {branch_ref}",
                    hint="Only tags pushed to the default branch are released.",
                )
            )

    return Ok(Trigger(tag=tag, sha=sha.value, source=source))
