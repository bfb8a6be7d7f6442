from __future__ import annotations

import json
import os
import shutil
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from time import sleep

from tagrel.core.result import Err, Ok, Result
from tagrel.core.structured import as_str_dict, get_str
from tagrel.platform.process import ProcessError
from tagrel.platform.process import run as run_process
from tagrel.services.release.errors import ReleaseError, ReleaseErrorKind
from tagrel.services.release.timeouts import (
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_TIMEOUT_SECONDS,
    GH_UPLOAD_TIMEOUT_SECONDS,
)

WRITE_PERMISSIONS = frozenset({"ADMIN", "MAINTAIN", "WRITE"})


@dataclass(frozen=True, slots=True)
class GhRelease:
    tag: str
    url: str | None


def gh_env(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Environment for gh, exporting the CI-provided token as GH_TOKEN.

    Hosted CI exposes the job token as GITHUB_TOKEN; gh reads GH_TOKEN first.
    """
    env = dict(os.environ if environ is None else environ)
    if not env.get("GH_TOKEN") and env.get("GITHUB_TOKEN"):
        env["GH_TOKEN"] = env["GITHUB_TOKEN"]
    return env


def has_token(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return bool(env.get("GH_TOKEN") or env.get("GITHUB_TOKEN"))


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "tls handshake timeout",
        "network is unreachable",
        "http 429",
        "http 500",
        "http 502",
        "http 503",
        "http 504",
    )
    if error.timed_out:
        return True
    return any(marker in text for marker in markers)


def _is_not_found(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    return "release not found" in text or "http 404" in text


def run_gh_read(
    *,
    project_root: Path,
    cmd: list[str],
    kind: ReleaseErrorKind,
    message: str,
    hint: str | None = None,
    timeout: float = GH_TIMEOUT_SECONDS,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, ReleaseError]:
    """Run an idempotent gh query, retrying transient network failures."""
    attempts = max(1, retry_attempts)
    for attempt in range(attempts):
        result = run_process(cmd, cwd=project_root, env=gh_env(), timeout=timeout)
        if isinstance(result, Ok):
            return result

        error = result.error
        if attempt < attempts - 1 and _is_transient_gh_error(error):
            sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
            continue

        return Err(ReleaseError(kind=kind, message=message, hint=error.stderr.strip() or hint))

    return Err(ReleaseError(kind=kind, message=message, hint=hint))


def ensure_gh_available() -> Result[None, ReleaseError]:
    if shutil.which("gh") is None:
        return Err(
            ReleaseError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def ensure_gh_auth(*, project_root: Path) -> Result[None, ReleaseError]:
    # A token in the environment is enough; gh auth status would only
    # report on stored credentials.
    if has_token():
        return Ok(None)

    result = run_process(
        ["gh", "auth", "status"], cwd=project_root, env=gh_env(), timeout=GH_TIMEOUT_SECONDS
    )
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="gh_auth_required",
                message="gh auth required",
                hint="Set GH_TOKEN/GITHUB_TOKEN or run: gh auth login",
            )
        )
    return Ok(None)


def viewer_permission(*, project_root: Path, repo: str) -> Result[str, ReleaseError]:
    result = run_gh_read(
        project_root=project_root,
        cmd=["gh", "repo", "view", repo, "--json", "viewerPermission"],
        kind="permission_denied",
        message=f"failed to query repo permission: {repo}",
        hint=repo,
    )
    if isinstance(result, Err):
        return result

    try:
        obj: object = json.loads(result.value)
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(kind="invalid_input", message=f"invalid JSON from gh repo view: {e}")
        )

    data = as_str_dict(obj)
    if data is None:
        return Err(
            ReleaseError(kind="invalid_input", message="unexpected payload from gh repo view")
        )

    perm = get_str(data, "viewerPermission")
    if perm is None:
        return Err(ReleaseError(kind="invalid_input", message="missing viewerPermission"))
    return Ok(perm)


def ensure_write_permission(*, project_root: Path, repo: str) -> Result[None, ReleaseError]:
    perm = viewer_permission(project_root=project_root, repo=repo)
    if isinstance(perm, Err):
        return perm
    if perm.value not in WRITE_PERMISSIONS:
        return Err(
            ReleaseError(
                kind="permission_denied",
                message=f"insufficient permission on {repo}: {perm.value}",
                hint="Publishing needs contents: write (WRITE/MAINTAIN/ADMIN).",
            )
        )
    return Ok(None)


def find_release(
    *, project_root: Path, repo: str, tag: str
) -> Result[GhRelease | None, ReleaseError]:
    """Look up the release for ``tag``; Ok(None) when there is none."""
    cmd = ["gh", "release", "view", tag, "--repo", repo, "--json", "tagName,url"]
    attempts = max(1, GH_READ_RETRY_ATTEMPTS)
    for attempt in range(attempts):
        result = run_process(cmd, cwd=project_root, env=gh_env(), timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Ok):
            break

        error = result.error
        if _is_not_found(error):
            return Ok(None)
        if attempt < attempts - 1 and _is_transient_gh_error(error):
            sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
            continue
        return Err(
            ReleaseError(
                kind="publish_failed",
                message=f"failed to query release {tag}",
                hint=error.stderr.strip() or None,
            )
        )
    else:
        return Err(ReleaseError(kind="publish_failed", message=f"failed to query release {tag}"))

    try:
        obj: object = json.loads(result.value)
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(kind="invalid_input", message=f"invalid JSON from gh release view: {e}")
        )

    data = as_str_dict(obj)
    if data is None:
        return Err(
            ReleaseError(kind="invalid_input", message="unexpected gh release view payload")
        )
    return Ok(GhRelease(tag=get_str(data, "tagName") or tag, url=get_str(data, "url")))


def create_release(
    *,
    project_root: Path,
    repo: str,
    tag: str,
    title: str,
    notes_path: Path,
    assets: tuple[Path, ...],
) -> Result[str, ReleaseError]:
    """Create the release and upload every asset in one call.

    Not retried: a failed create may have partially succeeded.
    Returns the release URL printed by gh.
    """
    cmd = [
        "gh",
        "release",
        "create",
        tag,
        *[str(a) for a in assets],
        "--repo",
        repo,
        "--title",
        title,
        "--notes-file",
        str(notes_path),
        "--verify-tag",
    ]
    result = run_process(cmd, cwd=project_root, env=gh_env(), timeout=GH_UPLOAD_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        e = result.error
        stderr = e.stderr.strip()
        if "already exists" in stderr.lower():
            return Err(
                ReleaseError(
                    kind="release_exists",
                    message=f"release already exists: {tag}",
                    hint=stderr or None,
                )
            )
        return Err(
            ReleaseError(
                kind="publish_failed",
                message=f"gh release create failed for {tag}",
                hint=stderr or None,
            )
        )

    url = result.value.strip().splitlines()[-1] if result.value.strip() else ""
    return Ok(url)
