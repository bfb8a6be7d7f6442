"""Release assembly: the single task behind the build barrier.

Collects every platform artifact, writes the changelog and manifest, then
creates exactly one GitHub release for the tag. Nothing is published unless
every configured platform delivered its artifact.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from tagrel.core.config import TagrelConfig
from tagrel.core.project import RunPaths
from tagrel.core.result import Err, Ok, Result
from tagrel.git.repository import Repository
from tagrel.output.console import ConsoleProtocol, Style
from tagrel.services.release.artifacts import ArtifactStore, write_manifest
from tagrel.services.release.builder import targets_for
from tagrel.services.release.changelog import compute_changelog, write_notes
from tagrel.services.release.errors import ReleaseError
from tagrel.services.release.gate import repository_slug
from tagrel.services.release.gh import (
    create_release,
    ensure_gh_auth,
    ensure_gh_available,
    ensure_write_permission,
    find_release,
)
from tagrel.services.release.model import Changelog, ReleaseRecord

# Shown in dry-run output when neither GITHUB_REPOSITORY nor origin names the repo.
_UNKNOWN_REPOSITORY = "<owner>/<name>"


@dataclass(frozen=True, slots=True)
class Assembled:
    artifacts: tuple[str, ...]
    files: tuple[Path, ...]
    changelog: Changelog
    notes_path: Path


@dataclass(frozen=True, slots=True)
class Published:
    release: ReleaseRecord
    assembled: Assembled


def expected_artifacts(config: TagrelConfig) -> list[str]:
    return [t.artifact_name(config.artifacts.prefix) for t in targets_for(config.build.platforms)]


def check_artifacts(
    *, store: ArtifactStore, config: TagrelConfig
) -> Result[list[str], ReleaseError]:
    """Every configured platform must have exactly its own artifact."""
    expected = expected_artifacts(config)
    present = store.names()
    missing = [n for n in expected if n not in present]
    unexpected = [n for n in present if n not in expected]
    if missing or unexpected:
        parts: list[str] = []
        if missing:
            parts.append(f"missing: {', '.join(missing)}")
        if unexpected:
            parts.append(f"unexpected: {', '.join(unexpected)}")
        return Err(
            ReleaseError(
                kind="artifacts_incomplete",
                message=f"{len(present)}/{len(expected)} artifacts ({'; '.join(parts)})",
                hint=str(store.root),
            )
        )
    return Ok(expected)


def assemble(
    *,
    project_root: Path,
    tag: str,
    config: TagrelConfig,
    run: RunPaths,
    store: ArtifactStore,
    console: ConsoleProtocol,
    dry_run: bool = False,
) -> Result[Assembled, ReleaseError]:
    checked = check_artifacts(store=store, config=config)
    if isinstance(checked, Err):
        if not dry_run:
            return checked
        console.warning(f"dry-run: {checked.error.message}")
        names = store.names()
    else:
        names = checked.value

    files = store.download_all(run.dist_dir)
    if isinstance(files, Err):
        return files
    console.print(f"collected {len(files.value)} file(s) into {run.dist_dir}", Style.DIM)

    changelog = compute_changelog(project_root=project_root, tag=tag, config=config.changelog)
    if isinstance(changelog, Err):
        return changelog
    since = changelog.value.previous_tag or "first commit"
    console.print(f"changelog: {len(changelog.value.commits)} commit(s) since {since}", Style.DIM)

    notes = write_notes(changelog.value, run.notes_path)
    if isinstance(notes, Err):
        return notes

    manifest = write_manifest(out_path=run.manifest_path, tag=tag, files=store.describe())
    if isinstance(manifest, Err):
        return manifest

    return Ok(
        Assembled(
            artifacts=tuple(names),
            files=tuple(files.value),
            changelog=changelog.value,
            notes_path=notes.value,
        )
    )


def publish(
    *,
    project_root: Path,
    tag: str,
    config: TagrelConfig,
    run: RunPaths,
    store: ArtifactStore,
    console: ConsoleProtocol,
    dry_run: bool = False,
    environ: Mapping[str, str] | None = None,
) -> Result[Published, ReleaseError]:
    assembled = assemble(
        project_root=project_root,
        tag=tag,
        config=config,
        run=run,
        store=store,
        console=console,
        dry_run=dry_run,
    )
    if isinstance(assembled, Err):
        return assembled
    a = assembled.value

    repo = repository_slug(Repository(project_root), environ)
    if repo is None and dry_run:
        console.warning("repository unknown; set GITHUB_REPOSITORY or add an origin remote")
        repo = _UNKNOWN_REPOSITORY
    if repo is None:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message="cannot determine the GitHub repository",
                hint="Set GITHUB_REPOSITORY=owner/name or add an origin remote.",
            )
        )

    if not dry_run and not a.files:
        return Err(ReleaseError(kind="artifacts_incomplete", message="no files to release"))

    console.print(
        f"gh release create {tag} <{len(a.files)} files> --repo {repo} --title {tag} "
        f"--notes-file {a.notes_path} --verify-tag",
        Style.DIM,
    )
    if dry_run:
        return Ok(
            Published(
                release=ReleaseRecord(
                    tag=tag, title=tag, notes_path=a.notes_path, assets=a.files, url=None
                ),
                assembled=a,
            )
        )

    for check in (ensure_gh_available(), ensure_gh_auth(project_root=project_root)):
        if isinstance(check, Err):
            return check

    perm = ensure_write_permission(project_root=project_root, repo=repo)
    if isinstance(perm, Err):
        return perm

    existing = find_release(project_root=project_root, repo=repo, tag=tag)
    if isinstance(existing, Err):
        return existing
    if existing.value is not None:
        return Err(
            ReleaseError(
                kind="release_exists",
                message=f"release already exists: {tag}",
                hint=existing.value.url or "Releases are never overwritten; push a new tag.",
            )
        )

    url = create_release(
        project_root=project_root,
        repo=repo,
        tag=tag,
        title=tag,
        notes_path=a.notes_path,
        assets=a.files,
    )
    if isinstance(url, Err):
        return url

    console.success(f"released {tag}: {url.value}")
    return Ok(
        Published(
            release=ReleaseRecord(
                tag=tag, title=tag, notes_path=a.notes_path, assets=a.files, url=url.value or None
            ),
            assembled=a,
        )
    )
