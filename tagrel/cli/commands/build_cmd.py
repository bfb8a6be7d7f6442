"""Build command - one fan-out task (matrix job mode)."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

import typer

from tagrel.cli.commands._helpers import exit_release_error
from tagrel.cli.context import build_context
from tagrel.core.errors import ErrorCode
from tagrel.core.result import Err, Ok
from tagrel.services.release.artifacts import ArtifactStore
from tagrel.services.release.builder import build_platform
from tagrel.services.release.errors import ReleaseError
from tagrel.services.release.model import PlatformTarget
from tagrel.services.release.trigger import tag_from_environment
from tagrel.services.release.version import is_version_tag

# Run directory name for builds outside a tag push (e.g. a manual matrix dry-run).
UNTAGGED = "untagged"


class WheelPlatform(StrEnum):
    linux = "linux"
    macos = "macos"
    windows = "windows"


def _build_tag(tag: str | None) -> str:
    if tag is not None:
        return tag
    from_env = tag_from_environment()
    match from_env:
        case Err(_):
            return UNTAGGED
        case Ok(value):
            return value or UNTAGGED


def build(
    platform: WheelPlatform = typer.Option(..., "--platform", help="cibuildwheel platform"),
    index: int | None = typer.Option(
        None, "--index", help="Job index (default: position in build.platforms)", show_default=False
    ),
    tag: str | None = typer.Option(None, "--tag", help="Version tag", show_default=False),
    artifacts_dir: Path | None = typer.Option(
        None,
        "--artifacts-dir",
        help="Artifact store root (default: the run directory)",
        show_default=False,
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the build command only"),
) -> None:
    """Build the wheels of one platform and upload them as one artifact."""
    ctx = build_context()
    platforms = ctx.config.build.platforms

    if index is None:
        if platform.value not in platforms:
            configured = ", ".join(platforms)
            ctx.console.error(f"{platform.value} is not in build.platforms ({configured})")
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        index = platforms.index(platform.value)
    if index < 0:
        ctx.console.error("--index must be >= 0")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    run_tag = _build_tag(tag)
    if run_tag != UNTAGGED and not is_version_tag(run_tag):
        exit_release_error(
            ctx.console,
            ReleaseError(kind="invalid_tag", message=f"not a version tag: {run_tag}"),
        )

    run = ctx.project.run_paths(run_tag)
    store_root = artifacts_dir.expanduser() if artifacts_dir is not None else run.artifacts_dir
    if not store_root.is_absolute():
        store_root = Path.cwd() / store_root

    outcome = build_platform(
        project_root=ctx.project.root,
        target=PlatformTarget(platform=platform.value, index=index),
        config=ctx.config.build,
        prefix=ctx.config.artifacts.prefix,
        run=run,
        store=ArtifactStore(store_root),
        host=ctx.platform,
        console=ctx.console,
        dry_run=dry_run,
    )
    if outcome.error is not None:
        exit_release_error(ctx.console, outcome.error)

    if not dry_run:
        ctx.console.success(f"{outcome.artifact}: {store_root / outcome.artifact}")
