"""Publish command - release assembly behind the build barrier."""

from __future__ import annotations

from pathlib import Path

import typer

from tagrel.cli.commands._helpers import exit_release_error, resolve_tag_or_exit
from tagrel.cli.context import build_context
from tagrel.core.result import Err
from tagrel.services.release.artifacts import ArtifactStore
from tagrel.services.release.pipeline import ensure_not_released
from tagrel.services.release.publish import publish as publish_release


def publish(
    tag: str | None = typer.Option(None, "--tag", help="Version tag", show_default=False),
    artifacts_dir: Path | None = typer.Option(
        None,
        "--artifacts-dir",
        help="Artifact store root (default: the run directory)",
        show_default=False,
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the release without creating it"),
) -> None:
    """Collect every platform artifact and publish one GitHub release."""
    ctx = build_context()
    resolved = resolve_tag_or_exit(ctx, tag)
    run = ctx.project.run_paths(resolved)

    refused = ensure_not_released(run, resolved, console=ctx.console)
    if isinstance(refused, Err):
        exit_release_error(ctx.console, refused.error)

    store_root = artifacts_dir.expanduser() if artifacts_dir is not None else run.artifacts_dir
    if not store_root.is_absolute():
        store_root = Path.cwd() / store_root

    result = publish_release(
        project_root=ctx.project.root,
        tag=resolved,
        config=ctx.config,
        run=run,
        store=ArtifactStore(store_root),
        console=ctx.console,
        dry_run=dry_run,
    )
    if isinstance(result, Err):
        exit_release_error(ctx.console, result.error)

    if dry_run:
        ctx.console.success(f"{resolved}: dry-run ({len(result.value.release.assets)} assets)")
