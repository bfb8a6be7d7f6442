"""Workflow command - render the hosted CI equivalent of the pipeline."""

from __future__ import annotations

from pathlib import Path

import typer

from tagrel.cli.commands._helpers import exit_release_error
from tagrel.cli.context import build_context
from tagrel.core.result import Err
from tagrel.services.release.workflow import render_workflow, write_workflow


def workflow(
    out: Path | None = typer.Option(
        None,
        "--out",
        help="Write to this path (e.g. .github/workflows/release.yml) instead of stdout",
        show_default=False,
    ),
) -> None:
    """Render the GitHub Actions workflow for the configured platforms."""
    ctx = build_context()

    if out is None:
        typer.echo(render_workflow(ctx.config), nl=False)
        return

    path = out.expanduser()
    if not path.is_absolute():
        path = ctx.project.root / path

    written = write_workflow(ctx.config, path)
    if isinstance(written, Err):
        exit_release_error(ctx.console, written.error)
    ctx.console.success(str(written.value))
