"""Changelog command - release notes for a tag."""

from __future__ import annotations

from pathlib import Path

import typer

from tagrel.cli.commands._helpers import exit_release_error, resolve_tag_or_exit
from tagrel.cli.context import build_context
from tagrel.core.result import Err
from tagrel.output.console import Style
from tagrel.services.release.changelog import compute_changelog, write_notes


def changelog(
    tag: str | None = typer.Option(None, "--tag", help="Version tag", show_default=False),
    out: Path | None = typer.Option(
        None, "--out", help="Write notes to this file instead of stdout", show_default=False
    ),
) -> None:
    """Render the notes for the commits since the previous version tag."""
    ctx = build_context()
    resolved = resolve_tag_or_exit(ctx, tag)

    result = compute_changelog(
        project_root=ctx.project.root, tag=resolved, config=ctx.config.changelog
    )
    if isinstance(result, Err):
        exit_release_error(ctx.console, result.error)
    notes = result.value

    if out is None:
        typer.echo(notes.text, nl=False)
        return

    written = write_notes(notes, out.expanduser())
    if isinstance(written, Err):
        exit_release_error(ctx.console, written.error)
    since = notes.previous_tag or "first commit"
    ctx.console.print(f"{len(notes.commits)} commit(s) since {since}", Style.DIM)
    ctx.console.success(str(written.value))
