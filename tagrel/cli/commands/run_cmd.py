"""Run command - the whole pipeline for one tag."""

from __future__ import annotations

import typer

from tagrel.cli.commands._helpers import exit_release_error
from tagrel.cli.context import build_context
from tagrel.core.result import Err, Ok
from tagrel.output.console import Style
from tagrel.services.release.errors import ReleaseError
from tagrel.services.release.pipeline import PipelineOptions, run_pipeline


def run(
    tag: str | None = typer.Option(
        None, "--tag", help="Version tag (default: from GITHUB_REF)", show_default=False
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without running them"),
) -> None:
    """Gate, build every platform, then publish one release."""
    ctx = build_context()

    result = run_pipeline(
        project=ctx.project,
        config=ctx.config,
        options=PipelineOptions(tag=tag, dry_run=dry_run),
        host=ctx.platform,
        console=ctx.console,
    )

    match result:
        case Err(error):
            exit_release_error(ctx.console, error)
        case Ok(record):
            record_path = ctx.project.run_paths(record.tag).record_path
            ctx.console.print(f"run record: {record_path}", Style.DIM)
            if record.state == "skipped":
                ctx.console.success(f"{record.tag}: skipped by template gate")
                return
            if record.state == "released":
                where = record.release_url or ("dry-run" if record.dry_run else "published")
                ctx.console.success(f"{record.tag}: {where}")
                return
            failure = record.failure or ReleaseError(
                kind="state_failed", message=f"pipeline stopped in state {record.state}"
            )
            exit_release_error(ctx.console, failure)
