from __future__ import annotations

import os
from pathlib import Path

import typer

from tagrel import __version__
from tagrel.cli.commands.build_cmd import build
from tagrel.cli.commands.changelog_cmd import changelog
from tagrel.cli.commands.gate import gate
from tagrel.cli.commands.publish_cmd import publish
from tagrel.cli.commands.run_cmd import run
from tagrel.cli.commands.status import status
from tagrel.cli.commands.workflow_cmd import workflow
from tagrel.core.errors import ErrorCode
from tagrel.core.project import PROJECT_ENV_VAR, is_project_root


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Tag-triggered wheel release pipeline.",
)


# Pipeline
app.command()(run)

# Stages
app.command()(gate)
app.command()(build)
app.command()(changelog)
app.command()(publish)

# Inspection
app.command()(status)
app.command()(workflow)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    project: Path | None = typer.Option(
        None,
        "--project",
        help="Project root (overrides auto detection)",
    ),
) -> None:
    del version
    if project is not None:
        try:
            root = project.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --project: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir() or not is_project_root(root):
            typer.echo(
                f"error: --project '{root}' is not a git checkout (missing .git)",
                err=True,
            )
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[PROJECT_ENV_VAR] = str(root)


def main() -> None:
    app()
