"""Status command - show pipeline run records."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from tagrel.cli.commands._helpers import exit_release_error
from tagrel.cli.context import build_context
from tagrel.core.project import Project
from tagrel.core.result import Err
from tagrel.services.release.run_state import RunRecord, load_run_record
from tagrel.services.release.version import parse_version_tag

_console = Console(highlight=False)

_STATE_COLORS = {
    "released": "green",
    "skipped": "cyan",
    "failed": "red",
}


def _state_text(state: str) -> Text:
    return Text(state, style=_STATE_COLORS.get(state, "yellow"))


def _run_tags(project: Project) -> list[str]:
    if not project.runs_dir.is_dir():
        return []
    tags = [p.name for p in project.runs_dir.iterdir() if (p / "run.json").is_file()]

    def key(tag: str) -> tuple[int, int, int]:
        v = parse_version_tag(tag)
        return (v.major, v.minor, v.patch) if v is not None else (-1, -1, -1)

    return sorted(tags, key=key, reverse=True)


def _render_record(record: RunRecord) -> None:
    _console.print(Text.assemble((record.tag, "bold"), "  ", _state_text(record.state)))
    _console.print(f"run:      {record.run_id}{' (dry-run)' if record.dry_run else ''}")
    _console.print(f"commit:   {record.sha}")
    _console.print(f"updated:  {record.updated_at}")
    if record.gate is not None:
        _console.print(f"gate:     {record.gate.reason} ({record.gate.repository or '?'})")
    if record.previous_tag is not None:
        _console.print(f"since:    {record.previous_tag}")
    if record.changelog_path is not None:
        _console.print(f"notes:    {record.changelog_path}")
    if record.release_url is not None:
        _console.print(f"release:  {record.release_url}")

    if record.builds:
        table = Table(show_header=True, header_style="bold")
        table.add_column("artifact")
        table.add_column("result")
        table.add_column("wheels", justify="right")
        table.add_column("log")
        for b in record.builds:
            if b.error is not None:
                result = Text(b.error.kind, style="red")
            else:
                result = Text("ok", style="green")
            table.add_row(
                b.artifact or f"{b.platform}-{b.index}",
                result,
                str(len(b.wheels)),
                b.log_path or "",
            )
        _console.print(table)

    if record.failure is not None:
        _console.print(Text(f"error: {record.failure.message}", style="red bold"))
        if record.failure.hint:
            _console.print(Text(f"hint: {record.failure.hint}", style="dim"))


def status(
    tag: str | None = typer.Option(
        None, "--tag", help="Show one run in detail (default: list runs)", show_default=False
    ),
) -> None:
    """Show the state of pipeline runs."""
    ctx = build_context()

    if tag is not None:
        loaded = load_run_record(path=ctx.project.run_paths(tag).record_path)
        if isinstance(loaded, Err):
            exit_release_error(ctx.console, loaded.error)
        if loaded.value is None:
            ctx.console.warning(f"no run recorded for {tag}")
            return
        _render_record(loaded.value)
        return

    tags = _run_tags(ctx.project)
    if not tags:
        ctx.console.print("no runs recorded")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("tag")
    table.add_column("state")
    table.add_column("updated")
    table.add_column("release")
    for t in tags:
        loaded = load_run_record(path=ctx.project.run_paths(t).record_path)
        if isinstance(loaded, Err) or loaded.value is None:
            table.add_row(t, Text("unreadable", style="red"), "", "")
            continue
        r = loaded.value
        table.add_row(t, _state_text(r.state), r.updated_at, r.release_url or "")
    _console.print(table)
