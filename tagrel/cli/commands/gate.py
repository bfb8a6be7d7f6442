"""Gate command - decide whether this repository releases at all."""

from __future__ import annotations

from tagrel.cli.commands._helpers import exit_release_error
from tagrel.cli.context import build_context
from tagrel.core.result import Err
from tagrel.output.console import Style
from tagrel.services.release.gate import OUTPUT_NAME, check_gate, describe, write_github_output


def gate() -> None:
    """Print the template-gate decision and export it as a CI step output.

    A skip is not a failure: the exit code is 0 either way.
    """
    ctx = build_context()
    repo_config = ctx.config.repository

    decision = check_gate(project_root=ctx.project.root, config=repo_config)
    ctx.console.print(describe(decision, marker=repo_config.marker), Style.INFO)
    ctx.console.print(f"{OUTPUT_NAME}={decision.output_value}")

    written = write_github_output(decision)
    if isinstance(written, Err):
        exit_release_error(ctx.console, written.error)
    if written.value is not None:
        ctx.console.print(f"wrote {OUTPUT_NAME} to {written.value}", Style.DIM)
