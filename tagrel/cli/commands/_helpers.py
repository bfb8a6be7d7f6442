"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from tagrel.core.errors import ErrorCode
from tagrel.core.result import Err
from tagrel.git.repository import Repository
from tagrel.output.console import ConsoleProtocol, Style
from tagrel.services.release.errors import ReleaseError
from tagrel.services.release.trigger import resolve_trigger

if TYPE_CHECKING:
    from tagrel.cli.context import CLIContext


def release_error_code(kind: str) -> ErrorCode:
    if kind == "release_exists":
        return ErrorCode.RELEASE_CONFLICT
    if kind in {"gh_missing", "gh_auth_required", "permission_denied"}:
        return ErrorCode.ENV_ERROR
    if kind in {"tool_missing", "platform_unavailable"}:
        return ErrorCode.ENV_ERROR
    if kind in {"build_failed", "no_wheels", "artifacts_incomplete"}:
        return ErrorCode.BUILD_ERROR
    if kind in {"artifact_exists", "artifact_conflict"}:
        return ErrorCode.BUILD_ERROR
    if kind == "publish_failed":
        return ErrorCode.NETWORK_ERROR
    if kind in {"changelog_failed", "state_failed"}:
        return ErrorCode.IO_ERROR
    return ErrorCode.USER_ERROR


def print_error(console: ConsoleProtocol, error: ReleaseError) -> None:
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def exit_release_error(console: ConsoleProtocol, error: ReleaseError) -> NoReturn:
    print_error(console, error)
    raise typer.Exit(code=int(release_error_code(error.kind)))


def resolve_tag_or_exit(ctx: CLIContext, tag: str | None) -> str:
    """Validated release tag from ``--tag`` or the CI ref."""
    trigger = resolve_trigger(
        repo=Repository(ctx.project.root),
        tag_option=tag,
        default_branch=ctx.config.repository.default_branch,
        config=ctx.config.trigger,
    )
    if isinstance(trigger, Err):
        exit_release_error(ctx.console, trigger.error)
    return trigger.value.tag
