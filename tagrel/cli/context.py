from __future__ import annotations

from dataclasses import dataclass

import typer

from tagrel.core.config import TagrelConfig, load_project_config
from tagrel.core.errors import ErrorCode
from tagrel.core.project import Project, detect_project
from tagrel.core.result import Err
from tagrel.output.console import ConsoleProtocol, RichConsole
from tagrel.platform.detection import PlatformInfo, detect


@dataclass(frozen=True, slots=True)
class CLIContext:
    project: Project
    platform: PlatformInfo
    config: TagrelConfig
    console: ConsoleProtocol


def build_context() -> CLIContext:
    project_result = detect_project()
    if isinstance(project_result, Err):
        typer.echo(f"error: {project_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    project = project_result.value
    config_result = load_project_config(project.root)
    if isinstance(config_result, Err):
        e = config_result.error
        where = f" ({e.path})" if e.path is not None else ""
        typer.echo(f"error: {e.message}{where}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        project=project,
        platform=detect(),
        config=config_result.value,
        console=RichConsole(),
    )
