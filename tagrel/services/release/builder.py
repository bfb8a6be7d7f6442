"""Single-platform wheel build (one fan-out task).

Each task runs cibuildwheel for one platform into its own output directory,
writes the full transcript to a log file and uploads the produced wheels to
the run's artifact store. Tasks share nothing but the store, whose uploads
are serialized.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable, Mapping
from pathlib import Path

from tagrel.core.config import BuildConfig
from tagrel.core.project import RunPaths
from tagrel.core.result import Err, Ok, Result
from tagrel.output.console import ConsoleProtocol, Style
from tagrel.platform.detection import PlatformInfo
from tagrel.platform.files import atomic_write_text
from tagrel.platform.process import run_combined
from tagrel.services.release.artifacts import ArtifactStore
from tagrel.services.release.errors import ReleaseError
from tagrel.services.release.model import BuildOutcome, PlatformTarget

Which = Callable[[str], str | None]

_CONTAINER_ENGINES = ("docker", "podman")

# Platforms cibuildwheel only builds on a matching host.
_NATIVE_ONLY = frozenset({"macos", "windows"})


def targets_for(platforms: tuple[str, ...]) -> list[PlatformTarget]:
    return [PlatformTarget(platform=p, index=i) for i, p in enumerate(platforms)]


def build_env(config: BuildConfig, base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Process environment for cibuildwheel.

    Linux builds run in manylinux/musllinux containers that start without a
    Rust toolchain: ``CIBW_BEFORE_ALL_LINUX`` installs it and
    ``CIBW_ENVIRONMENT_LINUX`` puts cargo on PATH for the build step.
    """
    env = dict(os.environ if base is None else base)
    env["CIBW_BEFORE_ALL_LINUX"] = config.before_all_linux
    env["CIBW_ENVIRONMENT_LINUX"] = config.environment_linux
    if config.skip:
        env["CIBW_SKIP"] = " ".join(config.skip)
    for key, value in config.env:
        env[key] = value
    return env


def build_command(
    *,
    tool: str,
    target: PlatformTarget,
    output_dir: Path,
    project_root: Path,
) -> list[str]:
    return [
        tool,
        "--platform",
        target.platform,
        "--output-dir",
        str(output_dir),
        str(project_root),
    ]


def check_host(
    target: PlatformTarget,
    host: PlatformInfo,
    which: Which = shutil.which,
) -> Result[None, ReleaseError]:
    if target.platform in _NATIVE_ONLY:
        if not host.can_build_natively(target.platform):
            return Err(
                ReleaseError(
                    kind="platform_unavailable",
                    message=f"{target.platform} wheels cannot be built on a {host.platform} host",
                    hint=f"Run this build job on a {target.platform} runner.",
                )
            )
        return Ok(None)

    if not any(which(engine) for engine in _CONTAINER_ENGINES):
        return Err(
            ReleaseError(
                kind="platform_unavailable",
                message="linux wheels need a container engine (docker or podman)",
                hint="Install docker or podman on the build host.",
            )
        )
    return Ok(None)


def check_tool(tool: str, which: Which = shutil.which) -> Result[None, ReleaseError]:
    if which(tool) is None:
        return Err(
            ReleaseError(
                kind="tool_missing",
                message=f"{tool}: missing",
                hint=f"Install it: pip install {tool}",
            )
        )
    return Ok(None)


def _write_log(path: Path, text: str, *, console: ConsoleProtocol, name: str) -> None:
    # The build outcome is already decided; a lost log only costs diagnostics.
    try:
        atomic_write_text(path, text)
    except OSError as e:
        console.warning(f"[{name}] could not write build log: {e}")


def _prepare_output_dir(path: Path) -> Result[None, ReleaseError]:
    try:
        if path.exists():
            shutil.rmtree(path)
        path.mkdir(parents=True)
    except OSError as e:
        return Err(
            ReleaseError(
                kind="state_failed",
                message=f"failed to prepare build output directory: {e}",
                hint=str(path),
            )
        )
    return Ok(None)


def build_platform(
    *,
    project_root: Path,
    target: PlatformTarget,
    config: BuildConfig,
    prefix: str,
    run: RunPaths,
    store: ArtifactStore,
    host: PlatformInfo,
    console: ConsoleProtocol,
    dry_run: bool = False,
    which: Which = shutil.which,
) -> BuildOutcome:
    name = target.artifact_name(prefix)
    output_dir = run.build_dir / name
    log_path = run.logs_dir / f"{name}.log"
    cmd = build_command(
        tool=config.tool, target=target, output_dir=output_dir, project_root=project_root
    )

    console.print(f"[{name}] {' '.join(cmd)}", Style.DIM)
    if dry_run:
        for key in ("CIBW_BEFORE_ALL_LINUX", "CIBW_ENVIRONMENT_LINUX", "CIBW_SKIP"):
            console.print(f"[{name}] {key}={build_env(config, {}).get(key, '')}", Style.DIM)
        return BuildOutcome(target=target, artifact=name)

    for check in (check_tool(config.tool, which), check_host(target, host, which)):
        if isinstance(check, Err):
            console.error(f"[{name}] {check.error.message}")
            return BuildOutcome(target=target, artifact=name, error=check.error)

    prepared = _prepare_output_dir(output_dir)
    if isinstance(prepared, Err):
        console.error(f"[{name}] {prepared.error.message}")
        return BuildOutcome(target=target, artifact=name, error=prepared.error)

    result = run_combined(
        cmd,
        cwd=project_root,
        env=build_env(config),
        timeout=config.timeout_seconds,
    )
    if isinstance(result, Err):
        e = result.error
        _write_log(
            log_path,
            e.stdout + (f"\n{e.stderr}\n" if e.stderr else ""),
            console=console,
            name=name,
        )
        console.error(f"[{name}] failed building wheels (exit {e.returncode})")
        return BuildOutcome(
            target=target,
            artifact=name,
            log_path=log_path,
            error=ReleaseError(
                kind="build_failed",
                message=f"{target.platform} build failed (exit {e.returncode})",
                hint=f"See {log_path}",
            ),
        )

    _write_log(log_path, result.value.output, console=console, name=name)

    wheels = sorted(output_dir.glob("*.whl"))
    if not wheels:
        console.error(f"[{name}] no wheels produced")
        return BuildOutcome(
            target=target,
            artifact=name,
            log_path=log_path,
            error=ReleaseError(
                kind="no_wheels",
                message=f"{target.platform} build produced no wheels",
                hint="Check CIBW_SKIP / CIBW_BUILD selectors.",
            ),
        )

    uploaded = store.upload(name, wheels)
    if isinstance(uploaded, Err):
        console.error(f"[{name}] {uploaded.error.message}")
        return BuildOutcome(target=target, artifact=name, log_path=log_path, error=uploaded.error)

    console.success(f"[{name}] {len(wheels)} wheel(s)")
    return BuildOutcome(
        target=target,
        artifact=name,
        wheels=tuple(w.name for w in wheels),
        log_path=log_path,
    )
