"""Subprocess execution returning ``Result`` values.

Every external tool (git, gh, cibuildwheel, conventional-changelog) runs
through here, so callers branch on ``ProcessError`` instead of catching
``subprocess`` exceptions::

    match run(["git", "tag", "--list"], cwd=project_root):
        case Ok(stdout):
            ...
        case Err(error) if error.timed_out:
            ...
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tagrel.core.result import Err, Ok, Result

__all__ = ["ProcessError", "ProcessOutput", "run", "run_combined"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that exited nonzero, could not start, or timed out.

    ``returncode`` is -1 when there is no exit status; ``timed_out`` tells
    the two cases apart.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def not_started(self) -> bool:
        return self.returncode == -1 and not self.timed_out

    def __str__(self) -> str:
        shown = " ".join(self.command[:3]) + (" ..." if len(self.command) > 3 else "")
        return f"{shown} failed (exit {self.returncode})"


@dataclass(frozen=True, slots=True)
class ProcessOutput:
    """Interleaved stdout+stderr of a finished process."""

    returncode: int
    output: str


def _decode(value: str | bytes | None) -> str:
    match value:
        case None:
            return ""
        case bytes():
            return value.decode("utf-8", errors="replace")
        case _:
            return value


def _invoke(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None,
    timeout: float | None,
    **streams: Any,
) -> Result[subprocess.CompletedProcess[str], ProcessError]:
    command = tuple(cmd)
    try:
        proc = subprocess.run(
            cmd, cwd=cwd, env=env, text=True, timeout=timeout, check=False, **streams
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                command=command,
                returncode=-1,
                stdout=_decode(e.stdout),
                stderr=f"Command timed out after {timeout}s",
                timed_out=True,
            )
        )
    except OSError as e:
        return Err(ProcessError(command=command, returncode=-1, stdout="", stderr=str(e)))
    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=command,
                returncode=proc.returncode,
                stdout=proc.stdout or "",
                stderr=proc.stderr or "",
            )
        )
    return Ok(proc)


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run ``cmd`` capturing both streams; Ok carries stdout.

    ``env`` replaces the environment when given. ``timeout`` is in seconds.
    """
    result = _invoke(cmd, cwd, env, timeout, capture_output=True)
    if isinstance(result, Err):
        return result
    return Ok(result.value.stdout)


def run_combined(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[ProcessOutput, ProcessError]:
    """Run a long build with stderr folded into stdout.

    The whole transcript ends up in ``ProcessOutput.output`` on success and in
    ``ProcessError.stdout`` on failure, so it can be written to a log either way.
    """
    result = _invoke(cmd, cwd, env, timeout, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    if isinstance(result, Err):
        return result
    return Ok(ProcessOutput(returncode=0, output=result.value.stdout))
