"""Hosted CI rendering of the pipeline.

Produces a GitHub Actions workflow with the same task graph tagrel runs
locally: a gate job, one matrix build job per configured platform uploading
``<prefix>-<platform>-<index>``, and a release job that waits for all of them.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from tagrel import __version__
from tagrel.core.config import TagrelConfig
from tagrel.core.result import Err, Ok, Result
from tagrel.platform.files import atomic_write_text
from tagrel.services.release.builder import targets_for
from tagrel.services.release.errors import ReleaseError
from tagrel.services.release.gate import OUTPUT_NAME
from tagrel.services.release.version import TRIGGER_PATTERN

_RUNNERS = {
    "linux": "ubuntu-latest",
    "macos": "macos-latest",
    "windows": "windows-latest",
}

_ARTIFACTS_DIR = "artifacts"


def _install_step() -> dict[str, object]:
    return {"run": f"python -m pip install tagrel=={__version__} cibuildwheel"}


def workflow_document(config: TagrelConfig) -> dict[str, object]:
    prefix = config.artifacts.prefix
    matrix = [
        {"os": _RUNNERS[t.platform], "platform": t.platform, "index": t.index}
        for t in targets_for(config.build.platforms)
    ]
    artifact = f"{prefix}-${{{{ matrix.platform }}}}-${{{{ matrix.index }}}}"

    gate_job: dict[str, object] = {
        "runs-on": "ubuntu-latest",
        "outputs": {OUTPUT_NAME: f"${{{{ steps.gate.outputs.{OUTPUT_NAME} }}}}"},
        "steps": [
            {"uses": "actions/checkout@v4"},
            {"uses": "actions/setup-python@v5", "with": {"python-version": "3.12"}},
            _install_step(),
            {"id": "gate", "run": "tagrel gate"},
        ],
    }

    build_job: dict[str, object] = {
        "needs": "gate",
        "if": f"needs.gate.outputs.{OUTPUT_NAME} == 'true'",
        "runs-on": "${{ matrix.os }}",
        "strategy": {"fail-fast": False, "matrix": {"include": matrix}},
        "steps": [
            {"uses": "actions/checkout@v4"},
            {"uses": "actions/setup-python@v5", "with": {"python-version": "3.12"}},
            _install_step(),
            {
                "run": (
                    "tagrel build --platform ${{ matrix.platform }} "
                    f"--index ${{{{ matrix.index }}}} --artifacts-dir {_ARTIFACTS_DIR}"
                )
            },
            {
                "uses": "actions/upload-artifact@v4",
                "with": {"name": artifact, "path": f"{_ARTIFACTS_DIR}/{artifact}/*.whl"},
            },
        ],
    }

    release_job: dict[str, object] = {
        "needs": ["gate", "build"],
        "if": f"needs.gate.outputs.{OUTPUT_NAME} == 'true'",
        "runs-on": "ubuntu-latest",
        "permissions": {"contents": "write"},
        "steps": [
            {"uses": "actions/checkout@v4", "with": {"fetch-depth": 0}},
            {"uses": "actions/setup-python@v5", "with": {"python-version": "3.12"}},
            _install_step(),
            {
                "uses": "actions/download-artifact@v4",
                "with": {"pattern": f"{prefix}-*", "path": _ARTIFACTS_DIR},
            },
            {
                "run": f"tagrel publish --artifacts-dir {_ARTIFACTS_DIR}",
                "env": {"GH_TOKEN": "${{ secrets.GITHUB_TOKEN }}"},
            },
        ],
    }

    return {
        "name": "Release",
        "on": {"push": {"tags": [TRIGGER_PATTERN]}},
        "jobs": {"gate": gate_job, "build": build_job, "release": release_job},
    }


def render_workflow(config: TagrelConfig) -> str:
    return yaml.safe_dump(
        workflow_document(config),
        default_flow_style=False,
        sort_keys=False,
        width=120,
    )


def write_workflow(config: TagrelConfig, path: Path) -> Result[Path, ReleaseError]:
    try:
        atomic_write_text(path, render_workflow(config))
    except OSError as e:
        return Err(
            ReleaseError(
                kind="state_failed",
                message=f"failed to write workflow: {e}",
                hint=str(path),
            )
        )
    return Ok(path)
