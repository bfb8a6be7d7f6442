from __future__ import annotations

from pathlib import Path

import yaml

from tagrel import __version__
from tagrel.core.config import ArtifactsConfig, BuildConfig, TagrelConfig
from tagrel.core.result import Ok
from tagrel.services.release.workflow import (
    render_workflow,
    workflow_document,
    write_workflow,
)


def _load(config: TagrelConfig) -> dict[object, object]:
    doc = yaml.safe_load(render_workflow(config))
    assert isinstance(doc, dict)
    return doc


def test_triggered_by_version_tags() -> None:
    doc = _load(TagrelConfig())
    # YAML 1.1 reads the bare key `on` as a boolean.
    trigger = doc.get("on", doc.get(True))
    assert trigger == {"push": {"tags": ["v[0-9]+.[0-9]+.[0-9]+"]}}


def test_build_matrix_follows_configured_platforms() -> None:
    config = TagrelConfig(
        build=BuildConfig(platforms=("linux", "windows")),
        artifacts=ArtifactsConfig(prefix="dist"),
    )
    jobs = workflow_document(config)["jobs"]
    assert isinstance(jobs, dict)

    build = jobs["build"]
    assert build["needs"] == "gate"
    assert build["if"] == "needs.gate.outputs.should_release == 'true'"
    assert build["strategy"]["matrix"]["include"] == [
        {"os": "ubuntu-latest", "platform": "linux", "index": 0},
        {"os": "windows-latest", "platform": "windows", "index": 1},
    ]
    upload = build["steps"][-1]
    assert upload["uses"] == "actions/upload-artifact@v4"
    assert upload["with"]["name"] == "dist-${{ matrix.platform }}-${{ matrix.index }}"


def test_release_job_waits_for_every_build() -> None:
    jobs = _load(TagrelConfig())["jobs"]
    assert isinstance(jobs, dict)

    release = jobs["release"]
    assert release["needs"] == ["gate", "build"]
    assert release["permissions"] == {"contents": "write"}
    download = next(s for s in release["steps"] if s.get("uses") == "actions/download-artifact@v4")
    assert download["with"] == {"pattern": "wheels-*", "path": "artifacts"}
    assert release["steps"][-1]["run"] == "tagrel publish --artifacts-dir artifacts"


def test_gate_job_exports_decision() -> None:
    jobs = _load(TagrelConfig())["jobs"]
    assert isinstance(jobs, dict)

    gate = jobs["gate"]
    assert gate["outputs"] == {"should_release": "${{ steps.gate.outputs.should_release }}"}
    assert {"id": "gate", "run": "tagrel gate"} in gate["steps"]
    assert {"run": f"python -m pip install tagrel=={__version__} cibuildwheel"} in gate["steps"]


def test_write_workflow(tmp_path: Path) -> None:
    out = tmp_path / ".github" / "workflows" / "release.yml"
    assert write_workflow(TagrelConfig(), out) == Ok(out)
    assert out.read_text(encoding="utf-8") == render_workflow(TagrelConfig())
