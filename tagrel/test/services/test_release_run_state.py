from __future__ import annotations

import json
from pathlib import Path

from tagrel.core.result import Err, Ok
from tagrel.services.release.errors import ReleaseError
from tagrel.services.release.model import BuildOutcome, GateDecision, PlatformTarget
from tagrel.services.release.run_state import (
    BuildEntry,
    fail,
    load_run_record,
    new_run_record,
    save_run_record,
    transition,
)


def test_new_record_starts_triggered() -> None:
    record = new_run_record(tag="v1.0.0", sha="a" * 40)
    assert record.state == "triggered"
    assert record.run_id.startswith("run-")
    assert not record.is_terminal
    assert new_run_record(tag="v1.0.0", sha="a" * 40).run_id != record.run_id


def test_run_record_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "runs" / "v1.0.0" / "run.json"
    outcome = BuildOutcome(
        target=PlatformTarget(platform="linux", index=0),
        artifact="wheels-linux-0",
        wheels=("a.whl",),
        log_path=tmp_path / "linux.log",
    )
    failed = BuildOutcome(
        target=PlatformTarget(platform="macos", index=1),
        artifact="wheels-macos-1",
        error=ReleaseError(kind="build_failed", message="macos build failed", hint="See log"),
    )
    record = transition(
        new_run_record(tag="v1.0.0", sha="a" * 40, dry_run=True),
        "gate-checked",
        gate=GateDecision(proceed=True, reason="ok", repository="acme/widgets"),
    )
    record = fail(
        transition(
            record,
            "building",
            builds=(BuildEntry.from_outcome(outcome), BuildEntry.from_outcome(failed)),
            artifacts=("wheels-linux-0",),
        ),
        ReleaseError(kind="build_failed", message="build failed for: macos-1"),
    )

    assert save_run_record(path=path, record=record) == Ok(record)

    loaded = load_run_record(path=path)
    assert loaded == Ok(record)
    assert isinstance(loaded, Ok) and loaded.value is not None
    assert loaded.value.is_terminal
    assert loaded.value.builds[0].ok
    assert not loaded.value.builds[1].ok


def test_missing_record_is_none(tmp_path: Path) -> None:
    assert load_run_record(path=tmp_path / "run.json") == Ok(None)


def test_unknown_schema(tmp_path: Path) -> None:
    path = tmp_path / "run.json"
    path.write_text(json.dumps({"schema": 99}), encoding="utf-8")
    result = load_run_record(path=path)
    assert isinstance(result, Err)
    assert result.error.kind == "state_failed"


def test_unknown_state(tmp_path: Path) -> None:
    path = tmp_path / "run.json"
    record = new_run_record(tag="v1.0.0", sha="a" * 40)
    assert isinstance(save_run_record(path=path, record=record), Ok)

    data = json.loads(path.read_text(encoding="utf-8"))
    data["state"] = "exploded"
    path.write_text(json.dumps(data), encoding="utf-8")

    result = load_run_record(path=path)
    assert isinstance(result, Err)
    assert result.error.message == "run record missing required fields"


def test_corrupt_record(tmp_path: Path) -> None:
    path = tmp_path / "run.json"
    path.write_text("{not json", encoding="utf-8")
    result = load_run_record(path=path)
    assert isinstance(result, Err)
    assert result.error.kind == "state_failed"
