"""Persisted record of one pipeline run.

The record is rewritten atomically after every state transition so that an
interrupted run leaves an accurate trace of how far it got.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal, cast, get_args
from uuid import uuid4

from tagrel.core.result import Err, Ok, Result
from tagrel.core.structured import StrDict, as_obj_list, as_str_dict, get_bool, get_int, get_str
from tagrel.platform.files import atomic_write_json
from tagrel.services.release.errors import ReleaseError, ReleaseErrorKind
from tagrel.services.release.model import (
    TERMINAL_STATES,
    BuildOutcome,
    GateDecision,
    GateReason,
    PipelineState,
)

RUN_SCHEMA = 1

_STATES: frozenset[str] = frozenset(get_args(PipelineState))
_GATE_REASONS: frozenset[str] = frozenset(get_args(GateReason))


@dataclass(frozen=True, slots=True)
class BuildEntry:
    platform: str
    index: int
    artifact: str
    wheels: tuple[str, ...]
    log_path: str | None
    error: ReleaseError | None

    @property
    def ok(self) -> bool:
        return self.error is None

    @staticmethod
    def from_outcome(outcome: BuildOutcome) -> BuildEntry:
        return BuildEntry(
            platform=outcome.target.platform,
            index=outcome.target.index,
            artifact=outcome.artifact,
            wheels=outcome.wheels,
            log_path=str(outcome.log_path) if outcome.log_path is not None else None,
            error=outcome.error,
        )


@dataclass(frozen=True, slots=True)
class RunRecord:
    schema: Literal[1]
    run_id: str
    tag: str
    sha: str
    state: PipelineState
    created_at: str
    updated_at: str
    dry_run: bool
    gate: GateDecision | None
    builds: tuple[BuildEntry, ...]
    artifacts: tuple[str, ...]
    previous_tag: str | None
    changelog_path: str | None
    release_url: str | None
    failure: ReleaseError | None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


def _now() -> str:
    return datetime.now(tz=UTC).isoformat()


def new_run_record(*, tag: str, sha: str, dry_run: bool = False) -> RunRecord:
    now = _now()
    return RunRecord(
        schema=1,
        run_id=f"run-{uuid4().hex[:12]}",
        tag=tag,
        sha=sha,
        state="triggered",
        created_at=now,
        updated_at=now,
        dry_run=dry_run,
        gate=None,
        builds=(),
        artifacts=(),
        previous_tag=None,
        changelog_path=None,
        release_url=None,
        failure=None,
    )


def transition(record: RunRecord, state: PipelineState, **changes: object) -> RunRecord:
    """Move to ``state``, applying field changes and bumping ``updated_at``."""
    return replace(record, state=state, updated_at=_now(), **changes)


def fail(record: RunRecord, error: ReleaseError) -> RunRecord:
    return transition(record, "failed", failure=error)


def _error_payload(error: ReleaseError | None) -> dict[str, object] | None:
    if error is None:
        return None
    return {"kind": error.kind, "message": error.message, "hint": error.hint}


def _parse_error(obj: object) -> ReleaseError | None:
    d = as_str_dict(obj)
    if d is None:
        return None
    kind = get_str(d, "kind")
    message = get_str(d, "message")
    if kind is None or message is None:
        return None
    return ReleaseError(kind=cast(ReleaseErrorKind, kind), message=message, hint=get_str(d, "hint"))


def to_payload(record: RunRecord) -> dict[str, object]:
    gate: dict[str, object] | None = None
    if record.gate is not None:
        gate = {
            "proceed": record.gate.proceed,
            "reason": record.gate.reason,
            "repository": record.gate.repository,
        }

    return {
        "schema": RUN_SCHEMA,
        "run_id": record.run_id,
        "tag": record.tag,
        "sha": record.sha,
        "state": record.state,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "dry_run": record.dry_run,
        "gate": gate,
        "builds": [
            {
                "platform": b.platform,
                "index": b.index,
                "artifact": b.artifact,
                "wheels": list(b.wheels),
                "log_path": b.log_path,
                "error": _error_payload(b.error),
            }
            for b in record.builds
        ],
        "artifacts": list(record.artifacts),
        "previous_tag": record.previous_tag,
        "changelog_path": record.changelog_path,
        "release_url": record.release_url,
        "failure": _error_payload(record.failure),
    }


def save_run_record(*, path: Path, record: RunRecord) -> Result[RunRecord, ReleaseError]:
    try:
        atomic_write_json(path, to_payload(record))
    except OSError as e:
        return Err(
            ReleaseError(
                kind="state_failed",
                message=f"failed to write run record: {e}",
                hint=str(path),
            )
        )
    return Ok(record)


def _parse_gate(obj: object) -> GateDecision | None:
    d = as_str_dict(obj)
    if d is None:
        return None
    proceed = get_bool(d, "proceed")
    reason = get_str(d, "reason")
    if proceed is None or reason not in _GATE_REASONS:
        return None
    return GateDecision(
        proceed=proceed,
        reason=cast(GateReason, reason),
        repository=get_str(d, "repository"),
    )


def _parse_builds(obj: object) -> tuple[BuildEntry, ...]:
    items = as_obj_list(obj) or []
    out: list[BuildEntry] = []
    for item in items:
        d: StrDict | None = as_str_dict(item)
        if d is None:
            continue
        platform = get_str(d, "platform")
        index = get_int(d, "index")
        if platform is None or index is None:
            continue
        wheels = [w for w in (as_obj_list(d.get("wheels")) or []) if isinstance(w, str)]
        out.append(
            BuildEntry(
                platform=platform,
                index=index,
                artifact=get_str(d, "artifact") or "",
                wheels=tuple(wheels),
                log_path=get_str(d, "log_path"),
                error=_parse_error(d.get("error")),
            )
        )
    return tuple(out)


def load_run_record(*, path: Path) -> Result[RunRecord | None, ReleaseError]:
    if not path.exists():
        return Ok(None)

    try:
        obj: object = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        return Err(
            ReleaseError(
                kind="state_failed",
                message=f"failed to load run record: {e}",
                hint=str(path),
            )
        )

    d = as_str_dict(obj)
    if d is None:
        return Err(
            ReleaseError(kind="state_failed", message="invalid run record format", hint=str(path))
        )

    schema = d.get("schema")
    if schema != RUN_SCHEMA:
        return Err(
            ReleaseError(
                kind="state_failed",
                message=f"unsupported run record schema: {schema}",
                hint=str(path),
            )
        )

    run_id = get_str(d, "run_id")
    tag = get_str(d, "tag")
    sha = get_str(d, "sha")
    state = get_str(d, "state")
    created_at = get_str(d, "created_at")
    updated_at = get_str(d, "updated_at")
    if (
        run_id is None
        or tag is None
        or sha is None
        or state not in _STATES
        or created_at is None
        or updated_at is None
    ):
        return Err(
            ReleaseError(
                kind="state_failed",
                message="run record missing required fields",
                hint=str(path),
            )
        )

    artifacts = [a for a in (as_obj_list(d.get("artifacts")) or []) if isinstance(a, str)]

    return Ok(
        RunRecord(
            schema=1,
            run_id=run_id,
            tag=tag,
            sha=sha,
            state=cast(PipelineState, state),
            created_at=created_at,
            updated_at=updated_at,
            dry_run=bool(get_bool(d, "dry_run")),
            gate=_parse_gate(d.get("gate")),
            builds=_parse_builds(d.get("builds")),
            artifacts=tuple(artifacts),
            previous_tag=get_str(d, "previous_tag"),
            changelog_path=get_str(d, "changelog_path"),
            release_url=get_str(d, "release_url"),
            failure=_parse_error(d.get("failure")),
        )
    )
