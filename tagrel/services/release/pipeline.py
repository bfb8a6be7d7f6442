"""Whole-pipeline driver.

    triggered -> gate-checked -> {skipped | building} -> built -> releasing -> released
                                                     `-> failed (from any stage)

Each state has one handler. Stage failures are transitions into ``failed``
so the run record always ends in a terminal state; only problems before a
record exists (bad trigger, tag already released) are returned as errors.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from tagrel.core.config import TagrelConfig
from tagrel.core.project import Project, RunPaths
from tagrel.core.result import Err, Ok, Result
from tagrel.git.repository import Repository
from tagrel.output.console import ConsoleProtocol, Style
from tagrel.platform.detection import PlatformInfo
from tagrel.services.release.artifacts import ArtifactStore
from tagrel.services.release.builder import build_platform, targets_for
from tagrel.services.release.errors import ReleaseError
from tagrel.services.release.fanout import run_fanout, summarize_failures
from tagrel.services.release.fsm import (
    FINISH,
    StepHandler,
    StepOutcome,
    advance,
    run_state_machine,
)
from tagrel.services.release.gate import check_gate, describe, write_github_output
from tagrel.services.release.model import BuildOutcome, PlatformTarget
from tagrel.services.release.publish import check_artifacts, publish
from tagrel.services.release.run_state import (
    BuildEntry,
    RunRecord,
    fail,
    load_run_record,
    new_run_record,
    save_run_record,
    transition,
)
from tagrel.services.release.trigger import resolve_trigger

BuildTask = Callable[[PlatformTarget], BuildOutcome]


@dataclass(frozen=True, slots=True)
class PipelineOptions:
    tag: str | None = None
    dry_run: bool = False


def ensure_not_released(
    run: RunPaths, tag: str, *, console: ConsoleProtocol
) -> Result[None, ReleaseError]:
    """Refuse a tag whose last real run was released.

    Any other record, an unreadable one included, is replaced by the new run.
    """
    existing = load_run_record(path=run.record_path)
    if isinstance(existing, Err):
        console.warning(f"replacing unreadable run record: {existing.error.message}")
        return Ok(None)
    record = existing.value
    if record is not None and record.state == "released" and not record.dry_run:
        return Err(
            ReleaseError(
                kind="release_exists",
                message=f"{tag} was already released by run {record.run_id}",
                hint=record.release_url or str(run.record_path),
            )
        )
    return Ok(None)


def _reset_run_dir(run: RunPaths) -> Result[None, ReleaseError]:
    try:
        if run.root.exists():
            shutil.rmtree(run.root)
        run.root.mkdir(parents=True)
    except OSError as e:
        return Err(
            ReleaseError(
                kind="state_failed",
                message=f"failed to prepare run directory: {e}",
                hint=str(run.root),
            )
        )
    return Ok(None)


def run_pipeline(
    *,
    project: Project,
    config: TagrelConfig,
    options: PipelineOptions,
    host: PlatformInfo,
    console: ConsoleProtocol,
    environ: Mapping[str, str] | None = None,
    build_task: BuildTask | None = None,
) -> Result[RunRecord, ReleaseError]:
    """Run every stage for one tag and return the final run record."""
    root = project.root
    trigger = resolve_trigger(
        repo=Repository(root),
        tag_option=options.tag,
        default_branch=config.repository.default_branch,
        config=config.trigger,
        environ=environ,
    )
    if isinstance(trigger, Err):
        return trigger
    tag = trigger.value.tag
    run = project.run_paths(tag)

    refused = ensure_not_released(run, tag, console=console)
    if isinstance(refused, Err):
        return refused

    reset = _reset_run_dir(run)
    if isinstance(reset, Err):
        return reset

    store = ArtifactStore(run.artifacts_dir)
    console.header(f"Release {tag} ({trigger.value.sha[:7]})")

    def default_task(target: PlatformTarget) -> BuildOutcome:
        return build_platform(
            project_root=root,
            target=target,
            config=config.build,
            prefix=config.artifacts.prefix,
            run=run,
            store=store,
            host=host,
            console=console,
            dry_run=options.dry_run,
        )

    task = build_task or default_task

    def on_triggered(record: RunRecord) -> Result[StepOutcome[RunRecord], ReleaseError]:
        decision = check_gate(
            project_root=root, config=config.repository, environ=environ, tag=record.tag
        )
        console.print(describe(decision, marker=config.repository.marker), Style.INFO)
        written = write_github_output(decision, environ)
        if isinstance(written, Err):
            return Ok(advance(fail(record, written.error)))
        return Ok(advance(transition(record, "gate-checked", gate=decision)))

    def on_gate_checked(record: RunRecord) -> Result[StepOutcome[RunRecord], ReleaseError]:
        if record.gate is None or not record.gate.proceed:
            return Ok(advance(transition(record, "skipped")))
        return Ok(advance(transition(record, "building")))

    def on_building(record: RunRecord) -> Result[StepOutcome[RunRecord], ReleaseError]:
        targets = targets_for(config.build.platforms)
        console.print(
            f"building {len(targets)} platform(s): {', '.join(config.build.platforms)}",
            Style.DIM,
        )
        outcomes = run_fanout(targets, task, max_workers=config.build.max_workers)
        builds = tuple(BuildEntry.from_outcome(o) for o in outcomes)

        failure = summarize_failures(outcomes)
        if failure is not None:
            return Ok(advance(transition(record, "failed", builds=builds, failure=failure)))
        return Ok(
            advance(
                transition(
                    record,
                    "built",
                    builds=builds,
                    artifacts=tuple(o.artifact for o in outcomes),
                )
            )
        )

    def on_built(record: RunRecord) -> Result[StepOutcome[RunRecord], ReleaseError]:
        if not options.dry_run:
            checked = check_artifacts(store=store, config=config)
            if isinstance(checked, Err):
                return Ok(advance(fail(record, checked.error)))
        return Ok(advance(transition(record, "releasing")))

    def on_releasing(record: RunRecord) -> Result[StepOutcome[RunRecord], ReleaseError]:
        published = publish(
            project_root=root,
            tag=tag,
            config=config,
            run=run,
            store=store,
            console=console,
            dry_run=options.dry_run,
            environ=environ,
        )
        if isinstance(published, Err):
            return Ok(advance(fail(record, published.error)))
        p = published.value
        return Ok(
            advance(
                transition(
                    record,
                    "released",
                    previous_tag=p.assembled.changelog.previous_tag,
                    changelog_path=str(p.assembled.notes_path),
                    release_url=p.release.url,
                )
            )
        )

    def on_terminal(_: RunRecord) -> Result[StepOutcome[RunRecord], ReleaseError]:
        return Ok(FINISH)

    handlers: dict[str, StepHandler[RunRecord]] = {
        "triggered": on_triggered,
        "gate-checked": on_gate_checked,
        "building": on_building,
        "built": on_built,
        "releasing": on_releasing,
        "skipped": on_terminal,
        "released": on_terminal,
        "failed": on_terminal,
    }

    initial = save_run_record(
        path=run.record_path,
        record=new_run_record(tag=tag, sha=trigger.value.sha, dry_run=options.dry_run),
    )
    if isinstance(initial, Err):
        return initial

    def save(record: RunRecord) -> Result[RunRecord, ReleaseError]:
        console.print(f"state: {record.state}", Style.DIM)
        return save_run_record(path=run.record_path, record=record)

    return run_state_machine(
        initial_state=initial.value,
        get_step=lambda r: r.state,
        handlers=handlers,
        save_state=save,
    )
