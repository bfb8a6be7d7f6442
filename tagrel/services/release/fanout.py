from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from tagrel.services.release.errors import ReleaseError
from tagrel.services.release.model import BuildOutcome, PlatformTarget

BuildTask = Callable[[PlatformTarget], BuildOutcome]


def run_fanout(
    targets: Sequence[PlatformTarget],
    task: BuildTask,
    *,
    max_workers: int | None = None,
) -> list[BuildOutcome]:
    """Run ``task`` for every target and wait for all of them.

    Returns outcomes in target order. A failing target never cancels the
    others; an exception escaping a task is turned into a failed outcome.
    """
    if not targets:
        return []

    workers = max_workers if max_workers is not None else len(targets)
    with ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="tagrel-build") as pool:
        futures = [pool.submit(task, t) for t in targets]

    outcomes: list[BuildOutcome] = []
    for target, future in zip(targets, futures, strict=True):
        exc = future.exception()
        if exc is not None:
            outcomes.append(
                BuildOutcome(
                    target=target,
                    artifact="",
                    error=ReleaseError(
                        kind="build_failed",
                        message=f"{target.platform} build crashed: {exc}",
                    ),
                )
            )
            continue
        outcomes.append(future.result())
    return outcomes


def failed_outcomes(outcomes: Sequence[BuildOutcome]) -> list[BuildOutcome]:
    return [o for o in outcomes if not o.ok]


def summarize_failures(outcomes: Sequence[BuildOutcome]) -> ReleaseError | None:
    """One ``build_failed`` error naming every failed platform, or None."""
    failed = failed_outcomes(outcomes)
    if not failed:
        return None
    names = ", ".join(f"{o.target.platform}-{o.target.index}" for o in failed)
    details = "; ".join(o.error.message for o in failed if o.error is not None)
    return ReleaseError(
        kind="build_failed",
        message=f"build failed for: {names}",
        hint=details or None,
    )
