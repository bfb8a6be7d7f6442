"""Step driver for the pipeline state machine.

Each state name maps to one handler. A handler either advances to a new state,
which is persisted before the next handler runs, or finishes the run. The
pipeline graph is acyclic, so entering a state twice is reported as an error
instead of looping.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

from tagrel.core.result import Err, Ok, Result
from tagrel.services.release.errors import ReleaseError

S = TypeVar("S")


@dataclass(frozen=True, slots=True)
class StepAdvance(Generic[S]):
    state: S


@dataclass(frozen=True, slots=True)
class StepFinish:
    pass


FINISH = StepFinish()

StepOutcome: TypeAlias = StepAdvance[S] | StepFinish
StepHandler: TypeAlias = Callable[[S], Result[StepOutcome[S], ReleaseError]]


def advance(state: S) -> StepAdvance[S]:
    return StepAdvance(state=state)


def run_state_machine(
    *,
    initial_state: S,
    get_step: Callable[[S], str],
    handlers: Mapping[str, StepHandler[S]],
    save_state: Callable[[S], Result[S, ReleaseError]],
) -> Result[S, ReleaseError]:
    """Run handlers from ``initial_state`` and return the state that finished."""
    current = initial_state
    visited: list[str] = []

    while True:
        step = get_step(current)
        if step in visited:
            return Err(
                ReleaseError(
                    kind="state_failed",
                    message=f"pipeline re-entered state {step}",
                    hint=" -> ".join([*visited, step]),
                )
            )
        visited.append(step)

        handler = handlers.get(step)
        if handler is None:
            return Err(
                ReleaseError(kind="invalid_input", message=f"unknown pipeline state: {step}")
            )

        outcome = handler(current)
        if isinstance(outcome, Err):
            return outcome
        if isinstance(outcome.value, StepFinish):
            return Ok(current)

        saved = save_state(outcome.value.state)
        if isinstance(saved, Err):
            return saved
        current = saved.value
