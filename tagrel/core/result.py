"""Ok/Err values returned by every fallible pipeline operation.

    tags = repo.tags("v*.*.*")
    match tags:
        case Ok(names):
            ...
        case Err(error):
            ...

Callers branch with ``isinstance(result, Err)`` or ``match``; nothing in the
pipeline raises for expected failures.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeAlias, TypeVar

T = TypeVar("T")
E = TypeVar("E")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def map_err(self, f: Callable[[Any], object]) -> Ok[T]:
        return self


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E

    def map_err(self, f: Callable[[E], F]) -> Err[F]:
        """Convert the error, e.g. a ``GitError`` into a ``ReleaseError``."""
        return Err(f(self.error))


Result: TypeAlias = Ok[T] | Err[E]
