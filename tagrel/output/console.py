"""Console output abstraction.

Services never print directly: they receive a ``ConsoleProtocol`` and emit
lines through it. ``RichConsole`` renders to the terminal and ``MockConsole``
keeps every line for assertions. Build jobs report from worker threads, so
both implementations serialize writes.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from rich.console import Console
from rich.text import Text

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "OutputRecord",
    "RichConsole",
    "Style",
]


class Style(Enum):
    """Line styles; each value is the Rich style string used to render it."""

    DEFAULT = ""
    SUCCESS = "green"
    ERROR = "red bold"
    WARNING = "yellow"
    INFO = "cyan"
    DIM = "dim"
    BOLD = "bold"
    HEADER = "blue bold"


# Prefix attached by the level helpers (success/error/warning).
_PREFIX: dict[Style, str] = {
    Style.SUCCESS: "OK",
    Style.ERROR: "error:",
    Style.WARNING: "warning:",
}


class ConsoleProtocol(Protocol):
    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...


class RichConsole:
    """Terminal console backed by Rich. Messages are never parsed as markup."""

    def __init__(self, *, stderr: bool = False) -> None:
        self._console = Console(stderr=stderr, highlight=False)
        self._lock = threading.Lock()

    def _emit(self, message: str, style: Style, *, prefix: str | None = None) -> None:
        line = Text()
        if prefix is not None:
            line.append(prefix, style=style.value)
            line.append(" ")
            line.append(message)
        else:
            line.append(message, style=style.value)
        with self._lock:
            self._console.print(line)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._emit(message, style)

    def success(self, message: str) -> None:
        self._emit(message, Style.SUCCESS, prefix=_PREFIX[Style.SUCCESS])

    def error(self, message: str) -> None:
        self._emit(message, Style.ERROR, prefix=_PREFIX[Style.ERROR])

    def warning(self, message: str) -> None:
        self._emit(message, Style.WARNING, prefix=_PREFIX[Style.WARNING])

    def header(self, message: str) -> None:
        with self._lock:
            self._console.print()
        self._emit(message, Style.HEADER)


@dataclass(frozen=True, slots=True)
class OutputRecord:
    message: str
    style: Style


@dataclass
class MockConsole:
    """Captures output for tests."""

    outputs: list[OutputRecord] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def _add(self, message: str, style: Style) -> None:
        prefix = _PREFIX.get(style)
        if prefix is not None:
            message = f"{prefix} {message}"
        with self._lock:
            self.outputs.append(OutputRecord(message, style))

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        with self._lock:
            self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self._add(message, Style.SUCCESS)

    def error(self, message: str) -> None:
        self._add(message, Style.ERROR)

    def warning(self, message: str) -> None:
        self._add(message, Style.WARNING)

    def header(self, message: str) -> None:
        self._add(message, Style.HEADER)

    def clear(self) -> None:
        with self._lock:
            self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style is style)

    def has_error(self) -> bool:
        return self.count(Style.ERROR) > 0

    def has_warning(self) -> bool:
        return self.count(Style.WARNING) > 0

    def has_success(self) -> bool:
        return self.count(Style.SUCCESS) > 0
