"""Console output abstraction.

Release steps report progress through ``ConsoleProtocol`` rather than
printing directly, so the same services drive the rich terminal UI and the
tests (which assert on ``MockConsole`` records).
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()  # echoed commands, hints
    BOLD = auto()
    HEADER = auto()  # stage banners

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Interface for styled output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...

    def newline(self) -> None: ...


class RichConsole:
    """Production console backed by rich."""

    def __init__(self, *, stderr: bool = False) -> None:
        # Import Rich lazily to keep module import cheap for tests.
        from rich.console import Console

        self._console = Console(stderr=stderr, highlight=False)
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        # Commands and hints may contain brackets; never treat them as markup.
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def success(self, message: str) -> None:
        self._console.print("[green]OK[/green]", self._escape(message))

    def error(self, message: str) -> None:
        self._console.print("[red bold]error:[/red bold]", self._escape(message))

    def warning(self, message: str) -> None:
        self._console.print("[yellow]warning:[/yellow]", self._escape(message))

    def info(self, message: str) -> None:
        self._console.print("[cyan]info:[/cyan]", self._escape(message))

    def header(self, message: str) -> None:
        self._console.print()
        self._console.print(message, style="blue bold", markup=False)

    def newline(self) -> None:
        self._console.print()

    @staticmethod
    def _escape(message: str) -> str:
        from rich.markup import escape

        return escape(message)


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console that captures output for tests.

    Platform stages print from worker threads, so appends are locked.
    """

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _add(self, message: str, style: Style) -> None:
        with self._lock:
            self.outputs.append(OutputRecord(message, style))

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._add(message, style)

    def success(self, message: str) -> None:
        self._add(f"OK {message}", Style.SUCCESS)

    def error(self, message: str) -> None:
        self._add(f"error: {message}", Style.ERROR)

    def warning(self, message: str) -> None:
        self._add(f"warning: {message}", Style.WARNING)

    def info(self, message: str) -> None:
        self._add(f"info: {message}", Style.INFO)

    def header(self, message: str) -> None:
        self._add(message, Style.HEADER)

    def newline(self) -> None:
        self._add("", Style.DEFAULT)

    # Test helpers

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_success(self) -> bool:
        return any(o.style == Style.SUCCESS for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style == style)
