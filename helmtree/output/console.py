"""Console output abstraction.

Services and the tree renderer talk to a ConsoleProtocol instead of a
concrete library, so tests can capture output with MockConsole while the
CLI uses RichConsole.
"""

from __future__ import annotations

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
    SUCCESS = auto()  # resolved fine
    ERROR = auto()  # release failed, fetch failed
    WARNING = auto()  # skipped entries, cycles
    INFO = auto()
    DIM = auto()  # verbose details, local skips
    BOLD = auto()
    HEADER = auto()  # release banners

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Protocol for console output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling.

        Messages are printed literally; square brackets are not markup.
        """
        ...

    def error(self, message: str) -> None:
        """Print an error message (shorthand for print with ERROR style)."""
        ...

    def warning(self, message: str) -> None:
        """Print a warning message (shorthand for print with WARNING style)."""
        ...

    def info(self, message: str) -> None:
        """Print an info message (shorthand for print with INFO style)."""
        ...

    def header(self, message: str) -> None:
        """Print a section header."""
        ...

    def newline(self) -> None:
        """Print an empty line."""
        ...


class RichConsole:
    """Console implementation using Rich library."""

    def __init__(self, *, stderr: bool = False, no_color: bool = False) -> None:
        # Import Rich lazily to avoid import-time dependency
        from rich.console import Console

        self._console = Console(stderr=stderr, no_color=no_color, highlight=False)
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style) or None
        self._console.print(message, style=rich_style, markup=False, soft_wrap=True)

    def _prefixed(self, prefix: str, prefix_style: str, message: str) -> None:
        from rich.text import Text

        text = Text(prefix, style=prefix_style)
        text.append(" ")
        text.append(message)
        self._console.print(text, soft_wrap=True)

    def error(self, message: str) -> None:
        self._prefixed("error:", "red bold", message)

    def warning(self, message: str) -> None:
        self._prefixed("warning:", "yellow", message)

    def info(self, message: str) -> None:
        self._prefixed("info:", "cyan", message)

    def header(self, message: str) -> None:
        self._console.print(message, style="blue bold", markup=False, soft_wrap=True)

    def newline(self) -> None:
        self._console.print()


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    # Test helpers

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        """All output as a single newline-separated string."""
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]
