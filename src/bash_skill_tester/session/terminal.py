"""Synchronous terminal I/O used by the session runner."""

from typing import Protocol

from rich.console import Console
from rich.text import Text


class Terminal(Protocol):
    """Blocking line-oriented input and output."""

    def read_line(self, prompt: str) -> str:
        """Block until the user enters a line. May raise EOFError."""
        ...

    def write_line(self, text: str = "", style: str | None = None) -> None:
        ...


class RichTerminal:
    """Terminal backed by a rich Console.

    Text is written as plain ``Text`` so bank content such as ``[ -f file ]``
    is never parsed as console markup.

    Args:
        console: Console to use; a new one is created if omitted.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console(highlight=False)

    def read_line(self, prompt: str) -> str:
        return self.console.input(Text(f"{prompt} ", style="bold cyan"))

    def write_line(self, text: str = "", style: str | None = None) -> None:
        self.console.print(Text(text, style=style or ""))
