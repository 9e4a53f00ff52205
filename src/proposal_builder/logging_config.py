"""Rich console setup and session progress callbacks."""

from __future__ import annotations

import logging
from typing import Protocol

from rich.console import Console
from rich.logging import RichHandler

console = Console()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Configure root logger with Rich handler."""
    level = logging.DEBUG if verbose else (logging.ERROR if quiet else logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


# ---------------------------------------------------------------------------
# Session callbacks protocol
# ---------------------------------------------------------------------------


class SessionCallbacks(Protocol):
    """Protocol for chat session progress reporting."""

    def on_turn_start(self, section_key: str, user_message: str) -> None: ...
    def on_chunk(self, text: str) -> None: ...
    def on_turn_end(self, section_key: str, state: str) -> None: ...
    def on_section_confirmed(self, section_key: str, next_section: str | None) -> None: ...
    def on_warning(self, message: str) -> None: ...
    def on_error(self, message: str) -> None: ...


class NullCallbacks:
    """Silent implementation, used when no callbacks are supplied."""

    def on_turn_start(self, section_key: str, user_message: str) -> None:
        pass

    def on_chunk(self, text: str) -> None:
        pass

    def on_turn_end(self, section_key: str, state: str) -> None:
        pass

    def on_section_confirmed(self, section_key: str, next_section: str | None) -> None:
        pass

    def on_warning(self, message: str) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass


class RichCallbacks:
    """Rich-based implementation of SessionCallbacks; streams replies live."""

    def on_turn_start(self, section_key: str, user_message: str) -> None:
        console.print(f"\n[bold cyan]you[/] [dim]({section_key})[/]: {user_message}")
        console.print("[bold magenta]assistant[/]: ", end="")

    def on_chunk(self, text: str) -> None:
        console.print(text, end="", markup=False, highlight=False)

    def on_turn_end(self, section_key: str, state: str) -> None:
        console.print()
        if state != "applying":
            console.print(f"  [dim]Turn on {section_key} ended: {state}[/]")

    def on_section_confirmed(self, section_key: str, next_section: str | None) -> None:
        tail = f", next: {next_section}" if next_section else ""
        console.print(f"  [green]Confirmed[/] {section_key}{tail}")

    def on_warning(self, message: str) -> None:
        console.print(f"  [yellow]WARNING:[/] {message}")

    def on_error(self, message: str) -> None:
        console.print(f"  [red]ERROR:[/] {message}")
