"""Shared Rich console for the CLI."""

from rich.console import Console
from rich.markup import escape

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def report_step(message: str) -> None:
    """Print a progress message.

    Args:
        message: Message to display.
    """
    console.print(f"[cyan]{escape(message)}[/cyan]")
