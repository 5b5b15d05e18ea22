"""CLI output helpers.

Status lines go to stdout; errors and warnings go to stderr so piped
output (e.g. ``botskill parse --json``) stays machine readable.
"""

from collections.abc import Iterable

from rich.console import Console

console = Console()
_err_console = Console(stderr=True)


def success(message: str) -> None:
    """Print a success line with a green checkmark."""
    console.print(f"[green]✓[/green] {message}")


def error(message: str) -> None:
    """Print an error line with a red cross."""
    _err_console.print(f"[red]✗[/red] {message}")


def warning(message: str) -> None:
    """Print a warning line with a yellow exclamation mark."""
    _err_console.print(f"[yellow]![/yellow] {message}")


def info(message: str) -> None:
    console.print(message)


def dim(message: str) -> None:
    console.print(f"[dim]{message}[/dim]")


def details(messages: Iterable[str]) -> None:
    """Print one indented bullet per message under a preceding error."""
    for message in messages:
        _err_console.print(f"  [dim]•[/dim] {message}", highlight=False)
