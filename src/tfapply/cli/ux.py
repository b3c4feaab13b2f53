"""
CLI output helpers built on rich.

Environment handling:
- Respects NO_COLOR and FORCE_COLOR environment variables
- Falls back to plain text in non-interactive environments
"""

from __future__ import annotations

import os

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

TFAPPLY_THEME = Theme(
    {
        "info": "#88C0D0",
        "success": "#A3BE8C",
        "error": "#BF616A bold",
        "muted": "#D8DEE9",
    }
)

console = Console(
    theme=TFAPPLY_THEME,
    force_terminal=os.environ.get("FORCE_COLOR") is not None,
    no_color=os.environ.get("NO_COLOR") is not None,
)

# Errors carry terraform diagnostics; keep them off stdout
error_console = Console(
    theme=TFAPPLY_THEME,
    stderr=True,
    no_color=os.environ.get("NO_COLOR") is not None,
)


def success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]✓ {escape(message)}[/success]")


def error(message: str) -> None:
    """Print an error message."""
    error_console.print(f"[error]✗[/error] {escape(message)}", highlight=False)


def info(message: str) -> None:
    console.print(f"[info]ℹ {escape(message)}[/info]")


def print_table(
    title: str,
    columns: list[str],
    rows: list[list[str]],
    show_header: bool = True,
) -> None:
    """Print a formatted table."""
    table = Table(title=title, show_header=show_header)

    for col in columns:
        table.add_column(col)

    for row in rows:
        table.add_row(*(escape(cell) for cell in row))

    console.print(table)


def print_key_value(items: dict[str, str], title: str | None = None) -> None:
    """Print key-value pairs in a nice format."""
    if title:
        console.print(f"\n[bold]{title}[/bold]")

    for key, value in items.items():
        console.print(f"  [cyan]{escape(key)}:[/cyan] {escape(value)}", highlight=False)
