"""Simple message printing helpers for chaptermark UI."""

from __future__ import annotations

from rich.markup import escape

from chaptermark.ui.core import console


def print_success(message: str) -> None:
    """Print a success message with checkmark.

    Example:
        >>> print_success("Chapters written")
          ✓ Chapters written
    """
    console.print(f"  [success]✓[/] {escape(message)}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"  [warning]![/] {escape(message)}")


def print_info(message: str) -> None:
    """Print an info message.

    Example:
        >>> print_info("Found 12 markers")
          → Found 12 markers
    """
    console.print(f"  [info]→[/] {escape(message)}")


def print_dry_run(message: str) -> None:
    """Print a dry-run message."""
    console.print(f"  [warning]\\[DRY RUN][/] {escape(message)}")
