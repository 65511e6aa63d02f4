"""Error formatting components for chaptermark UI."""

from __future__ import annotations

from rich.panel import Panel
from rich.text import Text

from chaptermark.exceptions import ChaptermarkError
from chaptermark.ui.core import err_console


def print_error_panel(
    message: str,
    details: list[str] | None = None,
    hints: list[str] | None = None,
    title: str = "Error",
) -> None:
    """Print an error message with optional details and hints.

    Example:
        >>> print_error_panel(
        ...     "Row 3: invalid start timestamp '1:xx'",
        ...     details=["row: 3", "field: start"],
        ...     hints=["Timestamps use H:MM:SS.fff"],
        ... )
    """
    content = Text()
    content.append("✗ ", style="error")
    content.append(message, style="error")

    if details:
        content.append("\n")
        for detail in details:
            content.append(f"\n  • {detail}", style="dim")

    if hints:
        content.append("\n\n")
        content.append("Suggestions:", style="info")
        for hint in hints:
            content.append(f"\n  → {hint}", style="hint")

    err_console.print(
        Panel(
            content,
            title=f"[error]{title}[/]",
            border_style="red",
            padding=(0, 2),
        )
    )


def print_chaptermark_error(error: ChaptermarkError, hints: list[str] | None = None) -> None:
    """Print a chaptermark error with its kind and structured details."""
    details = [f"{key}: {value}" for key, value in error.details.items()]
    print_error_panel(error.message, details=details, hints=hints, title=type(error).__name__)
