"""Core console configuration and theme for chaptermark UI."""

from __future__ import annotations

from rich.console import Console
from rich.theme import Theme

CHAPTERMARK_THEME = Theme(
    {
        # Status colors
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red bold",
        # Text styles
        "title": "bold white",
        "dim": "dim",
        "path": "cyan",
        "timestamp": "green",
        "element_id": "magenta",
        "hint": "dim italic",
    }
)

# Primary console for normal output
console = Console(theme=CHAPTERMARK_THEME, stderr=False)

# Error console for stderr output
err_console = Console(theme=CHAPTERMARK_THEME, stderr=True)
