"""chaptermark UI - Rich console output components.

Modules:
    core: Console instances and theme
    messages: Simple print helpers (success, warning, info, dry run)
    tables: Chapter table
    errors: Error panels for chaptermark exceptions

Usage:
    from chaptermark.ui import console, print_success
"""

from __future__ import annotations

from chaptermark.ui.core import CHAPTERMARK_THEME, console, err_console
from chaptermark.ui.errors import print_chaptermark_error, print_error_panel
from chaptermark.ui.messages import print_dry_run, print_info, print_success, print_warning
from chaptermark.ui.tables import print_chapter_table

__all__ = [
    # Core
    "CHAPTERMARK_THEME",
    "console",
    "err_console",
    # Messages
    "print_success",
    "print_warning",
    "print_info",
    "print_dry_run",
    # Tables
    "print_chapter_table",
    # Errors
    "print_error_panel",
    "print_chaptermark_error",
]
