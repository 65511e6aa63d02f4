"""Table formatting components for chaptermark UI."""

from __future__ import annotations

from collections.abc import Sequence

from rich.markup import escape
from rich.table import Table

from chaptermark.markers import format_timestamp
from chaptermark.models import ChapterDescriptor
from chaptermark.ui.core import console


def print_chapter_table(chapters: Sequence[ChapterDescriptor], title: str = "Chapters") -> None:
    """Print a table of chapters.

    Example:
        >>> print_chapter_table(chapters)
        ┏━━━━┳━━━━━━┳━━━━━━━━━━━━━┳━━━━━━━━━━━━━┳━━━━━━━━━━━━━┳━━━━━━━┓
        ┃ #  ┃ ID   ┃ Start       ┃ End         ┃ Length      ┃ Title ┃
        ┡━━━━╇━━━━━━╇━━━━━━━━━━━━━╇━━━━━━━━━━━━━╇━━━━━━━━━━━━━╇━━━━━━━┩
        │ 1  │ chp0 │ 0:00:00.000 │ 0:01:30.500 │ 0:01:30.500 │ Intro │
        └────┴──────┴─────────────┴─────────────┴─────────────┴───────┘
    """
    if not chapters:
        console.print("[dim]No chapters[/]")
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=4)
    table.add_column("ID", style="element_id")
    table.add_column("Start", style="timestamp")
    table.add_column("End", style="timestamp")
    table.add_column("Length", style="dim")
    table.add_column("Title")

    for i, chapter in enumerate(chapters, 1):
        table.add_row(
            str(i),
            chapter.element_id,
            format_timestamp(chapter.start_ms),
            format_timestamp(chapter.end_ms),
            format_timestamp(chapter.duration_ms),
            escape(chapter.title),
        )

    console.print(table)
