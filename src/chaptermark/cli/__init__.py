"""chaptermark CLI built with Typer and Rich.

Commands:
- apply: write marker chapters into an MP3 file
"""

from __future__ import annotations

import sys

from chaptermark.cli._app import create_main_callback, make_app
from chaptermark.cli._context import RuntimeContext
from chaptermark.cli.apply import register_apply_command

app = make_app()
create_main_callback(app)
register_apply_command(app)


def main() -> int:
    """Main entry point for the CLI."""
    try:
        app()
        return 0
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0


__all__ = [
    "app",
    "main",
    "RuntimeContext",
]

if __name__ == "__main__":
    sys.exit(main())
