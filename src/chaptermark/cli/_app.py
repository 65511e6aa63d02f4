"""App configuration and main callback for the chaptermark CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from chaptermark.cli._context import RuntimeContext
from chaptermark.ui import console, print_error_panel

logger = logging.getLogger(__name__)


# =============================================================================
# Version Callback
# =============================================================================


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from chaptermark import __version__

        console.print(f"[title]chaptermark[/] {__version__}")
        raise typer.Exit()


# =============================================================================
# App Factory
# =============================================================================

MAIN_EPILOG = """
[bold cyan]Example:[/]
  chaptermark apply markers.csv episode.mp3            [dim]# Tag in place[/]
  chaptermark apply markers.csv episode.mp3 --copy     [dim]# Write episode_enriched.mp3[/]
  chaptermark apply markers.csv episode.mp3 --dry-run  [dim]# Preview chapters[/]

[dim]The MP3 must already carry an ID3v2.4 tag.[/]
"""


def make_app() -> typer.Typer:
    """Create and configure the main Typer application."""
    return typer.Typer(
        name="chaptermark",
        help="Write audio-editor markers into MP3 files as ID3v2 chapters",
        epilog=MAIN_EPILOG,
        rich_markup_mode="rich",
        pretty_exceptions_enable=True,
        pretty_exceptions_show_locals=False,
        no_args_is_help=True,
        add_completion=False,
        context_settings={"help_option_names": ["-h", "--help"]},
    )


# =============================================================================
# Logging Setup Helper
# =============================================================================


def load_runtime(verbose: bool, log_file: Path | None) -> RuntimeContext:
    """Load settings from the environment and configure logging."""
    from chaptermark.env_settings import get_env_settings
    from chaptermark.logging_setup import setup_logging

    try:
        settings = get_env_settings()
    except ValidationError as e:
        print_error_panel(
            "Invalid chaptermark environment configuration",
            details=[f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
            hints=["Check the CHAPTERMARK_* and LOG_LEVEL environment variables"],
        )
        raise typer.Exit(2) from e

    log_level = "DEBUG" if verbose else settings.app.log_level
    setup_logging(log_level=log_level, log_file=log_file)
    return RuntimeContext(settings=settings, verbose=verbose, log_file=log_file)


# =============================================================================
# Main Callback Factory
# =============================================================================


def create_main_callback(app: typer.Typer) -> None:
    """Register the main callback on the app."""

    @app.callback()
    def main_callback(
        ctx: typer.Context,
        version: Annotated[
            bool,
            typer.Option(
                "--version",
                "-V",
                callback=version_callback,
                is_eager=True,
                help="Show version and exit.",
            ),
        ] = False,
        verbose: Annotated[
            bool,
            typer.Option(
                "--verbose",
                "-v",
                help="Enable verbose (DEBUG) logging.",
            ),
        ] = False,
        log_file: Annotated[
            Path | None,
            typer.Option(
                "--log-file",
                help="Also write a DEBUG log to this file.",
                dir_okay=False,
            ),
        ] = None,
    ) -> None:
        """Write audio-editor markers into MP3 files as ID3v2 chapters.

        [cyan]Markers CSV → Chapters → CHAP/CTOC frames → ID3v2.4 tag[/]
        """
        ctx.obj = load_runtime(verbose, log_file)
