"""The apply command: write marker chapters into an MP3 file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer

from chaptermark.exceptions import (
    ChaptermarkError,
    FrameEncodingOverflow,
    MalformedMarkerRow,
    MissingFinalChapterEnd,
    NoMarkersFound,
    TagRegionNotFound,
    UnorderedMarkers,
)
from chaptermark.markers import parse_timestamp

logger = logging.getLogger(__name__)

ERROR_HINTS: dict[type[ChaptermarkError], list[str]] = {
    MalformedMarkerRow: [
        "Timestamps use H:MM:SS.fff, e.g. 0:01:30.500",
        "The header row needs Name and Start columns",
    ],
    NoMarkersFound: ["Export the markers again; the file has no marker rows"],
    UnorderedMarkers: ["Sort the markers by start time and remove duplicates"],
    MissingFinalChapterEnd: [
        "Give the last marker an end time or a duration",
        "Or pass --duration H:MM:SS.fff with the length of the audio",
    ],
    FrameEncodingOverflow: [
        "Use CHAPTERMARK_TEXT_ENCODING=utf-8 for non-Latin titles",
        "A table of contents holds at most 255 chapters",
    ],
    TagRegionNotFound: [
        "The MP3 must start with an ID3v2.4 tag",
        "Save the file's tags as ID3v2.4 in a tag editor first",
    ],
}


def duration_callback(value: str | None) -> int | None:
    """Parse --duration into milliseconds for Typer."""
    if value is None:
        return None
    try:
        return parse_timestamp(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def register_apply_command(app: typer.Typer) -> None:
    """Register the apply command on the main app."""

    @app.command("apply")
    def apply(
        ctx: typer.Context,
        markers: Annotated[
            Path,
            typer.Argument(
                help="Marker CSV exported by the audio editor.",
                exists=True,
                dir_okay=False,
                readable=True,
            ),
        ],
        media: Annotated[
            Path,
            typer.Argument(
                help="MP3 file with an ID3v2.4 tag.",
                exists=True,
                dir_okay=False,
            ),
        ],
        output: Annotated[
            Path | None,
            typer.Option(
                "--output",
                "-o",
                help="Write the tagged file here instead of replacing MEDIA.",
                dir_okay=False,
            ),
        ] = None,
        copy: Annotated[
            bool,
            typer.Option(
                "--copy",
                help="Write <name>_enriched.mp3 next to MEDIA instead of replacing it.",
            ),
        ] = False,
        duration: Annotated[
            str | None,
            typer.Option(
                "--duration",
                "-d",
                callback=duration_callback,
                help="Audio length (H:MM:SS.fff) used to end the last chapter.",
            ),
        ] = None,
        dry_run: Annotated[
            bool,
            typer.Option(
                "--dry-run",
                help="Show the chapters without writing anything.",
            ),
        ] = False,
    ) -> None:
        """🔖 Write marker chapters into an MP3 file.

        Replaces any existing CHAP/CTOC frames; every other frame and the
        audio data are kept byte-for-byte. The file is only swapped in once
        the new version is complete.

        [bold]Examples:[/]
          chaptermark apply markers.csv episode.mp3
          chaptermark apply markers.csv episode.mp3 -o tagged.mp3
          chaptermark apply markers.csv episode.mp3 --duration 0:45:12.000
        """
        from chaptermark.pipeline import convert, enriched_path
        from chaptermark.ui import (
            print_chapter_table,
            print_chaptermark_error,
            print_dry_run,
            print_info,
            print_success,
            print_warning,
        )

        if output is not None and copy:
            raise typer.BadParameter("--output and --copy cannot be combined")

        runtime = ctx.obj
        output_path = enriched_path(media) if copy else output
        # Typer hands over the callback's return value
        total_duration_ms: int | None = duration  # type: ignore[assignment]

        try:
            result = convert(
                markers,
                media,
                output_path=output_path,
                total_duration_ms=total_duration_ms,
                dry_run=dry_run,
                settings=runtime.settings,
            )
        except ChaptermarkError as e:
            logger.debug("Conversion failed", exc_info=True)
            print_chaptermark_error(e, hints=ERROR_HINTS.get(type(e)))
            raise typer.Exit(1) from e

        print_chapter_table(result.chapters)
        if not result.written:
            print_dry_run(f"Would write {len(result.chapters)} chapters to {result.output_path}")
            return

        print_success(f"Wrote {len(result.chapters)} chapters to {result.output_path}")
        print_info(f"Kept {result.kept_frames} other frames unchanged")
        if result.replaced_frames:
            print_warning(f"Replaced {result.replaced_frames} existing CHAP/CTOC frames")
