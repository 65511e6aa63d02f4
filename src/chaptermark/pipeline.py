"""
Marker-to-chapter conversion pipeline.

Runs the four stages in order for one marker file and one MP3 file:

    parse markers -> build chapters -> encode frames -> merge into the tag

Every stage raises on its first error. Nothing is written until all frames
and the complete replacement file exist in memory.
"""

from __future__ import annotations

import logging
from pathlib import Path

from chaptermark.chapters import build_chapters
from chaptermark.duration import probe_duration_ms
from chaptermark.env_settings import EnvSettings, get_env_settings
from chaptermark.frames import encode_chapters
from chaptermark.markers import format_timestamp, read_marker_file
from chaptermark.models import ChapterDescriptor, ConversionContext, ConversionResult
from chaptermark.tag import scan_frames, write_tagged_file

logger = logging.getLogger(__name__)

ENRICHED_SUFFIX = "_enriched"


def enriched_path(media_path: Path) -> Path:
    """Sibling output path used by ``--copy``: ``book.mp3`` -> ``book_enriched.mp3``."""
    return media_path.with_name(f"{media_path.stem}{ENRICHED_SUFFIX}{media_path.suffix}")


def load_chapters(context: ConversionContext) -> tuple[ChapterDescriptor, ...]:
    """
    Parse the marker file and build chapters for a conversion context.

    The MP3 duration is only probed when the final marker has no explicit
    end and no duration was supplied.
    """
    table = read_marker_file(context.marker_path, delimiter=context.settings.markers.delimiter)
    records = list(table)
    logger.info("Read %d markers from %s", len(records), context.marker_path)

    total_duration_ms = context.total_duration_ms
    if (
        total_duration_ms is None
        and records[-1].end_ms is None
        and context.settings.markers.probe_duration
    ):
        total_duration_ms = probe_duration_ms(context.media_path)

    chapters = build_chapters(
        records,
        total_duration_ms=total_duration_ms,
        id_prefix=context.settings.frames.chapter_id_prefix,
    )
    for chapter in chapters:
        logger.debug(
            "%s [%s - %s] %s",
            chapter.element_id,
            format_timestamp(chapter.start_ms),
            format_timestamp(chapter.end_ms),
            chapter.title,
        )
    return chapters


def run(context: ConversionContext) -> ConversionResult:
    """
    Run the conversion described by a context.

    Returns:
        ConversionResult; ``written`` is False for dry runs

    Raises:
        ChaptermarkError: Any subclass, from the first failing stage
    """
    chapters = load_chapters(context)
    encoded = encode_chapters(
        chapters,
        encoding=context.settings.encoding_byte,
        toc_id=context.settings.frames.toc_id,
    )

    if context.dry_run:
        frames = scan_frames(context.media_path)
        replaced = sum(1 for f in frames if f.is_chapter_related)
        logger.info("[DRY RUN] Would write %d chapters to %s", len(chapters), context.destination)
        return ConversionResult(
            output_path=context.destination,
            chapters=chapters,
            kept_frames=len(frames) - replaced,
            replaced_frames=replaced,
            written=False,
        )

    report = write_tagged_file(context.media_path, encoded, output_path=context.output_path)
    return ConversionResult(
        output_path=report.output_path,
        chapters=chapters,
        kept_frames=report.kept_frames,
        replaced_frames=report.replaced_frames,
    )


def convert(
    marker_path: Path,
    media_path: Path,
    *,
    output_path: Path | None = None,
    total_duration_ms: int | None = None,
    dry_run: bool = False,
    settings: EnvSettings | None = None,
) -> ConversionResult:
    """
    Write the chapters from a marker file into an MP3 file's ID3v2.4 tag.

    Args:
        marker_path: Marker CSV exported by the audio editor
        media_path: MP3 file with an existing ID3v2.4 tag
        output_path: Write the result here instead of replacing media_path
        total_duration_ms: Audio length for closing the final chapter
        dry_run: Build and encode everything but write nothing
        settings: Settings to use (default: environment settings)

    Returns:
        ConversionResult describing the run

    Example:
        >>> result = convert(Path("markers.csv"), Path("episode.mp3"))
        >>> len(result.chapters)
        3
    """
    context = ConversionContext(
        marker_path=marker_path,
        media_path=media_path,
        settings=settings or get_env_settings(),
        output_path=output_path,
        total_duration_ms=total_duration_ms,
        dry_run=dry_run,
    )
    return run(context)
