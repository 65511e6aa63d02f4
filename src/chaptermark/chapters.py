"""Build contiguous chapter descriptors from parsed markers."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from chaptermark.exceptions import MissingFinalChapterEnd, NoMarkersFound, UnorderedMarkers
from chaptermark.markers import format_timestamp
from chaptermark.models import ChapterDescriptor, MarkerRecord

logger = logging.getLogger(__name__)

DEFAULT_ID_PREFIX = "chp"


def chapter_title(name: str, position: int) -> str:
    """
    Normalize a marker name into a chapter title.

    Args:
        name: Raw marker name
        position: 1-based chapter position, used for the placeholder

    Returns:
        Trimmed name, or "Chapter N" when the name is blank
    """
    title = name.strip()
    return title or f"Chapter {position}"


def build_chapters(
    records: Iterable[MarkerRecord],
    *,
    total_duration_ms: int | None = None,
    id_prefix: str = DEFAULT_ID_PREFIX,
) -> tuple[ChapterDescriptor, ...]:
    """
    Convert marker records into validated, contiguous chapters.

    Each chapter ends where the next one starts. The last chapter ends at its
    marker's explicit end, otherwise at ``total_duration_ms``.

    Args:
        records: Markers in source order (consumed once)
        total_duration_ms: Length of the audio, if known
        id_prefix: Prefix for element ids ("chp" gives chp0, chp1, ...)

    Returns:
        Tuple of ChapterDescriptor in time order

    Raises:
        NoMarkersFound: If there are no records
        UnorderedMarkers: If start times are not strictly increasing, or the
            final end is not after the final start
        MissingFinalChapterEnd: If the final end cannot be determined
    """
    markers = list(records)
    if not markers:
        raise NoMarkersFound("No markers to build chapters from")

    for previous, current in zip(markers, markers[1:]):
        if current.start_ms <= previous.start_ms:
            raise UnorderedMarkers(
                f"Row {current.row}: marker starts at {format_timestamp(current.start_ms)}, "
                f"not after the previous marker at {format_timestamp(previous.start_ms)}",
                row=current.row,
                previous_ms=previous.start_ms,
                current_ms=current.start_ms,
            )

    chapters: list[ChapterDescriptor] = []
    for index, marker in enumerate(markers):
        if index + 1 < len(markers):
            end_ms = markers[index + 1].start_ms
            if marker.end_ms is not None and marker.end_ms != end_ms:
                logger.debug(
                    "Row %d: explicit end %s replaced by next start %s",
                    marker.row,
                    format_timestamp(marker.end_ms),
                    format_timestamp(end_ms),
                )
        else:
            end_ms = _final_end(marker, total_duration_ms)

        chapters.append(
            ChapterDescriptor(
                element_id=f"{id_prefix}{index}",
                start_ms=marker.start_ms,
                end_ms=end_ms,
                title=chapter_title(marker.name, index + 1),
            )
        )

    logger.debug("Built %d chapters ending at %s", len(chapters), format_timestamp(end_ms))
    return tuple(chapters)


def _final_end(marker: MarkerRecord, total_duration_ms: int | None) -> int:
    if marker.end_ms is not None:
        end_ms = marker.end_ms
    elif total_duration_ms is not None:
        end_ms = total_duration_ms
    else:
        raise MissingFinalChapterEnd(
            f"Row {marker.row}: final marker has no end and the audio duration is unknown",
            row=marker.row,
        )

    if end_ms <= marker.start_ms:
        raise UnorderedMarkers(
            f"Row {marker.row}: final chapter ends at {format_timestamp(end_ms)}, "
            f"not after its start at {format_timestamp(marker.start_ms)}",
            row=marker.row,
            previous_ms=marker.start_ms,
            current_ms=end_ms,
        )
    return end_ms
