"""chaptermark - Write audio-editor markers into MP3 files as ID3v2 chapters."""

from chaptermark.exceptions import (
    ChaptermarkError,
    FrameEncodingOverflow,
    IoFailure,
    MalformedMarkerRow,
    MarkerError,
    MissingFinalChapterEnd,
    NoMarkersFound,
    TagRegionNotFound,
    UnorderedMarkers,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Base exception
    "ChaptermarkError",
    # Markers
    "MarkerError",
    "MalformedMarkerRow",
    "NoMarkersFound",
    "UnorderedMarkers",
    "MissingFinalChapterEnd",
    # Encoding
    "FrameEncodingOverflow",
    # Tag container
    "TagRegionNotFound",
    "IoFailure",
]
