"""Data models for chaptermark."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chaptermark.env_settings import EnvSettings


@dataclass(frozen=True)
class MarkerRecord:
    """One parsed row of the marker table.

    Attributes:
        row: 1-based data row number (header excluded), used in error details
        name: Marker name as exported (not yet trimmed)
        start_ms: Marker start in milliseconds
        end_ms: Explicit marker end in milliseconds, or None
    """

    row: int
    name: str
    start_ms: int
    end_ms: int | None = None


@dataclass(frozen=True)
class ChapterDescriptor:
    """A validated chapter with contiguous time bounds."""

    element_id: str
    start_ms: int
    end_ms: int
    title: str

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms


@dataclass(frozen=True)
class EncodedChapters:
    """Encoded CHAP frames plus the single CTOC frame, in write order."""

    chapter_frames: tuple[bytes, ...]
    toc_frame: bytes
    element_ids: tuple[str, ...] = ()

    @property
    def size(self) -> int:
        return sum(len(f) for f in self.chapter_frames) + len(self.toc_frame)


class FrameKind(Enum):
    """Kinds of ID3v2 frames the merger distinguishes."""

    CHAPTER = "CHAP"
    TABLE_OF_CONTENTS = "CTOC"
    OPAQUE = "other"

    @classmethod
    def for_frame_id(cls, frame_id: str) -> FrameKind:
        if frame_id == cls.CHAPTER.value:
            return cls.CHAPTER
        if frame_id == cls.TABLE_OF_CONTENTS.value:
            return cls.TABLE_OF_CONTENTS
        return cls.OPAQUE


@dataclass(frozen=True)
class TagFrame:
    """A frame found in an existing tag region, kept as raw bytes."""

    kind: FrameKind
    frame_id: str
    raw: bytes  # header + body, exactly as on disk

    @property
    def is_chapter_related(self) -> bool:
        return self.kind is not FrameKind.OPAQUE


@dataclass
class TagRegion:
    """
    Parsed ID3v2.4 tag region plus the trailing audio payload.

    Only the structure needed to rewrite the region is decoded; every
    non-chapter frame stays an opaque byte string.
    """

    version: tuple[int, int]  # (major, revision)
    flags: int
    extended_header: bytes
    frames: list[TagFrame]
    padding_size: int
    has_footer: bool
    audio: bytes

    @property
    def opaque_frames(self) -> list[TagFrame]:
        return [f for f in self.frames if f.kind is FrameKind.OPAQUE]

    @property
    def chapter_frames(self) -> list[TagFrame]:
        return [f for f in self.frames if f.is_chapter_related]


@dataclass
class ConversionContext:
    """Per-run pipeline context threaded through every stage.

    A fresh context is created for each conversion; nothing in it is shared
    between runs.
    """

    marker_path: Path
    media_path: Path
    settings: EnvSettings
    output_path: Path | None = None
    total_duration_ms: int | None = None
    dry_run: bool = False

    @property
    def destination(self) -> Path:
        """File the tagged result is written to."""
        return self.output_path or self.media_path


@dataclass
class ConversionResult:
    """Outcome of one conversion run."""

    output_path: Path
    chapters: tuple[ChapterDescriptor, ...]
    kept_frames: int = 0
    replaced_frames: int = 0
    written: bool = True
