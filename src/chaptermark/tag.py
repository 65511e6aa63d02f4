"""
ID3v2.4 tag region reading and chapter merging.

The merger decodes only the tag structure it has to rewrite: header,
extended header, frame boundaries and padding. Every frame that is not a
CHAP or CTOC frame is copied forward byte-for-byte, and so is the audio
payload after the tag.

Key functions:
    - read_tag_region(): parse an in-memory file into a TagRegion
    - merge_frames(): assemble the complete output file with new chapters
    - write_tagged_file(): read-modify-write of a file with an atomic swap
    - scan_frames(): list the frames of a tagged file
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
import zlib
from dataclasses import dataclass
from pathlib import Path

from chaptermark.exceptions import FrameEncodingOverflow, IoFailure, TagRegionNotFound
from chaptermark.frames import (
    FRAME_HEADER_SIZE,
    MAX_SYNCSAFE,
    decode_syncsafe,
    encode_syncsafe,
)
from chaptermark.models import EncodedChapters, FrameKind, TagFrame, TagRegion

logger = logging.getLogger(__name__)

TAG_HEADER_SIZE = 10
TAG_MAGIC = b"ID3"
FOOTER_MAGIC = b"3DI"
SUPPORTED_MAJOR_VERSION = 4

FLAG_UNSYNCHRONISATION = 0x80
FLAG_EXTENDED_HEADER = 0x40
FLAG_FOOTER = 0x10
FLAG_UNDEFINED = 0x0F

EXT_FLAG_UPDATE = 0x40
EXT_FLAG_CRC = 0x20

_FRAME_ID_CHARS = frozenset(b"ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789")


@dataclass
class MergeReport:
    """Summary of one merge, for logging and the CLI."""

    output_path: Path
    kept_frames: int
    replaced_frames: int


# =============================================================================
# Reading
# =============================================================================


def read_tag_region(data: bytes, *, source: Path | str | None = None) -> TagRegion:
    """
    Parse the ID3v2.4 tag region at the start of a file.

    Args:
        data: Complete file contents
        source: File path for error details

    Returns:
        TagRegion with every frame classified and the audio payload split off

    Raises:
        TagRegionNotFound: If there is no ID3v2.4 header at offset 0, the tag
            uses unsupported features, or its structure is corrupt
    """
    if len(data) < TAG_HEADER_SIZE or data[:3] != TAG_MAGIC:
        raise TagRegionNotFound(
            "No ID3v2 tag at the start of the file", path=source, reason="missing header"
        )

    major, revision, flags = data[3], data[4], data[5]
    if major != SUPPORTED_MAJOR_VERSION:
        raise TagRegionNotFound(
            f"ID3v2.{major} tag found, only ID3v2.4 is supported",
            path=source,
            reason="unsupported version",
        )
    if flags & FLAG_UNSYNCHRONISATION:
        raise TagRegionNotFound(
            "Unsynchronised ID3v2.4 tags are not supported",
            path=source,
            reason="unsynchronisation",
        )
    if flags & FLAG_UNDEFINED:
        raise TagRegionNotFound(
            f"Tag header has undefined flags set ({flags:#04x})",
            path=source,
            reason="undefined flags",
        )

    size = _syncsafe_or_corrupt(data[6:10], source, "tag size")
    end = TAG_HEADER_SIZE + size
    has_footer = bool(flags & FLAG_FOOTER)
    audio_start = end + (TAG_HEADER_SIZE if has_footer else 0)
    if audio_start > len(data):
        raise _corrupt(source, f"tag size {size} runs past the end of the file")
    if has_footer and data[end : end + 3] != FOOTER_MAGIC:
        raise _corrupt(source, "footer flag set but no footer found")

    pos = TAG_HEADER_SIZE
    extended_header = b""
    if flags & FLAG_EXTENDED_HEADER:
        ext_size = _syncsafe_or_corrupt(data[pos : pos + 4], source, "extended header size")
        if ext_size < 6 or pos + ext_size > end:
            raise _corrupt(source, f"invalid extended header size {ext_size}")
        extended_header = data[pos : pos + ext_size]
        pos += ext_size

    frames: list[TagFrame] = []
    while pos + FRAME_HEADER_SIZE <= end:
        if data[pos] == 0:
            break  # padding
        raw_id = data[pos : pos + 4]
        if not all(c in _FRAME_ID_CHARS for c in raw_id):
            raise _corrupt(source, f"invalid frame id {raw_id!r} at offset {pos}")
        frame_id = raw_id.decode("ascii")
        body_size = _syncsafe_or_corrupt(data[pos + 4 : pos + 8], source, f"{frame_id} size")
        frame_end = pos + FRAME_HEADER_SIZE + body_size
        if frame_end > end:
            raise _corrupt(source, f"{frame_id} frame at offset {pos} overruns the tag")

        frames.append(
            TagFrame(
                kind=FrameKind.for_frame_id(frame_id),
                frame_id=frame_id,
                raw=data[pos:frame_end],
            )
        )
        pos = frame_end

    region = TagRegion(
        version=(major, revision),
        flags=flags,
        extended_header=extended_header,
        frames=frames,
        padding_size=end - pos,
        has_footer=has_footer,
        audio=data[audio_start:],
    )
    logger.debug(
        "Tag region: %d frames (%d chapter-related), %d bytes padding, %d bytes audio",
        len(frames),
        len(region.chapter_frames),
        region.padding_size,
        len(region.audio),
    )
    return region


def _syncsafe_or_corrupt(data: bytes, source: Path | str | None, what: str) -> int:
    try:
        return decode_syncsafe(data)
    except ValueError as e:
        raise _corrupt(source, f"{what} is not a syncsafe integer") from e


def _corrupt(source: Path | str | None, reason: str) -> TagRegionNotFound:
    return TagRegionNotFound(f"Corrupt ID3v2.4 tag: {reason}", path=source, reason=reason)


# =============================================================================
# Merging
# =============================================================================


def _syncsafe_crc(value: int) -> bytes:
    """35-bit syncsafe encoding used by the extended header CRC."""
    return bytes((value >> shift) & 0x7F for shift in (28, 21, 14, 7, 0))


def _refresh_extended_header(extended_header: bytes, payload: bytes) -> bytes:
    """Recompute the extended header CRC (if present) over frames + padding."""
    if len(extended_header) < 6 or not extended_header[5] & EXT_FLAG_CRC:
        return extended_header

    offset = 6
    if extended_header[5] & EXT_FLAG_UPDATE:
        offset += 1  # zero-length flag data
    # Flag data: length byte (5) followed by the CRC
    crc_start = offset + 1
    if crc_start + 5 > len(extended_header):
        return extended_header

    crc = zlib.crc32(payload) & 0xFFFFFFFF
    return extended_header[:crc_start] + _syncsafe_crc(crc) + extended_header[crc_start + 5 :]


def merge_frames(region: TagRegion, encoded: EncodedChapters) -> bytes:
    """
    Build the complete output file: new tag region followed by the audio.

    Non-chapter frames keep their original order and bytes; old CHAP/CTOC
    frames are dropped; the new CHAP frames and then the CTOC frame are
    appended. The original amount of padding is kept.

    Raises:
        FrameEncodingOverflow: If the new tag no longer fits a syncsafe size
    """
    frames_blob = b"".join(f.raw for f in region.opaque_frames)
    frames_blob += b"".join(encoded.chapter_frames) + encoded.toc_frame
    payload = frames_blob + b"\x00" * region.padding_size

    extended_header = _refresh_extended_header(region.extended_header, payload)
    tag_size = len(extended_header) + len(payload)
    if tag_size > MAX_SYNCSAFE:
        raise FrameEncodingOverflow(f"Tag region of {tag_size} bytes exceeds the ID3v2.4 limit")

    major, revision = region.version
    header_fields = bytes((major, revision, region.flags)) + encode_syncsafe(tag_size)
    footer = FOOTER_MAGIC + header_fields if region.has_footer else b""

    return TAG_MAGIC + header_fields + extended_header + payload + footer + region.audio


# =============================================================================
# File Operations
# =============================================================================


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise IoFailure(f"Cannot read {path}: {e}", path=path, operation="read") from e


def _atomic_write(destination: Path, data: bytes, *, mode_source: Path) -> None:
    """
    Write data to destination atomically.

    1. Writes to a temporary file in the destination directory
    2. fsync() ensures data is on disk
    3. Copies permission bits from mode_source
    4. Atomic os.replace() swaps in the new file

    An interrupted write never leaves a partial file at destination.
    """
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "wb",
            dir=destination.parent,
            prefix=f".{destination.name}.",
            suffix=".tmp",
            delete=False,
        ) as tf:
            temp_path = Path(tf.name)
            tf.write(data)
            tf.flush()
            os.fsync(tf.fileno())

        shutil.copymode(mode_source, temp_path)
        os.replace(temp_path, destination)
    except OSError as e:
        if temp_path is not None:
            with contextlib.suppress(OSError):
                temp_path.unlink()
        raise IoFailure(
            f"Cannot write {destination}: {e}", path=destination, operation="write"
        ) from e

    logger.debug("Wrote %d bytes to %s", len(data), destination)


def write_tagged_file(
    media_path: Path,
    encoded: EncodedChapters,
    *,
    output_path: Path | None = None,
) -> MergeReport:
    """
    Replace the chapter frames of an MP3 file.

    The whole output is assembled in memory before anything is written, so
    any failure leaves the original file untouched.

    Args:
        media_path: MP3 file with an existing ID3v2.4 tag
        encoded: New CHAP frames and CTOC frame
        output_path: Write here instead of replacing media_path

    Returns:
        MergeReport describing the write

    Raises:
        TagRegionNotFound: If media_path has no usable ID3v2.4 tag
        FrameEncodingOverflow: If the new tag is too large
        IoFailure: On read/write errors
    """
    data = _read_bytes(media_path)
    region = read_tag_region(data, source=media_path)
    output = merge_frames(region, encoded)

    destination = output_path or media_path
    _atomic_write(destination, output, mode_source=media_path)

    report = MergeReport(
        output_path=destination,
        kept_frames=len(region.opaque_frames),
        replaced_frames=len(region.chapter_frames),
    )
    logger.info(
        "Wrote %d chapters to %s (kept %d frames, replaced %d)",
        len(encoded.chapter_frames),
        destination,
        report.kept_frames,
        report.replaced_frames,
    )
    return report


def scan_frames(path: Path) -> list[TagFrame]:
    """
    List the frames of a tagged file in on-disk order.

    Raises:
        TagRegionNotFound: If the file has no usable ID3v2.4 tag
        IoFailure: If the file cannot be read
    """
    return read_tag_region(_read_bytes(path), source=path).frames
