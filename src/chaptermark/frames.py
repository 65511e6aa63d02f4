"""
ID3v2.4 chapter frame encoding.

Serializes chapters into CHAP frames (ID3v2 Chapter Frame Addendum) and the
chapter list into a single CTOC frame.

Frame layout (ID3v2.4):
    frame id    4 bytes, e.g. b"CHAP"
    size        4 bytes, syncsafe, body length (header excluded)
    flags       2 bytes, always 0 here
    body        size bytes

CHAP body:
    element id  ASCII + b"\\x00"
    start time  u32 big-endian, milliseconds
    end time    u32 big-endian, milliseconds
    start/end   u32 big-endian byte offsets, 0xFFFFFFFF when unknown
    sub-frames  one TIT2 frame carrying the title

CTOC body:
    element id  ASCII + b"\\x00"
    flags       1 byte (0x01 top-level, 0x02 ordered)
    entry count 1 byte
    entries     child element ids, each ASCII + b"\\x00"
"""

from __future__ import annotations

import logging
import struct
from collections.abc import Iterable, Sequence

from chaptermark.exceptions import FrameEncodingOverflow
from chaptermark.models import ChapterDescriptor, EncodedChapters

logger = logging.getLogger(__name__)

CHAPTER_FRAME_ID = "CHAP"
TOC_FRAME_ID = "CTOC"
TITLE_FRAME_ID = "TIT2"

FRAME_HEADER_SIZE = 10
MAX_SYNCSAFE = (1 << 28) - 1
MAX_U32 = 0xFFFFFFFF
UNKNOWN_OFFSET = 0xFFFFFFFF
MAX_TOC_ENTRIES = 0xFF

TOC_FLAG_TOP_LEVEL = 0x01
TOC_FLAG_ORDERED = 0x02

ENCODING_LATIN1 = 0x00
ENCODING_UTF16 = 0x01
ENCODING_UTF16BE = 0x02
ENCODING_UTF8 = 0x03


# =============================================================================
# Primitives
# =============================================================================


def encode_syncsafe(value: int) -> bytes:
    """
    Encode an integer as a 4-byte syncsafe integer (7 bits per byte).

    Raises:
        FrameEncodingOverflow: If value is negative or above 2**28 - 1
    """
    if value < 0 or value > MAX_SYNCSAFE:
        raise FrameEncodingOverflow(f"Size {value} does not fit in a syncsafe integer")
    return bytes(
        (
            (value >> 21) & 0x7F,
            (value >> 14) & 0x7F,
            (value >> 7) & 0x7F,
            value & 0x7F,
        )
    )


def decode_syncsafe(data: bytes) -> int:
    """
    Decode a 4-byte syncsafe integer.

    Raises:
        ValueError: If any byte has its high bit set
    """
    if len(data) != 4:
        raise ValueError(f"Syncsafe integer needs 4 bytes, got {len(data)}")
    if any(b & 0x80 for b in data):
        raise ValueError(f"Not a syncsafe integer: {data.hex()}")
    return (data[0] << 21) | (data[1] << 14) | (data[2] << 7) | data[3]


def build_frame(frame_id: str, body: bytes, *, element_id: str | None = None) -> bytes:
    """Prefix a frame body with its ID3v2.4 header."""
    if len(body) > MAX_SYNCSAFE:
        raise FrameEncodingOverflow(
            f"{frame_id} frame body is {len(body)} bytes, above the syncsafe limit",
            frame_id=frame_id,
            element_id=element_id,
        )
    return frame_id.encode("ascii") + encode_syncsafe(len(body)) + b"\x00\x00" + body


def encode_text(text: str, encoding: int) -> bytes:
    """
    Encode text for a text-information frame, without terminator.

    Raises:
        UnicodeEncodeError: If text is not representable in the encoding
        ValueError: If the encoding byte is unknown
    """
    if encoding == ENCODING_LATIN1:
        return text.encode("latin-1")
    if encoding == ENCODING_UTF16:
        # Always little-endian with BOM so output does not depend on the host
        return b"\xff\xfe" + text.encode("utf-16-le")
    if encoding == ENCODING_UTF16BE:
        return text.encode("utf-16-be")
    if encoding == ENCODING_UTF8:
        return text.encode("utf-8")
    raise ValueError(f"Unknown text encoding byte: {encoding:#04x}")


def _element_id_bytes(element_id: str, frame_id: str) -> bytes:
    if not element_id or "\x00" in element_id or not element_id.isascii():
        raise FrameEncodingOverflow(
            f"Element id {element_id!r} must be non-empty ASCII without NUL",
            frame_id=frame_id,
            element_id=element_id,
        )
    return element_id.encode("ascii") + b"\x00"


# =============================================================================
# Frames
# =============================================================================


def encode_text_frame(
    frame_id: str,
    text: str,
    encoding: int = ENCODING_UTF8,
    *,
    element_id: str | None = None,
) -> bytes:
    """
    Encode a text-information frame such as TIT2.

    Args:
        frame_id: Four-character frame id
        text: Frame text
        encoding: ID3v2.4 text encoding byte
        element_id: Owning chapter id, used in error details only

    Raises:
        FrameEncodingOverflow: If the text cannot be encoded
    """
    try:
        payload = encode_text(text, encoding)
    except UnicodeEncodeError as e:
        raise FrameEncodingOverflow(
            f"Title {text!r} is not representable in encoding {encoding:#04x}",
            frame_id=frame_id,
            element_id=element_id,
        ) from e
    return build_frame(frame_id, bytes((encoding,)) + payload, element_id=element_id)


def encode_chapter_frame(chapter: ChapterDescriptor, *, encoding: int = ENCODING_UTF8) -> bytes:
    """
    Encode one chapter as a CHAP frame with an embedded TIT2 title.

    Raises:
        FrameEncodingOverflow: If times exceed 32 bits, the element id is
            invalid, or the title cannot be encoded
    """
    for label, value in (("start", chapter.start_ms), ("end", chapter.end_ms)):
        if value < 0 or value > MAX_U32:
            raise FrameEncodingOverflow(
                f"Chapter {chapter.element_id} {label} time {value} ms does not fit in 32 bits",
                frame_id=CHAPTER_FRAME_ID,
                element_id=chapter.element_id,
            )

    body = (
        _element_id_bytes(chapter.element_id, CHAPTER_FRAME_ID)
        + struct.pack(">IIII", chapter.start_ms, chapter.end_ms, UNKNOWN_OFFSET, UNKNOWN_OFFSET)
        + encode_text_frame(
            TITLE_FRAME_ID, chapter.title, encoding, element_id=chapter.element_id
        )
    )
    return build_frame(CHAPTER_FRAME_ID, body, element_id=chapter.element_id)


def encode_toc_frame(element_ids: Sequence[str], *, toc_id: str = "toc") -> bytes:
    """
    Encode the top-level, ordered CTOC frame listing every chapter id.

    Raises:
        FrameEncodingOverflow: If there are more than 255 entries or an id is invalid
    """
    if len(element_ids) > MAX_TOC_ENTRIES:
        raise FrameEncodingOverflow(
            f"{len(element_ids)} chapters exceed the table of contents limit of "
            f"{MAX_TOC_ENTRIES}",
            frame_id=TOC_FRAME_ID,
            element_id=toc_id,
            details={"chapters": len(element_ids)},
        )

    body = bytearray(_element_id_bytes(toc_id, TOC_FRAME_ID))
    body.append(TOC_FLAG_TOP_LEVEL | TOC_FLAG_ORDERED)
    body.append(len(element_ids))
    for element_id in element_ids:
        body += _element_id_bytes(element_id, TOC_FRAME_ID)
    return build_frame(TOC_FRAME_ID, bytes(body), element_id=toc_id)


def encode_chapters(
    chapters: Iterable[ChapterDescriptor],
    *,
    encoding: int = ENCODING_UTF8,
    toc_id: str = "toc",
) -> EncodedChapters:
    """
    Encode all chapters plus the table of contents.

    Args:
        chapters: Chapters in time order
        encoding: ID3v2.4 text encoding byte for titles
        toc_id: Element id of the CTOC frame

    Returns:
        EncodedChapters holding the CHAP frames and one CTOC frame
    """
    chapter_list = list(chapters)
    element_ids = tuple(c.element_id for c in chapter_list)

    seen = set(element_ids)
    if len(seen) != len(element_ids) or toc_id in seen:
        raise FrameEncodingOverflow(
            "Chapter and table of contents element ids must be unique",
            frame_id=TOC_FRAME_ID,
            element_id=toc_id,
        )

    # Entry count is checked before any chapter is encoded
    toc_frame = encode_toc_frame(element_ids, toc_id=toc_id)
    chapter_frames = tuple(encode_chapter_frame(c, encoding=encoding) for c in chapter_list)

    encoded = EncodedChapters(
        chapter_frames=chapter_frames,
        toc_frame=toc_frame,
        element_ids=element_ids,
    )
    logger.debug("Encoded %d CHAP frames + CTOC (%d bytes)", len(chapter_frames), encoded.size)
    return encoded
