"""Shared pytest fixtures and helpers for chaptermark tests.

The helpers here build synthetic MP3 files (ID3v2.4 tag + fake MPEG data)
and decode CHAP/CTOC frames independently of the code under test.
"""

from __future__ import annotations

import hashlib
import os
import struct
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from unittest import mock

import pytest

from chaptermark.env_settings import EnvSettings, clear_env_settings_cache

# Fake MPEG frame header followed by filler and an ID3v1-style trailer
AUDIO_PAYLOAD = b"\xff\xfb\x90\x64" + bytes(range(256)) * 8 + b"TAG" + b"\x00" * 125

EXAMPLE_MARKERS_CSV = (
    "Name,Start,End\n"
    "Intro,0:00:00.000,-\n"
    "Verse,0:01:30.500,-\n"
    "Outro,0:03:00.000,0:03:45.250\n"
)

AUDITION_MARKERS_TSV = (
    "Name\tStart\tDuration\tTime Format\tType\tDescription\n"
    "Opening\t0:00.000\t0:00.000\tdecimal\tCue\t\n"
    "Interview\t2:15.250\t0:00.000\tdecimal\tCue\t\n"
    "Credits\t10:05.000\t0:30.000\tdecimal\tCue\t\n"
)


# =============================================================================
# Byte Builders
# =============================================================================


def syncsafe(value: int) -> bytes:
    """Encode a 4-byte syncsafe integer."""
    return bytes((value >> shift) & 0x7F for shift in (21, 14, 7, 0))


def unsyncsafe(data: bytes) -> int:
    """Decode a 4-byte syncsafe integer."""
    return (data[0] << 21) | (data[1] << 14) | (data[2] << 7) | data[3]


def make_frame(frame_id: str, body: bytes) -> bytes:
    """Build an ID3v2.4 frame."""
    return frame_id.encode("ascii") + syncsafe(len(body)) + b"\x00\x00" + body


def text_frame(frame_id: str, text: str) -> bytes:
    """Build a UTF-8 text-information frame."""
    return make_frame(frame_id, b"\x03" + text.encode("utf-8"))


def make_tag(
    frames: list[bytes],
    *,
    padding: int = 0,
    major: int = 4,
    flags: int = 0,
    extended_header: bytes = b"",
) -> bytes:
    """Build an ID3v2 tag region (header + frames + padding, plus footer if flagged)."""
    body = extended_header + b"".join(frames) + b"\x00" * padding
    header_fields = bytes((major, 0, flags)) + syncsafe(len(body))
    footer = b"3DI" + header_fields if flags & 0x10 else b""
    return b"ID3" + header_fields + body + footer


def old_chapter_frames() -> list[bytes]:
    """A previous CHAP + CTOC pair, as another tool might have written it."""
    chap = make_frame(
        "CHAP",
        b"old0\x00"
        + struct.pack(">IIII", 0, 5000, 0xFFFFFFFF, 0xFFFFFFFF)
        + text_frame("TIT2", "Old chapter"),
    )
    ctoc = make_frame("CTOC", b"oldtoc\x00\x03\x01old0\x00")
    return [chap, ctoc]


def sha256(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


# =============================================================================
# Test Decoder
# =============================================================================


@dataclass
class DecodedChapter:
    element_id: str
    start_ms: int
    end_ms: int
    start_offset: int
    end_offset: int
    title: str


@dataclass
class DecodedToc:
    element_id: str
    flags: int
    child_ids: list[str]
    trailing: bytes


_TEXT_CODECS = {0: "latin-1", 1: "utf-16", 2: "utf-16-be", 3: "utf-8"}


def frame_body(raw: bytes, frame_id: str) -> bytes:
    assert raw[:4] == frame_id.encode("ascii")
    size = unsyncsafe(raw[4:8])
    assert raw[8:10] == b"\x00\x00"
    body = raw[10:]
    assert len(body) == size
    return body


def decode_chapter_frame(raw: bytes) -> DecodedChapter:
    """Decode a CHAP frame with one TIT2 sub-frame."""
    body = frame_body(raw, "CHAP")
    nul = body.index(0)
    element_id = body[:nul].decode("ascii")
    start, end, start_off, end_off = struct.unpack(">IIII", body[nul + 1 : nul + 17])
    sub = body[nul + 17 :]
    tit2 = frame_body(sub, "TIT2")
    title = tit2[1:].decode(_TEXT_CODECS[tit2[0]])
    return DecodedChapter(element_id, start, end, start_off, end_off, title)


def decode_toc_frame(raw: bytes) -> DecodedToc:
    """Decode a CTOC frame."""
    body = frame_body(raw, "CTOC")
    nul = body.index(0)
    element_id = body[:nul].decode("ascii")
    flags, count = body[nul + 1], body[nul + 2]
    rest = body[nul + 3 :]
    child_ids = []
    for _ in range(count):
        end = rest.index(0)
        child_ids.append(rest[:end].decode("ascii"))
        rest = rest[end + 1 :]
    return DecodedToc(element_id, flags, child_ids, rest)


def split_frames(data: bytes) -> tuple[list[bytes], bytes]:
    """Split a tagged file into raw frames and the bytes after the tag."""
    assert data[:3] == b"ID3"
    size = unsyncsafe(data[6:10])
    end = 10 + size
    pos = 10
    frames = []
    while pos + 10 <= end and data[pos] != 0:
        frame_size = unsyncsafe(data[pos + 4 : pos + 8])
        frames.append(data[pos : pos + 10 + frame_size])
        pos += 10 + frame_size
    return frames, data[end:]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Iterator[EnvSettings]:
    """Default settings, isolated from the host environment."""
    with mock.patch.dict(os.environ, {}, clear=True):
        clear_env_settings_cache()
        yield EnvSettings()
    clear_env_settings_cache()


@pytest.fixture
def clean_env() -> Iterator[None]:
    """Clear environment variables and the settings cache."""
    with mock.patch.dict(os.environ, {}, clear=True):
        clear_env_settings_cache()
        yield
    clear_env_settings_cache()


@pytest.fixture
def base_frames() -> list[bytes]:
    """Non-chapter frames of the synthetic MP3."""
    return [
        text_frame("TIT2", "Episode 42"),
        text_frame("TPE1", "The Hosts"),
        make_frame("TXXX", b"\x03comment\x00keep me"),
    ]


@pytest.fixture
def tagged_mp3(tmp_path: Path, base_frames: list[bytes]) -> Path:
    """MP3 with an ID3v2.4 tag, no chapters, some padding."""
    path = tmp_path / "episode.mp3"
    path.write_bytes(make_tag(base_frames, padding=64) + AUDIO_PAYLOAD)
    return path


@pytest.fixture
def chaptered_mp3(tmp_path: Path, base_frames: list[bytes]) -> Path:
    """MP3 that already carries chapters between its other frames."""
    old_chap, old_toc = old_chapter_frames()
    frames = [base_frames[0], old_chap, base_frames[1], old_toc, base_frames[2]]
    path = tmp_path / "chaptered.mp3"
    path.write_bytes(make_tag(frames, padding=16) + AUDIO_PAYLOAD)
    return path


@pytest.fixture
def marker_csv(tmp_path: Path) -> Path:
    """Comma-separated markers: Intro, Verse, Outro."""
    path = tmp_path / "markers.csv"
    path.write_text(EXAMPLE_MARKERS_CSV, encoding="utf-8")
    return path
