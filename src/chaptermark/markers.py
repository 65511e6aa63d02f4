"""
Marker table parsing.

Reads the marker list exported by an audio editor (Adobe Audition's
"Export Markers" CSV) into MarkerRecord objects. Audition writes a
tab-separated file with ``Name, Start, Duration, Time Format, Type,
Description`` columns; generic exports use commas and ``Name, Start, End``.
Both shapes are recognised from the header row.

Key functions:
    - parse_timestamp(): ``H:MM:SS.fff`` (or ``M:SS.fff``) to milliseconds
    - MarkerTable: lazy, restartable iteration over the rows of a marker table
    - read_marker_file(): load a marker file from disk into a MarkerTable
"""

from __future__ import annotations

import csv
import io
import logging
import re
from collections.abc import Iterator
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path

from chaptermark.exceptions import IoFailure, MalformedMarkerRow, NoMarkersFound
from chaptermark.models import MarkerRecord

logger = logging.getLogger(__name__)

# Header aliases, compared case-insensitively after trimming
NAME_COLUMNS = ("name", "marker", "marker name", "title")
START_COLUMNS = ("start", "in", "start time")
END_COLUMNS = ("end", "out", "end time")
DURATION_COLUMNS = ("duration", "length")
TIME_FORMAT_COLUMNS = ("time format",)

# Audition time format whose cells are clock timestamps; the others hold
# sample counts or frame numbers
DECIMAL_TIME_FORMAT = "decimal"

# Cell values meaning "no end"
ABSENT_VALUES = ("", "-")

_TIMESTAMP_RE = re.compile(r"(?P<whole>\d+(?::\d{1,2}){1,2})(?:\.(?P<fraction>\d+))?")


# =============================================================================
# Timestamps
# =============================================================================


def parse_timestamp(value: str) -> int:
    """
    Parse a marker timestamp into whole milliseconds.

    Accepts ``H:MM:SS.fff`` and ``M:SS.fff``. At least one colon is
    required, so sample counts and bare seconds are rejected. The fraction
    is optional and is read as a decimal fraction of a second, so ``.5`` is
    500 ms. Sub-millisecond digits are rounded half-up.

    Args:
        value: Timestamp text, e.g. "0:01:30.500"

    Returns:
        Milliseconds since zero

    Raises:
        ValueError: If the text is not a valid timestamp
    """
    text = value.strip()
    match = _TIMESTAMP_RE.fullmatch(text)
    if not match:
        raise ValueError(f"Invalid timestamp: {value!r}")

    parts = [int(p) for p in match.group("whole").split(":")]
    # Fields below the leading one are minutes/seconds
    if any(p >= 60 for p in parts[1:]):
        raise ValueError(f"Minutes and seconds must be below 60: {value!r}")

    seconds = 0
    for part in parts:
        seconds = seconds * 60 + part

    millis = seconds * 1000
    fraction = match.group("fraction")
    if fraction:
        frac_ms = (Decimal(f"0.{fraction}") * 1000).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        millis += int(frac_ms)
    return millis


def format_timestamp(millis: int) -> str:
    """Format milliseconds as ``H:MM:SS.fff``."""
    seconds, ms = divmod(millis, 1000)
    minutes, secs = divmod(seconds, 60)
    hours, mins = divmod(minutes, 60)
    return f"{hours}:{mins:02d}:{secs:02d}.{ms:03d}"


def detect_delimiter(header_line: str) -> str:
    """Pick the delimiter used by a marker file from its header line."""
    if "\t" in header_line:
        return "\t"
    if ";" in header_line and "," not in header_line:
        return ";"
    return ","


# =============================================================================
# Marker Table
# =============================================================================


class MarkerTable:
    """
    Rows of a marker table as MarkerRecord objects.

    Iteration is lazy and restartable: every ``iter()`` parses the text again
    from the first row. The first malformed row aborts iteration with
    MalformedMarkerRow; a table without data rows raises NoMarkersFound.

    Example:
        >>> table = MarkerTable("Name,Start\\nIntro,0:00:00.000\\n")
        >>> [m.name for m in table]
        ['Intro']
    """

    def __init__(
        self,
        text: str,
        *,
        delimiter: str | None = None,
        source: Path | str | None = None,
    ) -> None:
        self.text = text.lstrip("\ufeff")
        self.delimiter = delimiter
        self.source = source

    def __repr__(self) -> str:
        return f"MarkerTable(source={self.source!r}, delimiter={self.delimiter!r})"

    def __iter__(self) -> Iterator[MarkerRecord]:
        first_line = next((line for line in self.text.splitlines() if line.strip()), None)
        if first_line is None:
            raise NoMarkersFound("Marker table is empty", source=self.source)

        delimiter = self.delimiter or detect_delimiter(first_line)
        # Blank lines inside quoted cells belong to the cell, so csv sees the raw text
        rows = (
            cells
            for cells in csv.reader(io.StringIO(self.text), delimiter=delimiter)
            if any(cell.strip() for cell in cells)
        )
        header = next(rows, None)
        if header is None:
            raise NoMarkersFound("Marker table is empty", source=self.source)
        columns = _map_columns(header)

        count = 0
        for row_number, cells in enumerate(rows, start=1):
            yield _parse_row(row_number, cells, columns)
            count += 1

        if count == 0:
            raise NoMarkersFound("Marker table has a header but no markers", source=self.source)
        logger.debug("Parsed %d markers from %s", count, self.source or "<text>")


def _map_columns(header: list[str]) -> dict[str, int]:
    """Map logical column names to header positions."""
    normalized = [cell.strip().lower() for cell in header]

    def find(aliases: tuple[str, ...]) -> int | None:
        for idx, cell in enumerate(normalized):
            if cell in aliases:
                return idx
        return None

    columns: dict[str, int] = {}
    for key, aliases in (
        ("name", NAME_COLUMNS),
        ("start", START_COLUMNS),
        ("end", END_COLUMNS),
        ("duration", DURATION_COLUMNS),
        ("time_format", TIME_FORMAT_COLUMNS),
    ):
        idx = find(aliases)
        if idx is not None:
            columns[key] = idx

    for required in ("name", "start"):
        if required not in columns:
            raise MalformedMarkerRow(
                f"Marker header has no {required} column",
                row=0,
                field=required,
                value=",".join(header),
            )
    return columns


def _cell(cells: list[str], idx: int | None) -> str | None:
    if idx is None or idx >= len(cells):
        return None
    return cells[idx]


def _parse_row(row_number: int, cells: list[str], columns: dict[str, int]) -> MarkerRecord:
    name = _cell(cells, columns["name"])
    if name is None:
        raise MalformedMarkerRow(
            f"Row {row_number}: missing name field", row=row_number, field="name"
        )

    start_text = _cell(cells, columns["start"])
    if start_text is None or not start_text.strip():
        raise MalformedMarkerRow(
            f"Row {row_number}: missing start timestamp", row=row_number, field="start"
        )
    time_format = _cell(cells, columns.get("time_format"))
    if time_format and time_format.strip().lower() not in ("", DECIMAL_TIME_FORMAT):
        raise MalformedMarkerRow(
            f"Row {row_number}: unsupported time format {time_format.strip()!r}, "
            "export markers with the decimal time format",
            row=row_number,
            field="start",
            value=time_format,
        )
    start_ms = _parse_field(row_number, "start", start_text)

    end_ms: int | None = None
    end_text = _cell(cells, columns.get("end"))
    duration_text = _cell(cells, columns.get("duration"))
    if end_text is not None and end_text.strip() not in ABSENT_VALUES:
        end_ms = _parse_field(row_number, "end", end_text)
    elif duration_text is not None and duration_text.strip() not in ABSENT_VALUES:
        duration_ms = _parse_field(row_number, "duration", duration_text)
        # Zero-length markers are cue points, not ranges
        if duration_ms > 0:
            end_ms = start_ms + duration_ms

    return MarkerRecord(row=row_number, name=name, start_ms=start_ms, end_ms=end_ms)


def _parse_field(row_number: int, field: str, text: str) -> int:
    try:
        return parse_timestamp(text)
    except ValueError as e:
        raise MalformedMarkerRow(
            f"Row {row_number}: invalid {field} timestamp {text.strip()!r}",
            row=row_number,
            field=field,
            value=text,
        ) from e


def read_marker_file(path: Path, *, delimiter: str | None = None) -> MarkerTable:
    """
    Load a marker file into a MarkerTable.

    Args:
        path: Marker CSV path
        delimiter: Explicit delimiter, or None to detect it from the header

    Raises:
        IoFailure: If the file cannot be read or is not UTF-8 text
    """
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise IoFailure(f"Cannot read marker file: {e}", path=path, operation="read") from e
    except UnicodeDecodeError as e:
        raise IoFailure(
            f"Marker file is not UTF-8 text: {e}", path=path, operation="decode"
        ) from e

    logger.debug("Read marker file %s (%d bytes)", path, len(text))
    return MarkerTable(text, delimiter=delimiter, source=path)
