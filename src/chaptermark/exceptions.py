"""
Chaptermark exception hierarchy.

Provides typed exceptions for every failure the conversion pipeline can hit.
Each exception carries a structured ``details`` dict so the CLI can report
the row, frame or path involved.

Exception Hierarchy:
    ChaptermarkError (base)
    ├── MarkerError - Marker table problems
    │   ├── MalformedMarkerRow - A row (or the header) failed to parse
    │   ├── NoMarkersFound - The marker table has no data rows
    │   ├── UnorderedMarkers - Start times not strictly increasing
    │   └── MissingFinalChapterEnd - Last chapter has no known end
    ├── FrameEncodingOverflow - Value not representable in the frame layout
    ├── TagRegionNotFound - No usable ID3v2.4 tag region in the target file
    └── IoFailure - Underlying read/write error
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class ChaptermarkError(Exception):
    """Base exception for all chaptermark errors."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """
        Initialize chaptermark exception.

        Args:
            message: Human-readable error message
            details: Optional structured error details for logging/reporting
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Marker Errors
# =============================================================================


class MarkerError(ChaptermarkError):
    """Marker table could not be turned into chapters."""

    def __init__(
        self,
        message: str,
        *,
        row: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if row is not None:
            details["row"] = row
        super().__init__(message, details=details)
        self.row = row


class MalformedMarkerRow(MarkerError):
    """A marker row (or the header, row 0) failed to parse."""

    def __init__(
        self,
        message: str,
        *,
        row: int,
        field: str,
        value: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.get("details", {})
        details["field"] = field
        if value is not None:
            details["value"] = value
        kwargs["details"] = details
        super().__init__(message, row=row, **kwargs)
        self.field = field
        self.value = value


class NoMarkersFound(MarkerError):
    """The marker table contains no data rows."""

    def __init__(
        self,
        message: str = "No markers found",
        *,
        source: Path | str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.get("details", {})
        if source:
            details["source"] = str(source)
        kwargs["details"] = details
        super().__init__(message, **kwargs)
        self.source = source


class UnorderedMarkers(MarkerError):
    """Marker start times are not strictly increasing."""

    def __init__(
        self,
        message: str,
        *,
        row: int,
        previous_ms: int | None = None,
        current_ms: int | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.get("details", {})
        if previous_ms is not None:
            details["previous_ms"] = previous_ms
        if current_ms is not None:
            details["current_ms"] = current_ms
        kwargs["details"] = details
        super().__init__(message, row=row, **kwargs)
        self.previous_ms = previous_ms
        self.current_ms = current_ms


class MissingFinalChapterEnd(MarkerError):
    """The final marker has no end and no total duration is known."""

    pass


# =============================================================================
# Encoding Errors
# =============================================================================


class FrameEncodingOverflow(ChaptermarkError):
    """A value cannot be represented in the ID3v2.4 frame layout."""

    def __init__(
        self,
        message: str,
        *,
        frame_id: str | None = None,
        element_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if frame_id:
            details["frame_id"] = frame_id
        if element_id:
            details["element_id"] = element_id
        super().__init__(message, details=details)
        self.frame_id = frame_id
        self.element_id = element_id


# =============================================================================
# Tag Container Errors
# =============================================================================


class TagRegionNotFound(ChaptermarkError):
    """Target file has no usable ID3v2.4 tag region."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | str | None = None,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if path:
            details["path"] = str(path)
        if reason:
            details["reason"] = reason
        super().__init__(message, details=details)
        self.path = path
        self.reason = reason


class IoFailure(ChaptermarkError):
    """Underlying file read/write failure."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | str | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if path:
            details["path"] = str(path)
        if operation:
            details["operation"] = operation
        super().__init__(message, details=details)
        self.path = path
        self.operation = operation
