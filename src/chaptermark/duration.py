"""Total-duration probe for MP3 files, used to close the final chapter."""

from __future__ import annotations

import logging
from pathlib import Path

from mutagen import MutagenError
from mutagen.mp3 import MP3

logger = logging.getLogger(__name__)


def probe_duration_ms(path: Path) -> int | None:
    """
    Read the playing time of an MP3 file.

    Args:
        path: MP3 file path

    Returns:
        Duration in whole milliseconds, or None if mutagen cannot read the
        file as MP3 audio
    """
    try:
        audio = MP3(path)
    except MutagenError as e:
        logger.warning("Could not read MP3 duration of %s: %s", path, e)
        return None

    length = getattr(audio.info, "length", None)
    if not length:
        logger.warning("MP3 %s reports no duration", path)
        return None

    duration_ms = int(round(length * 1000))
    logger.debug("Probed duration of %s: %d ms", path, duration_ms)
    return duration_ms
