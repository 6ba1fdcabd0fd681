"""Stage A: Ingest — turn the uploaded file into MediaPart payloads.

Reads:  one image or video file
Writes: nothing (media stays in memory for the duration of the run)
"""
import logging
from pathlib import Path

from models.media import MediaPart
from pipeline.media import normalize_media
from settings import Settings

logger = logging.getLogger(__name__)


def run(settings: Settings, path: Path, mime_type: str | None = None) -> list[MediaPart]:
    """Normalise the input file. Raises MediaDecodeError / MediaReadError."""
    media = normalize_media(path, mime_type=mime_type, frame_count=settings.video_frame_count)

    logger.info("Stage A complete → %s", Path(path).name)
    logger.info("  Media parts: %d (%s)", len(media), ", ".join(sorted({m.mime_type for m in media})))
    return media
