"""Media normalisation — turn one input file into still-image payloads.

Images are passed through as-is (base64 of the original bytes). Videos are
sampled: `frame_count` frames at evenly spaced timestamps, each re-encoded as
JPEG. Every downstream stage only ever sees a list of MediaPart.
"""
import io
import logging
import math
import mimetypes
from pathlib import Path

import cv2
from PIL import Image

from models.media import MediaPart
from pipeline.errors import MediaDecodeError, MediaReadError

logger = logging.getLogger(__name__)

DEFAULT_FRAME_COUNT = 5
_JPEG_QUALITY = 92


def normalize_media(
    path: Path,
    mime_type: str | None = None,
    frame_count: int = DEFAULT_FRAME_COUNT,
) -> list[MediaPart]:
    """Return a non-empty list of MediaPart for an image or video file.

    `mime_type` is the declared type of the upload; when omitted it is guessed
    from the file name. Anything not declared as ``video/*`` is treated as an image.
    """
    path = Path(path)
    declared = mime_type or mimetypes.guess_type(path.name)[0]

    if declared and declared.startswith("video/"):
        return extract_video_frames(path, frame_count)
    return [_read_image(path, declared)]


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def _read_image(path: Path, declared: str | None) -> MediaPart:
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise MediaReadError(f"Failed to read {path.name}: {exc}") from exc
    if not raw:
        raise MediaReadError(f"Failed to read {path.name}: file is empty")

    mime = declared if declared and declared.startswith("image/") else _detect_mime(raw)
    logger.debug("Read image %s (%d bytes, %s)", path.name, len(raw), mime)
    return MediaPart.from_bytes(raw, mime)


def _detect_mime(image_bytes: bytes) -> str:
    """Detect MIME type from magic bytes."""
    if image_bytes[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if image_bytes[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


# ---------------------------------------------------------------------------
# Video
# ---------------------------------------------------------------------------

def frame_timestamps(duration: float, frame_count: int) -> list[float]:
    """Evenly spaced sample points strictly inside (0, duration)."""
    if frame_count < 1:
        raise ValueError("frame_count must be at least 1")
    step = duration / (frame_count + 1)
    return [step * (i + 1) for i in range(frame_count)]


def extract_video_frames(path: Path, frame_count: int = DEFAULT_FRAME_COUNT) -> list[MediaPart]:
    """Sample `frame_count` JPEG frames from a video file.

    Raises MediaDecodeError when the video cannot be opened, reports no finite
    duration, or a seek does not produce a frame. The capture handle is
    released on every exit path.
    """
    if frame_count < 1:
        raise ValueError("frame_count must be at least 1")
    if not Path(path).is_file():
        raise MediaReadError(f"Failed to read {Path(path).name}: no such file")

    capture = cv2.VideoCapture(str(path))
    try:
        if not capture.isOpened():
            raise MediaDecodeError("Failed to load video.")

        fps = capture.get(cv2.CAP_PROP_FPS)
        total_frames = capture.get(cv2.CAP_PROP_FRAME_COUNT)
        duration = _duration_seconds(fps, total_frames)

        frames = [
            _grab_frame(capture, timestamp, fps, total_frames)
            for timestamp in frame_timestamps(duration, frame_count)
        ]
    finally:
        capture.release()

    logger.info("Sampled %d frames from %s (%.2fs)", len(frames), Path(path).name, duration)
    return frames


def _duration_seconds(fps: float, total_frames: float) -> float:
    # Live or unseekable streams report 0, negative, or non-finite values.
    if not (math.isfinite(fps) and math.isfinite(total_frames)) or fps <= 0 or total_frames <= 0:
        raise MediaDecodeError("Could not process video metadata.")
    return total_frames / fps


def _grab_frame(capture, timestamp: float, fps: float, total_frames: float) -> MediaPart:
    # Seek by frame index; millisecond seeking is unreliable across codecs.
    frame_index = min(int(timestamp * fps), int(total_frames) - 1)
    capture.set(cv2.CAP_PROP_POS_FRAMES, frame_index)
    ok, frame = capture.read()
    if not ok or frame is None:
        raise MediaDecodeError(f"Seek to {timestamp:.2f}s did not produce a frame.")

    rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    buf = io.BytesIO()
    Image.fromarray(rgb).save(buf, format="JPEG", quality=_JPEG_QUALITY)
    return MediaPart.from_bytes(buf.getvalue(), "image/jpeg")
