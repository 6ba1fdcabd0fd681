"""Tests for media normalisation (stage A's workhorse).

Videos are generated on the fly with OpenCV; capture failures are simulated
by patching cv2.VideoCapture.
"""
import io
from unittest.mock import MagicMock, patch

import cv2
import pytest
from PIL import Image

from pipeline.errors import MediaDecodeError, MediaReadError
from pipeline.media import _detect_mime, extract_video_frames, frame_timestamps, normalize_media


def _fake_capture(fps=10.0, total_frames=20.0, opened=True, read_result=(True, None)):
    capture = MagicMock()
    capture.isOpened.return_value = opened
    props = {cv2.CAP_PROP_FPS: fps, cv2.CAP_PROP_FRAME_COUNT: total_frames}
    capture.get.side_effect = lambda prop: props[prop]
    capture.read.return_value = read_result
    return capture


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

class TestImages:
    def test_jpeg_passes_through_unchanged(self, jpeg_path):
        parts = normalize_media(jpeg_path)
        assert len(parts) == 1
        assert parts[0].mime_type == "image/jpeg"
        assert parts[0].raw_bytes() == jpeg_path.read_bytes()

    def test_declared_mime_wins(self, jpeg_path):
        parts = normalize_media(jpeg_path, mime_type="image/pjpeg")
        assert parts[0].mime_type == "image/pjpeg"

    def test_unknown_extension_detects_from_magic_bytes(self, tmp_path):
        path = tmp_path / "upload.bin"
        Image.new("RGB", (10, 10)).save(path, format="PNG")
        assert normalize_media(path)[0].mime_type == "image/png"

    def test_missing_file(self, tmp_path):
        with pytest.raises(MediaReadError):
            normalize_media(tmp_path / "nope.jpg")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.jpg"
        path.write_bytes(b"")
        with pytest.raises(MediaReadError):
            normalize_media(path)


class TestDetectMime:
    def test_jpeg_magic(self):
        assert _detect_mime(b"\xff\xd8\xff" + b"\x00" * 10) == "image/jpeg"

    def test_png_magic(self):
        assert _detect_mime(b"\x89PNG\r\n\x1a\n" + b"\x00" * 10) == "image/png"

    def test_gif_magic(self):
        assert _detect_mime(b"GIF89a" + b"\x00" * 10) == "image/gif"

    def test_webp_magic(self):
        assert _detect_mime(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"

    def test_unknown_defaults_to_jpeg(self):
        assert _detect_mime(b"\x00\x01\x02\x03") == "image/jpeg"


# ---------------------------------------------------------------------------
# Frame schedule
# ---------------------------------------------------------------------------

class TestFrameTimestamps:
    def test_evenly_spaced_inside_duration(self):
        assert frame_timestamps(6.0, 5) == pytest.approx([1.0, 2.0, 3.0, 4.0, 5.0])

    def test_strictly_increasing_and_bounded(self):
        stamps = frame_timestamps(2.0, 7)
        assert all(0 < t < 2.0 for t in stamps)
        assert all(a < b for a, b in zip(stamps, stamps[1:]))

    def test_frame_count_must_be_positive(self):
        with pytest.raises(ValueError):
            frame_timestamps(2.0, 0)


# ---------------------------------------------------------------------------
# Video
# ---------------------------------------------------------------------------

class TestVideo:
    def test_samples_default_five_jpeg_frames(self, video_path):
        parts = normalize_media(video_path, mime_type="video/x-msvideo")
        assert len(parts) == 5
        for part in parts:
            assert part.mime_type == "image/jpeg"
            raw = part.raw_bytes()
            assert raw[:3] == b"\xff\xd8\xff"
            with Image.open(io.BytesIO(raw)) as img:
                assert img.size == (64, 48)

    def test_mime_guessed_from_extension(self, video_path):
        assert len(normalize_media(video_path, frame_count=3)) == 3

    def test_frames_follow_timeline(self, video_path):
        # The fixture gets brighter every frame, so later samples are brighter.
        parts = extract_video_frames(video_path, frame_count=4)
        brightness = []
        for part in parts:
            with Image.open(io.BytesIO(part.raw_bytes())) as img:
                brightness.append(img.convert("L").getpixel((32, 24)))
        assert brightness == sorted(brightness)
        assert brightness[0] < brightness[-1]

    def test_garbage_video_fails_to_decode(self, tmp_path):
        path = tmp_path / "broken.mp4"
        path.write_bytes(b"definitely not a video" * 10)
        with pytest.raises(MediaDecodeError):
            normalize_media(path)

    def test_missing_video_file(self, tmp_path):
        with pytest.raises(MediaReadError):
            normalize_media(tmp_path / "gone.mp4", mime_type="video/mp4")

    def test_frame_count_must_be_positive(self, video_path):
        with pytest.raises(ValueError):
            extract_video_frames(video_path, frame_count=0)


class TestCaptureRelease:
    @pytest.fixture
    def placeholder(self, tmp_path):
        path = tmp_path / "stream.mp4"
        path.write_bytes(b"\x00")
        return path

    def test_unopened_capture_is_released(self, placeholder):
        capture = _fake_capture(opened=False)
        with patch("pipeline.media.cv2.VideoCapture", return_value=capture):
            with pytest.raises(MediaDecodeError):
                extract_video_frames(placeholder)
        capture.release.assert_called_once()

    @pytest.mark.parametrize("fps,total", [(0.0, 20.0), (30.0, 0.0), (30.0, float("inf")), (-1.0, 5.0)])
    def test_unusable_duration(self, placeholder, fps, total):
        capture = _fake_capture(fps=fps, total_frames=total)
        with patch("pipeline.media.cv2.VideoCapture", return_value=capture):
            with pytest.raises(MediaDecodeError, match="metadata"):
                extract_video_frames(placeholder)
        capture.release.assert_called_once()

    def test_seek_without_frame_fails_instead_of_hanging(self, placeholder):
        capture = _fake_capture(read_result=(False, None))
        with patch("pipeline.media.cv2.VideoCapture", return_value=capture):
            with pytest.raises(MediaDecodeError, match="Seek"):
                extract_video_frames(placeholder)
        capture.release.assert_called_once()
        capture.read.assert_called_once()
