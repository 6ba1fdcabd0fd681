from pathlib import Path

import cv2
import numpy as np
import pytest
from PIL import Image

from pipeline.errors import UpstreamAuthError
from pipeline.gateway import ModelReply, ProviderKind
from settings import Settings


@pytest.fixture
def settings() -> Settings:
    """Settings with dummy credentials. No real API key needed for unit tests."""
    return Settings(
        gemini_api_key="test-gemini-key",
        openrouter_api_key="test-openrouter-key",
        _env_file=None,
    )


@pytest.fixture
def jpeg_path(tmp_path: Path) -> Path:
    """A 640x480 JPEG photo."""
    path = tmp_path / "landmark.jpg"
    Image.new("RGB", (640, 480), color=(120, 90, 60)).save(path, format="JPEG")
    return path


@pytest.fixture
def video_path(tmp_path: Path) -> Path:
    """A 2-second, 10 fps MJPG video whose frames get brighter over time."""
    path = tmp_path / "clip.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (64, 48))
    if not writer.isOpened():
        pytest.skip("OpenCV build cannot write MJPG video")
    for i in range(20):
        writer.write(np.full((48, 64, 3), i * 10, dtype=np.uint8))
    writer.release()
    return path


class ScriptedGateway:
    """Stands in for ModelGateway: returns queued replies in order and records calls.

    A queued exception is raised instead of returned.
    """

    def __init__(self, replies=(), missing_credentials=()):
        self._replies = list(replies)
        self._missing = set(missing_credentials)
        self.calls = []

    def require_credentials(self, kind: ProviderKind) -> None:
        if kind in self._missing:
            raise UpstreamAuthError(kind.value, f"GEOAGENT_{kind.value.upper()}_API_KEY")

    def invoke_model(self, config, prompt, media=()):
        self.require_credentials(config.kind)
        self.calls.append((config, prompt, list(media)))
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            return ModelReply(text=reply)
        return reply


@pytest.fixture
def scripted_gateway():
    """Factory: scripted_gateway(replies, missing_credentials=())."""
    return ScriptedGateway
