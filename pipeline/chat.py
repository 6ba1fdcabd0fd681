"""Assistant chat — free conversation with the primary model, outside the pipeline.

Each call sends the full prior history plus the new message. The history
belongs to the caller; ChatSession is a small helper that keeps it.
"""
import logging
from typing import Sequence

from models.chat import ChatTurn
from pipeline.gateway import GeminiBackend
from settings import Settings

logger = logging.getLogger(__name__)

GREETING = (
    "Hello! I'm the Geo-Agent assistant. "
    "Ask me anything about geolocation, this app, or the world!"
)


def send_chat_message(
    text: str,
    history: Sequence[ChatTurn],
    *,
    settings: Settings | None = None,
    backend: GeminiBackend | None = None,
) -> str:
    """Return the model's reply to `text`, given the earlier turns.

    Raises ValueError for a blank message, UpstreamAuthError without a
    Gemini key, UpstreamHTTPError if the provider call fails.
    """
    if not text or not text.strip():
        raise ValueError("Chat message must not be empty")

    settings = settings or Settings()
    backend = backend or GeminiBackend(settings)
    reply = backend.chat(settings.primary_model, list(history), text)
    logger.debug("Chat reply (%d turns of history): %.80s", len(history), reply)
    return reply


class ChatSession:
    """Keeps the turn history; both turns are appended only after a successful reply."""

    def __init__(self, settings: Settings | None = None, backend: GeminiBackend | None = None):
        self._settings = settings or Settings()
        self._backend = backend or GeminiBackend(self._settings)
        self.history: list[ChatTurn] = []

    def send(self, text: str) -> str:
        reply = send_chat_message(text, self.history, settings=self._settings, backend=self._backend)
        self.history.append(ChatTurn(role="user", text=text))
        self.history.append(ChatTurn(role="model", text=reply))
        return reply
