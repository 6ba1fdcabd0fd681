"""Tests for the assistant chat helpers."""
from unittest.mock import MagicMock, patch

import pytest

from models.chat import ChatTurn
from pipeline.chat import GREETING, ChatSession, send_chat_message
from pipeline.errors import UpstreamAuthError, UpstreamHTTPError
from settings import Settings


@pytest.fixture
def backend() -> MagicMock:
    backend = MagicMock()
    backend.chat.return_value = "The Eiffel Tower is in Paris."
    return backend


class TestSendChatMessage:
    def test_sends_history_and_message(self, settings, backend):
        history = [ChatTurn(role="model", text=GREETING)]
        reply = send_chat_message("Where is the Eiffel Tower?", history, settings=settings, backend=backend)

        assert reply == "The Eiffel Tower is in Paris."
        backend.chat.assert_called_once_with(
            settings.primary_model, history, "Where is the Eiffel Tower?"
        )

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_message_rejected(self, settings, backend, text):
        with pytest.raises(ValueError):
            send_chat_message(text, [], settings=settings, backend=backend)
        backend.chat.assert_not_called()

    def test_missing_key(self):
        no_keys = Settings(_env_file=None)
        with patch("pipeline.gateway.genai.Client") as client_cls:
            with pytest.raises(UpstreamAuthError):
                send_chat_message("hello", [], settings=no_keys)
        client_cls.assert_not_called()

    def test_through_gemini_client(self, settings):
        client = MagicMock()
        client.chats.create.return_value.send_message.return_value.text = "Bonjour!"
        with patch("pipeline.gateway.genai.Client", return_value=client):
            reply = send_chat_message("hello", [ChatTurn(role="user", text="hi")], settings=settings)
        assert reply == "Bonjour!"
        assert client.chats.create.call_args.kwargs["history"][0].role == "user"


class TestChatSession:
    def test_appends_both_turns(self, settings, backend):
        session = ChatSession(settings, backend)
        session.send("Where is the Eiffel Tower?")

        assert session.history == [
            ChatTurn(role="user", text="Where is the Eiffel Tower?"),
            ChatTurn(role="model", text="The Eiffel Tower is in Paris."),
        ]

    def test_history_grows_across_turns(self, settings, backend):
        session = ChatSession(settings, backend)
        session.send("one")
        session.send("two")
        assert len(session.history) == 4
        # second call saw the first exchange
        assert len(backend.chat.call_args_list[1].args[1]) == 2

    def test_failed_reply_leaves_history_untouched(self, settings, backend):
        backend.chat.side_effect = UpstreamHTTPError("Gemini", 500, "internal")
        session = ChatSession(settings, backend)
        with pytest.raises(UpstreamHTTPError):
            session.send("hello")
        assert session.history == []

    def test_blank_message_leaves_history_untouched(self, settings, backend):
        session = ChatSession(settings, backend)
        with pytest.raises(ValueError):
            session.send("  ")
        assert session.history == []
