"""Model gateway — one call interface over the two upstream providers.

  Gemini      primary multimodal model (google-genai SDK); optionally grounded
              with Google Search / Google Maps tools.
  OpenRouter  model aggregator, OpenAI-compatible chat completions (openai SDK);
              images travel as data-URIs and the reply is constrained to JSON.

Stages describe what they need with a ProviderConfig and call
``ModelGateway.invoke_model``; which backend serves the call is decided by
``config.kind``. Credentials are checked lazily, before any client is built.
No retries happen at this layer: any failure aborts the calling stage.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from typing import Any, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from openai import APIConnectionError, APIStatusError, OpenAI
from pydantic import BaseModel, Field

from models.chat import ChatTurn
from models.media import MediaPart
from pipeline.errors import MalformedModelOutputError, UpstreamAuthError, UpstreamHTTPError
from settings import Settings

logger = logging.getLogger(__name__)


class ProviderKind(str, Enum):
    GEMINI = "gemini"
    OPENROUTER = "openrouter"


class ProviderConfig(BaseModel):
    """Per-stage choice of provider, model and grounding tools."""

    kind: ProviderKind
    model: str
    search: bool = False
    maps: bool = False

    @property
    def uses_tools(self) -> bool:
        return self.search or self.maps


class ModelReply(BaseModel):
    text: str
    grounding: list[dict[str, Any]] = Field(default_factory=list)  # raw provider records


class ModelBackend(ABC):
    """A provider implementation behind the gateway."""

    provider_name: str
    credential_env: str

    def __init__(self, settings: Settings):
        self._settings = settings
        self._client = None

    @property
    @abstractmethod
    def api_key(self) -> str | None:
        """Configured credential, if any."""

    @abstractmethod
    def _build_client(self, api_key: str):
        """Create the SDK client."""

    @abstractmethod
    def invoke(self, config: ProviderConfig, prompt: str, media: list[MediaPart]) -> ModelReply:
        """Send prompt + media, return the reply text (and grounding records)."""

    def require_credentials(self) -> None:
        if not self.api_key:
            raise UpstreamAuthError(self.provider_name, self.credential_env)

    def client(self):
        self.require_credentials()
        if self._client is None:
            self._client = self._build_client(self.api_key)
        return self._client


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------

class GeminiBackend(ModelBackend):
    provider_name = "Gemini"
    credential_env = "GEOAGENT_GEMINI_API_KEY"

    @property
    def api_key(self) -> str | None:
        return self._settings.gemini_api_key

    def _build_client(self, api_key: str):
        return genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=self._settings.request_timeout_ms),
        )

    def invoke(self, config: ProviderConfig, prompt: str, media: list[MediaPart]) -> ModelReply:
        client = self.client()
        contents = [types.Part.from_text(text=prompt)] + [
            types.Part.from_bytes(data=part.raw_bytes(), mime_type=part.mime_type)
            for part in media
        ]
        tools = _grounding_tools(config)
        generation_config = types.GenerateContentConfig(tools=tools) if tools else None

        with _translate_errors(self.provider_name):
            response = client.models.generate_content(
                model=config.model,
                contents=contents,
                config=generation_config,
            )

        grounding = _grounding_records(response) if tools else []
        return ModelReply(text=(response.text or "").strip(), grounding=grounding)

    def chat(self, model: str, history: Sequence[ChatTurn], message: str) -> str:
        client = self.client()
        contents = [
            types.Content(role=turn.role, parts=[types.Part.from_text(text=turn.text)])
            for turn in history
        ]
        with _translate_errors(self.provider_name):
            session = client.chats.create(model=model, history=contents)
            response = session.send_message(message)
        return response.text or ""


def _grounding_tools(config: ProviderConfig) -> list[types.Tool]:
    tools: list[types.Tool] = []
    if config.search:
        tools.append(types.Tool(google_search=types.GoogleSearch()))
    if config.maps:
        tools.append(types.Tool(google_maps=types.GoogleMaps()))
    return tools


def _grounding_records(response) -> list[dict[str, Any]]:
    """Raw grounding chunks of the first candidate, as plain dicts."""
    candidates = response.candidates or []
    metadata = candidates[0].grounding_metadata if candidates else None
    if metadata is None or not metadata.grounding_chunks:
        return []
    return [chunk.model_dump(exclude_none=True) for chunk in metadata.grounding_chunks]


# ---------------------------------------------------------------------------
# OpenRouter
# ---------------------------------------------------------------------------

class OpenRouterBackend(ModelBackend):
    provider_name = "OpenRouter"
    credential_env = "GEOAGENT_OPENROUTER_API_KEY"

    @property
    def api_key(self) -> str | None:
        return self._settings.openrouter_api_key

    def _build_client(self, api_key: str):
        return OpenAI(
            api_key=api_key,
            base_url=self._settings.openrouter_base_url,
            default_headers={"X-Title": self._settings.openrouter_app_title},
            timeout=self._settings.request_timeout_s,
            max_retries=0,
        )

    def invoke(self, config: ProviderConfig, prompt: str, media: list[MediaPart]) -> ModelReply:
        if config.uses_tools:
            raise ValueError("OpenRouter backend does not support grounding tools")
        client = self.client()

        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        content += [
            {"type": "image_url", "image_url": {"url": part.data_uri()}}
            for part in media
        ]

        with _translate_errors(self.provider_name):
            response = client.chat.completions.create(
                model=config.model,
                messages=[{"role": "user", "content": content}],
                max_tokens=self._settings.max_output_tokens,
                response_format={"type": "json_object"},
            )

        if not response.choices or response.choices[0].message.content is None:
            raise MalformedModelOutputError(
                f"{self.provider_name} response ({config.model}) contained no message content."
            )
        return ModelReply(text=response.choices[0].message.content.strip())


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class ModelGateway:
    def __init__(self, settings: Settings, backends: dict[ProviderKind, ModelBackend] | None = None):
        self._settings = settings
        self._backends = dict(backends) if backends else {
            ProviderKind.GEMINI: GeminiBackend(settings),
            ProviderKind.OPENROUTER: OpenRouterBackend(settings),
        }

    def backend(self, kind: ProviderKind) -> ModelBackend:
        try:
            return self._backends[kind]
        except KeyError:
            raise ValueError(f"No backend registered for provider {kind!r}") from None

    def require_credentials(self, kind: ProviderKind) -> None:
        self.backend(kind).require_credentials()

    def invoke_model(
        self,
        config: ProviderConfig,
        prompt: str,
        media: Sequence[MediaPart] = (),
    ) -> ModelReply:
        logger.debug(
            "Calling %s/%s with %d media part(s)%s",
            config.kind.value, config.model, len(media),
            " + grounding tools" if config.uses_tools else "",
        )
        return self.backend(config.kind).invoke(config, prompt, list(media))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@contextmanager
def _translate_errors(provider: str):
    """Map SDK status/transport exceptions onto UpstreamHTTPError."""
    try:
        yield
    except APIStatusError as exc:
        raise UpstreamHTTPError(provider, exc.status_code, exc.response.text) from exc
    except genai_errors.APIError as exc:
        raise UpstreamHTTPError(provider, exc.code, exc.message or str(exc)) from exc
    except (APIConnectionError, httpx.TransportError) as exc:
        raise UpstreamHTTPError(provider, None, str(exc)) from exc
