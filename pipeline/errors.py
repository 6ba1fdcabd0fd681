"""Error kinds raised by the geolocation pipeline.

Every error derives from GeoAgentError so callers can surface a single
human-readable message (``str(exc)``) for any failed run.
"""


class GeoAgentError(Exception):
    """Base class for all pipeline errors."""


# ---------------------------------------------------------------------------
# Media normalisation
# ---------------------------------------------------------------------------

class MediaError(GeoAgentError):
    """The input file could not be turned into still-image payloads."""


class MediaDecodeError(MediaError):
    """Video could not be decoded, has no usable duration, or a seek failed."""


class MediaReadError(MediaError):
    """The input file could not be read."""


# ---------------------------------------------------------------------------
# Upstream providers
# ---------------------------------------------------------------------------

class UpstreamError(GeoAgentError):
    """A call to an upstream model provider failed."""

    def __init__(self, provider: str, message: str):
        super().__init__(message)
        self.provider = provider


class UpstreamAuthError(UpstreamError):
    """The provider credential is not configured. Raised before any network call."""

    def __init__(self, provider: str, env_var: str):
        super().__init__(provider, f"{provider} credential not set ({env_var})")
        self.env_var = env_var


class UpstreamHTTPError(UpstreamError):
    """The provider answered with a non-success HTTP status."""

    def __init__(self, provider: str, status_code: int | None, body: str):
        super().__init__(provider, f"{provider} API error ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


# ---------------------------------------------------------------------------
# Model output
# ---------------------------------------------------------------------------

class MalformedModelOutputError(GeoAgentError):
    """A model reply did not contain the expected JSON object."""

    _EXCERPT_CHARS = 200

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text

    @property
    def excerpt(self) -> str:
        return self.raw_text[: self._EXCERPT_CHARS]
