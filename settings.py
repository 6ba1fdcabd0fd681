from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Credentials are optional here and checked lazily by the model gateway,
    # so the pipeline can still ingest media without them.
    gemini_api_key: str | None = None
    openrouter_api_key: str | None = None

    primary_model: str = "gemini-2.5-flash"
    verification_model: str = "nvidia/nemotron-nano-12b-v2-vl:free"
    synthesis_model: str = "openai/gpt-oss-120b"

    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_app_title: str = "Geo-Agent Image Localizer"
    max_output_tokens: int = 4096

    video_frame_count: int = 5
    max_hypotheses: int = 3
    request_timeout_s: float = 120.0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GEOAGENT_",
        env_file_encoding="utf-8",
    )

    @field_validator("max_output_tokens", "video_frame_count", "max_hypotheses")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("request_timeout_s")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request_timeout_s must be greater than 0")
        return v

    @property
    def request_timeout_ms(self) -> int:
        """Timeout in milliseconds, the unit google-genai's HttpOptions expects."""
        return int(self.request_timeout_s * 1000)
