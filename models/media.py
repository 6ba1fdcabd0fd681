import base64

from pydantic import BaseModel, ConfigDict


class MediaPart(BaseModel):
    """One still image handed to the models: base64 payload plus MIME type.

    Produced by the media normaliser (stage A) and shared read-only by every
    later stage that needs visual evidence.
    """

    model_config = ConfigDict(frozen=True)

    data: str  # base64, no data-URI prefix
    mime_type: str

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str) -> "MediaPart":
        return cls(data=base64.standard_b64encode(raw).decode(), mime_type=mime_type)

    def raw_bytes(self) -> bytes:
        return base64.standard_b64decode(self.data)

    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"
