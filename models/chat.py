from typing import Literal

from pydantic import BaseModel


class ChatTurn(BaseModel):
    """One stored turn of the assistant chat. The caller owns the history list."""

    role: Literal["user", "model"]
    text: str
