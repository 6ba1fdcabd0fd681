"""Extract a JSON object from free-text model replies.

Models wrap JSON inconsistently: sometimes in a ```json fence, sometimes in a
bare ``` fence, sometimes not at all. Two attempts are made:

  1. Look for a brace-delimited object, preferably inside a fence, and parse it.
  2. Only if nothing matched: parse the whole reply as JSON.

Anything else raises MalformedModelOutputError.
"""
import json
import logging
import re
from typing import Any

from pipeline.errors import MalformedModelOutputError

logger = logging.getLogger(__name__)

# ```json { ... } ```  or  ``` { ... } ```
_FENCED_OBJECT = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```", re.IGNORECASE)
# First "{" through last "}", for prose around an unfenced object
_BARE_OBJECT = re.compile(r"\{[\s\S]*\}")


def extract_json(text: str) -> dict[str, Any]:
    """Return the JSON object contained in a model reply.

    Raises MalformedModelOutputError if no valid JSON object can be parsed.
    """
    if text is None:
        raise MalformedModelOutputError("Model returned an empty response.", "")

    candidate = _find_object(text)
    if candidate is None:
        candidate = text.strip()

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        logger.debug("JSON decode failed (%s) for reply: %.200s", exc, text)
        raise MalformedModelOutputError(
            "No valid JSON object found in the response.", text
        ) from exc

    if not isinstance(parsed, dict):
        raise MalformedModelOutputError(
            f"Expected a JSON object, got {type(parsed).__name__}.", text
        )
    return parsed


def _find_object(text: str) -> str | None:
    fenced = _FENCED_OBJECT.search(text)
    if fenced:
        return fenced.group(1)
    bare = _BARE_OBJECT.search(text)
    if bare:
        return bare.group(0)
    return None


def text_field(parsed: dict[str, Any], key: str) -> str | None:
    """Return ``parsed[key]`` as prompt-ready text, or None if absent or empty.

    Strings are kept as-is, a list becomes one item per line, anything else
    is rendered as JSON.
    """
    value = parsed.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        text = value
    elif isinstance(value, list):
        text = "\n".join(_item_text(item) for item in value if item not in (None, ""))
    else:
        text = json.dumps(value, ensure_ascii=False)
    return text if text.strip() else None


def _item_text(item: Any) -> str:
    if isinstance(item, str):
        return item
    return json.dumps(item, ensure_ascii=False)
