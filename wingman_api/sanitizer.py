"""Strip markdown code fences from raw provider replies and parse JSON payloads."""

import json
import re
from typing import Any

from .errors import MalformedResponseError

_LEADING_FENCE = re.compile(r"^\s*```(?:json)?[ \t]*(?:\n|$)")
_TRAILING_FENCE = re.compile(r"(?:^|\n)[ \t]*```\s*$")


def sanitize(text: str) -> str:
    """Remove a leading and a trailing code fence, then trim whitespace.

    A fence only counts when it sits on its own line at the start or end of
    the text. Stripping repeats until neither edge carries a fence, so that
    ``sanitize(sanitize(text)) == sanitize(text)`` even for nested fences.
    """
    while True:
        cleaned = _LEADING_FENCE.sub("", text, count=1)
        cleaned = _TRAILING_FENCE.sub("", cleaned, count=1).strip()
        if cleaned == text:
            return cleaned
        text = cleaned


def parse_json_object(text: str) -> dict[str, Any]:
    cleaned = sanitize(text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"Provider reply is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise MalformedResponseError("Provider reply is not a JSON object")
    return payload
