"""Data URL parsing helpers."""

import base64

from .constants import DATA_URL_PATTERN


def parse_data_url(data_url: str) -> tuple[str, str]:
    match = DATA_URL_PATTERN.fullmatch(data_url)
    if not match:
        raise ValueError("dataUrl must be a base64 data URL")
    return match.group("mime"), match.group("payload")


def build_data_url(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    mime_type, payload = parse_data_url(data_url)
    return mime_type, base64.b64decode(payload)
