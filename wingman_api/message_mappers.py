"""Conversion helpers between conversation turns and provider-specific formats."""

from collections.abc import Sequence
from typing import Any

from google.genai import types

from .data_urls import decode_data_url
from .schemas import Attachment, ConversationTurn


def build_chat_messages(
    system_prompt: str | None,
    messages: Sequence[ConversationTurn],
    attachments: Sequence[Attachment] = (),
) -> list[dict[str, Any]]:
    """Convert turns to chat-completions messages; attachments join the final user turn."""
    chat_messages: list[dict[str, Any]] = []
    if system_prompt:
        chat_messages.append({"role": "system", "content": system_prompt})

    for turn in messages:
        chat_messages.append({"role": turn.role, "content": turn.text})

    if attachments:
        if not chat_messages or chat_messages[-1]["role"] != "user":
            chat_messages.append({"role": "user", "content": ""})
        last = chat_messages[-1]
        parts: list[dict[str, Any]] = []
        if last["content"].strip():
            parts.append({"type": "text", "text": last["content"]})
        for attachment in attachments:
            parts.append({"type": "image_url", "image_url": {"url": attachment.data_url}})
        last["content"] = parts

    return chat_messages


def build_generative_history(messages: Sequence[ConversationTurn]) -> list[types.Content]:
    """Convert prior turns to Gemini chat history (``assistant`` becomes ``model``)."""
    return [
        types.Content(
            role="model" if turn.role == "assistant" else "user",
            parts=[types.Part(text=turn.text)],
        )
        for turn in messages
    ]


def build_generative_parts(text: str, attachments: Sequence[Attachment] = ()) -> list[types.Part]:
    """Build the outgoing Gemini message; inline images precede the text."""
    parts: list[types.Part] = []
    for attachment in attachments:
        mime_type, data = decode_data_url(attachment.data_url)
        parts.append(types.Part.from_bytes(data=data, mime_type=mime_type))
    if text.strip() or not parts:
        parts.append(types.Part(text=text))
    return parts


def split_last_user_turn(
    messages: Sequence[ConversationTurn],
) -> tuple[list[ConversationTurn], str]:
    """Split off the trailing user turn as the outgoing message text."""
    if messages and messages[-1].role == "user":
        return list(messages[:-1]), messages[-1].text
    return list(messages), ""
