"""Orchestration interfaces for provider calls."""

from dataclasses import dataclass
from typing import Protocol

from wingman_api.providers.base import ProviderClient, ProviderResponse
from wingman_api.schemas import Attachment, ConversationTurn


@dataclass(frozen=True)
class ProviderCall:
    operation: str
    system_prompt: str | None
    messages: tuple[ConversationTurn, ...]
    attachments: tuple[Attachment, ...] = ()
    max_output_tokens: int | None = None


class ChatOrchestrator(Protocol):
    async def run(self, client: ProviderClient, call: ProviderCall) -> ProviderResponse:
        """Execute a prepared call against the active client."""
