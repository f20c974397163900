"""Provider client interface and shared response model."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from wingman_api.constants import ProviderName
from wingman_api.schemas import Attachment, ConversationTurn


@dataclass(frozen=True)
class ProviderResponse:
    message: str
    model: str
    duration_seconds: float


class ProviderClient(Protocol):
    provider: ProviderName
    supports_attachments: bool

    @property
    def model(self) -> str: ...

    @property
    def endpoint(self) -> str: ...

    async def send_raw(
        self,
        system_prompt: str | None,
        messages: Sequence[ConversationTurn],
        attachments: Sequence[Attachment] = (),
        max_output_tokens: int | None = None,
    ) -> ProviderResponse:
        """Send a normalized conversation to the backend and return its text."""
        ...
