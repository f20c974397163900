"""Resolve the configured local model name against what the local server hosts."""

import logging
from dataclasses import dataclass
from collections.abc import Sequence
from typing import Any, Protocol

from .constants import CONNECTION_TEST_PROMPT
from .schemas import ConversationTurn

logger = logging.getLogger(__name__)


class LocalModelClient(Protocol):
    model: str

    async def list_models(self) -> list[str]: ...

    async def send_raw(
        self, system_prompt: str | None, messages: Sequence[ConversationTurn]
    ) -> Any: ...


@dataclass(frozen=True)
class ResolutionResult:
    model: str
    substituted: bool
    verified: bool


class LocalModelResolver:
    """Keep the local client pointed at a model the server actually hosts.

    The configured name is kept when the server lists it; otherwise the first
    listed model is adopted. A one-word canary call then checks the model
    answers. When the canary fails, the list is fetched once more and its
    first entry adopted. Nothing raises out of :meth:`resolve`; callers see
    only the effective model name and whether the canary succeeded.
    """

    def __init__(self, client: LocalModelClient) -> None:
        self._client = client

    async def available_models(self) -> list[str]:
        try:
            return await self._client.list_models()
        except Exception:
            logger.warning("Could not list local models", exc_info=True)
            return []

    async def resolve(self) -> ResolutionResult:
        requested = self._client.model
        models = await self.available_models()
        if not models:
            logger.warning("No local models found", extra={"model": requested})
            return ResolutionResult(model=requested, substituted=False, verified=False)

        if requested not in models:
            self._client.model = models[0]
            logger.info(
                "Auto-selected first available local model",
                extra={"requested_model": requested, "model": self._client.model},
            )

        try:
            await self._client.send_raw(
                None, [ConversationTurn(role="user", text=CONNECTION_TEST_PROMPT)]
            )
        except Exception:
            logger.warning(
                "Local model canary call failed",
                extra={"model": self._client.model},
                exc_info=True,
            )
            fallback_models = await self.available_models()
            if fallback_models:
                self._client.model = fallback_models[0]
                logger.info("Fell back to local model", extra={"model": self._client.model})
            return ResolutionResult(
                model=self._client.model,
                substituted=self._client.model != requested,
                verified=False,
            )

        logger.info("Local model initialized", extra={"model": self._client.model})
        return ResolutionResult(
            model=self._client.model,
            substituted=self._client.model != requested,
            verified=True,
        )
