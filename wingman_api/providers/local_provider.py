"""Ollama client: single-shot generate calls against a locally reachable server."""

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import httpx
from langchain_core.runnables import Runnable, RunnableLambda

from wingman_api.constants import DEFAULT_TEMPERATURE, LOCAL_TOP_P, ProviderName
from wingman_api.errors import BackendUnavailableError
from wingman_api.infra.runtime import build_ollama_http_client, invoke_ollama_generate
from wingman_api.message_mappers import split_last_user_turn
from wingman_api.model_registry import PROVIDER_CAPABILITIES
from wingman_api.schemas import Attachment, ConversationTurn, LocalConfig

from .base import ProviderResponse

logger = logging.getLogger(__name__)


class LocalProvider:
    """Text-only client for the Ollama HTTP API.

    History is not forwarded: ``/api/generate`` is a single-shot endpoint, so
    only the final user turn and the system prompt reach the model. The model
    name is mutable so that the local-model resolver can swap it after
    checking what the server hosts.
    """

    provider: ProviderName = "local"
    supports_attachments = PROVIDER_CAPABILITIES["local"].supports_attachments

    def __init__(
        self,
        config: LocalConfig,
        get_client: Callable[[LocalConfig], httpx.AsyncClient] = build_ollama_http_client,
        invoke: Callable[[httpx.AsyncClient, dict[str, Any]], Awaitable[httpx.Response]] = (
            invoke_ollama_generate
        ),
    ) -> None:
        self.model = config.model
        self._base_url = config.base_url.rstrip("/")
        self._client = get_client(config)
        self._invoke = invoke
        self._label = PROVIDER_CAPABILITIES[self.provider].label
        self._runnable: Runnable[dict[str, Any], httpx.Response] = RunnableLambda(
            self._generate
        ).with_config({"run_name": "wingman_local_generate"})

    @property
    def endpoint(self) -> str:
        return self._base_url

    def _unavailable(self, reason: str) -> BackendUnavailableError:
        return BackendUnavailableError(
            self._label,
            self._base_url,
            f"{reason}. Make sure Ollama is running on {self._base_url}",
        )

    async def _generate(self, body: dict[str, Any]) -> httpx.Response:
        return await self._invoke(self._client, body)

    async def list_models(self) -> list[str]:
        """Return the model names the server reports, in server order."""
        try:
            response = await self._client.get("/api/tags")
        except httpx.HTTPError as exc:
            raise self._unavailable(f"Failed to fetch models: {exc}") from exc
        if not response.is_success:
            raise self._unavailable(f"Failed to fetch models: HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise self._unavailable("Ollama returned a non-JSON model list") from exc
        models = payload.get("models") if isinstance(payload, dict) else None
        if not isinstance(models, list):
            return []
        return [
            item["name"]
            for item in models
            if isinstance(item, dict) and isinstance(item.get("name"), str)
        ]

    async def is_available(self) -> bool:
        try:
            response = await self._client.get("/api/tags")
        except httpx.HTTPError:
            logger.warning(
                "Local server is unreachable",
                extra={"provider": self.provider, "endpoint": self._base_url},
                exc_info=True,
            )
            return False
        return response.is_success

    async def send_raw(
        self,
        system_prompt: str | None,
        messages: Sequence[ConversationTurn],
        attachments: Sequence[Attachment] = (),
        max_output_tokens: int | None = None,
    ) -> ProviderResponse:
        prior_turns, prompt = split_last_user_turn(messages)
        if prior_turns:
            logger.debug(
                "Local backend ignores conversation history",
                extra={"provider": self.provider, "dropped_turns": len(prior_turns)},
            )
        if attachments:
            logger.warning(
                "Local backend cannot read attachments; sending text only",
                extra={"provider": self.provider, "attachment_count": len(attachments)},
            )

        body: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": DEFAULT_TEMPERATURE, "top_p": LOCAL_TOP_P},
        }
        if system_prompt:
            body["system"] = system_prompt

        start = time.time()
        try:
            response = await self._runnable.ainvoke(
                body,
                config={
                    "run_name": "wingman_provider_request",
                    "tags": ["wingman", self.provider, self.model],
                    "metadata": {"message_count": len(messages)},
                },
            )
        except httpx.HTTPError as exc:
            logger.exception(
                "Local generate request failed",
                extra={"provider": self.provider, "endpoint": self._base_url},
            )
            raise self._unavailable(f"Failed to connect to Ollama: {exc}") from exc
        if not response.is_success:
            logger.error(
                "Local generate request returned an error status",
                extra={
                    "provider": self.provider,
                    "endpoint": self._base_url,
                    "status_code": response.status_code,
                },
            )
            raise self._unavailable(
                f"Ollama API error: {response.status_code} {response.reason_phrase}"
            )
        duration_ms = int((time.time() - start) * 1000)

        try:
            payload = response.json()
        except ValueError as exc:
            raise self._unavailable("Ollama returned a non-JSON reply") from exc
        content = (payload.get("response") if isinstance(payload, dict) else None) or ""
        logger.info(
            "Chat response generated",
            extra={
                "provider": self.provider,
                "local_duration_ms": duration_ms,
                "model": self.model,
                "response_length": len(content),
            },
        )
        return ProviderResponse(
            message=content,
            model=self.model,
            duration_seconds=round(duration_ms / 1000, 2),
        )
