"""Azure OpenAI chat-completions client."""

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from langchain_core.runnables import Runnable, RunnableLambda
from openai import AsyncAzureOpenAI, OpenAIError

from wingman_api.constants import CHAT_MAX_OUTPUT_TOKENS, ProviderName
from wingman_api.errors import BackendUnavailableError
from wingman_api.infra.runtime import build_azure_openai_client, invoke_azure_chat_completions
from wingman_api.message_mappers import build_chat_messages
from wingman_api.model_registry import PROVIDER_CAPABILITIES
from wingman_api.schemas import Attachment, CloudChatConfig, ConversationTurn

from .base import ProviderResponse

logger = logging.getLogger(__name__)


class CloudChatProvider:
    provider: ProviderName = "cloud_chat"
    supports_attachments = PROVIDER_CAPABILITIES["cloud_chat"].supports_attachments

    def __init__(
        self,
        config: CloudChatConfig,
        get_client: Callable[[CloudChatConfig], AsyncAzureOpenAI] = build_azure_openai_client,
        invoke: Callable[[AsyncAzureOpenAI, dict[str, Any]], Awaitable[Any]] = (
            invoke_azure_chat_completions
        ),
    ) -> None:
        self._config = config
        self._client = get_client(config)
        self._invoke = invoke
        self._runnable: Runnable[dict[str, Any], Any] = RunnableLambda(
            self._create_completion
        ).with_config({"run_name": "wingman_cloud_chat_completions"})

    @property
    def model(self) -> str:
        return self._config.deployment

    @property
    def endpoint(self) -> str:
        return self._config.endpoint

    async def _create_completion(self, params: dict[str, Any]) -> Any:
        return await self._invoke(self._client, params)

    async def send_raw(
        self,
        system_prompt: str | None,
        messages: Sequence[ConversationTurn],
        attachments: Sequence[Attachment] = (),
        max_output_tokens: int | None = None,
    ) -> ProviderResponse:
        request_params: dict[str, Any] = {
            "model": self._config.deployment,
            "messages": build_chat_messages(system_prompt, messages, attachments),
            "max_completion_tokens": max_output_tokens or CHAT_MAX_OUTPUT_TOKENS,
        }

        start = time.time()
        try:
            response = await self._runnable.ainvoke(
                request_params,
                config={
                    "run_name": "wingman_provider_request",
                    "tags": ["wingman", self.provider, self._config.deployment],
                    "metadata": {
                        "message_count": len(messages),
                        "attachment_count": len(attachments),
                    },
                },
            )
        except OpenAIError as exc:
            logger.exception(
                "Cloud chat request failed",
                extra={"provider": self.provider, "endpoint": self._config.endpoint},
            )
            raise BackendUnavailableError(
                PROVIDER_CAPABILITIES[self.provider].label, self._config.endpoint, str(exc)
            ) from exc
        duration_ms = int((time.time() - start) * 1000)

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        usage = response.usage

        logger.info(
            "Chat response generated",
            extra={
                "provider": self.provider,
                "cloud_chat_duration_ms": duration_ms,
                "model": response.model,
                "usage_prompt_tokens": usage.prompt_tokens if usage else None,
                "usage_completion_tokens": usage.completion_tokens if usage else None,
                "response_length": len(content),
                "response_id": response.id,
            },
        )
        return ProviderResponse(
            message=content,
            model=response.model or self._config.deployment,
            duration_seconds=round(duration_ms / 1000, 2),
        )
