"""Gemini client with per-call chat sessions and ordered model-candidate fallback."""

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from langchain_core.runnables import Runnable, RunnableLambda

from wingman_api.constants import (
    DEFAULT_TEMPERATURE,
    GENERATIVE_MAX_OUTPUT_TOKENS,
    ProviderName,
)
from wingman_api.errors import BackendUnavailableError, NoCompatibleModelError
from wingman_api.infra.runtime import build_genai_client, invoke_gemini_chat
from wingman_api.message_mappers import (
    build_generative_history,
    build_generative_parts,
    split_last_user_turn,
)
from wingman_api.model_registry import PROVIDER_CAPABILITIES
from wingman_api.schemas import Attachment, CloudGenerativeConfig, ConversationTurn

from .base import ProviderResponse

logger = logging.getLogger(__name__)

GeminiInvoker = Callable[
    [genai.Client, str, list[types.Content], list[types.Part], types.GenerateContentConfig],
    Awaitable[Any],
]

# Status codes meaning "this model name is not served", as opposed to an outage.
_MODEL_REJECTED_CODES = {404}


def _is_model_rejection(exc: Exception) -> bool:
    return isinstance(exc, genai_errors.ClientError) and exc.code in _MODEL_REJECTED_CODES


class CloudGenerativeProvider:
    provider: ProviderName = "cloud_generative"
    supports_attachments = PROVIDER_CAPABILITIES["cloud_generative"].supports_attachments

    def __init__(
        self,
        config: CloudGenerativeConfig,
        get_client: Callable[[CloudGenerativeConfig], genai.Client] = build_genai_client,
        invoke: GeminiInvoker = invoke_gemini_chat,
        model_candidates: Sequence[str] | None = None,
    ) -> None:
        capability = PROVIDER_CAPABILITIES[self.provider]
        self._client = get_client(config)
        self._invoke = invoke
        self._label = capability.label
        self._endpoint = capability.default_endpoint or ""
        self._model_candidates = tuple(model_candidates or capability.model_candidates)
        self._last_model = self._model_candidates[0]
        self._runnable: Runnable[dict[str, Any], Any] = RunnableLambda(
            self._send_message
        ).with_config({"run_name": "wingman_cloud_generative_chat"})

    @property
    def model(self) -> str:
        return self._last_model

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def _send_message(self, params: dict[str, Any]) -> Any:
        return await self._invoke(
            self._client,
            params["model"],
            params["history"],
            params["parts"],
            params["config"],
        )

    async def send_raw(
        self,
        system_prompt: str | None,
        messages: Sequence[ConversationTurn],
        attachments: Sequence[Attachment] = (),
        max_output_tokens: int | None = None,
    ) -> ProviderResponse:
        prior_turns, text = split_last_user_turn(messages)
        parts = build_generative_parts(text, attachments)
        generation_config = types.GenerateContentConfig(
            temperature=DEFAULT_TEMPERATURE,
            max_output_tokens=max_output_tokens or GENERATIVE_MAX_OUTPUT_TOKENS,
            system_instruction=system_prompt or None,
        )

        failures: list[tuple[str, str]] = []
        for model_name in self._model_candidates:
            start = time.time()
            try:
                # A fresh history list per attempt: the session appends to it.
                response = await self._runnable.ainvoke(
                    {
                        "model": model_name,
                        "history": build_generative_history(prior_turns),
                        "parts": parts,
                        "config": generation_config,
                    },
                    config={
                        "run_name": "wingman_provider_request",
                        "tags": ["wingman", self.provider, model_name],
                        "metadata": {
                            "message_count": len(messages),
                            "attachment_count": len(attachments),
                        },
                    },
                )
            except (genai_errors.APIError, httpx.HTTPError) as exc:
                if _is_model_rejection(exc):
                    logger.warning(
                        "Gemini model not available, trying next candidate",
                        extra={"provider": self.provider, "model": model_name},
                    )
                    failures.append((model_name, str(exc)))
                    continue
                logger.exception(
                    "Cloud generative request failed",
                    extra={"provider": self.provider, "model": model_name},
                )
                raise BackendUnavailableError(self._label, self._endpoint, str(exc)) from exc

            duration_ms = int((time.time() - start) * 1000)
            content = response.text or ""
            self._last_model = model_name
            logger.info(
                "Chat response generated",
                extra={
                    "provider": self.provider,
                    "cloud_generative_duration_ms": duration_ms,
                    "model": model_name,
                    "rejected_candidates": len(failures),
                    "response_length": len(content),
                },
            )
            return ProviderResponse(
                message=content,
                model=model_name,
                duration_seconds=round(duration_ms / 1000, 2),
            )

        raise NoCompatibleModelError(self._label, failures)
