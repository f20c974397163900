"""Application service that owns the active provider and dispatches every request to it."""

import asyncio
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from wingman_api.constants import (
    CHAT_MAX_OUTPUT_TOKENS,
    CONNECTION_TEST_MAX_OUTPUT_TOKENS,
    CONNECTION_TEST_PROMPT,
    IMAGE_ANALYSIS_MAX_OUTPUT_TOKENS,
    SCREENSHOT_ONLY_MESSAGE,
    ProviderName,
)
from wingman_api.errors import (
    MalformedResponseError,
    UnconfiguredError,
    ValidationFailedError,
    WingmanError,
)
from wingman_api.local_models import LocalModelResolver, ResolutionResult
from wingman_api.model_registry import PROVIDER_CAPABILITIES, ProviderCapability
from wingman_api.orchestration.base import ChatOrchestrator, ProviderCall
from wingman_api.orchestration.direct import DirectChatOrchestrator
from wingman_api.prompts import (
    IMAGE_ANALYSIS_PROMPT,
    SYSTEM_PROMPT,
    attachment_dropped_note,
    build_debug_prompt,
    build_extraction_prompt,
    build_solution_prompt,
)
from wingman_api.providers.base import ProviderClient, ProviderResponse
from wingman_api.providers.factory import build_provider_client
from wingman_api.sanitizer import parse_json_object
from wingman_api.schemas import (
    PROVIDER_CONFIG_ADAPTER,
    Attachment,
    ConfigureResult,
    ConnectionStatus,
    ConversationTurn,
    ImageAnalysis,
    ProviderConfig,
    ProviderStatus,
    Solution,
    StructuredExtraction,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActiveProvider:
    """Immutable snapshot of the selected backend; replaced whole on every swap."""

    config: ProviderConfig
    client: ProviderClient
    capability: ProviderCapability
    resolution: ResolutionResult | None = None


class ProviderRouter:
    """Single authority for which backend answers a request.

    The router keeps no conversation state: callers pass the full history on
    every call. It never retries and never falls back to another provider.
    """

    def __init__(
        self,
        orchestrator: ChatOrchestrator | None = None,
        client_factory: Callable[[ProviderConfig], ProviderClient] = build_provider_client,
        resolver_factory: Callable[[Any], LocalModelResolver] = LocalModelResolver,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self._orchestrator = orchestrator or DirectChatOrchestrator()
        self._client_factory = client_factory
        self._resolver_factory = resolver_factory
        self._system_prompt = system_prompt
        self._active: ActiveProvider | None = None
        self._swap_lock = asyncio.Lock()
        self._generation = 0

    @property
    def active(self) -> ActiveProvider | None:
        return self._active

    def _require_active(self) -> ActiveProvider:
        active = self._active
        if active is None:
            raise UnconfiguredError()
        return active

    async def configure(self, config: ProviderConfig) -> ConfigureResult:
        capability = PROVIDER_CAPABILITIES[config.provider]
        try:
            config.require_fields()
        except ValidationFailedError as exc:
            logger.warning(
                "Provider configuration rejected",
                extra={"provider": config.provider, "field": exc.field},
            )
            return ConfigureResult(success=False, error=str(exc), field=exc.field)

        try:
            client = self._client_factory(config)
        except Exception as exc:
            logger.exception(
                "Provider client construction failed", extra={"provider": config.provider}
            )
            return ConfigureResult(
                success=False, error=f"Failed to configure {capability.label}: {exc}"
            )
        self._generation += 1
        generation = self._generation

        # The new client stays private until the swap, so resolution runs unlocked.
        resolution = None
        if config.provider == "local":
            resolution = await self._resolver_factory(client).resolve()
            config = config.model_copy(update={"model": resolution.model})

        async with self._swap_lock:
            if generation != self._generation:
                logger.warning(
                    "Provider configuration superseded",
                    extra={"provider": config.provider},
                )
                return ConfigureResult(
                    success=False,
                    error=f"{capability.label} configuration was superseded by a newer one",
                )
            # Single assignment: readers see either the old snapshot or the new one.
            self._active = ActiveProvider(
                config=config,
                client=client,
                capability=capability,
                resolution=resolution,
            )

        logger.info(
            "Provider configured",
            extra={"provider": config.provider, "model": client.model},
        )
        return ConfigureResult(success=True)

    async def switch_provider(
        self,
        provider: ProviderName,
        credentials: Mapping[str, str] | None = None,
    ) -> ConfigureResult:
        """Switch the live provider; a failed switch leaves the current one active."""
        values: dict[str, Any] = {**(credentials or {}), "provider": provider}
        try:
            config = PROVIDER_CONFIG_ADAPTER.validate_python(values)
        except ValidationError as exc:
            logger.warning("Provider switch rejected", extra={"provider": provider})
            return ConfigureResult(success=False, error=f"Invalid provider settings: {exc}")
        return await self.configure(config)

    async def _dispatch(self, active: ActiveProvider, call: ProviderCall) -> ProviderResponse:
        logger.info(
            "Provider request dispatched",
            extra={
                "operation": call.operation,
                "provider": active.config.provider,
                "message_count": len(call.messages),
                "attachment_count": len(call.attachments),
            },
        )
        return await self._orchestrator.run(active.client, call)

    def _usable_attachments(
        self, active: ActiveProvider, attachments: Sequence[Attachment], operation: str
    ) -> tuple[tuple[Attachment, ...], bool]:
        if not attachments or active.client.supports_attachments:
            return tuple(attachments), False
        logger.warning(
            "Dropping attachments for text-only provider",
            extra={
                "operation": operation,
                "provider": active.config.provider,
                "attachment_count": len(attachments),
            },
        )
        return (), True

    async def send_conversation(
        self,
        message: str,
        history: Sequence[ConversationTurn] = (),
        attachment: Attachment | None = None,
    ) -> str:
        active = self._require_active()
        attachments, dropped = self._usable_attachments(
            active, [attachment] if attachment else [], "conversation"
        )
        if attachment is not None and not message.strip():
            message = SCREENSHOT_ONLY_MESSAGE

        call = ProviderCall(
            operation="conversation",
            system_prompt=self._system_prompt,
            messages=(*history, ConversationTurn(role="user", text=message)),
            attachments=attachments,
            max_output_tokens=CHAT_MAX_OUTPUT_TOKENS,
        )
        response = await self._dispatch(active, call)
        if dropped:
            return response.message + attachment_dropped_note(active.capability.label)
        return response.message

    async def _request_json(
        self,
        operation: str,
        prompt: str,
        attachments: Sequence[Attachment],
    ) -> dict[str, Any]:
        active = self._require_active()
        usable, _ = self._usable_attachments(active, attachments, operation)
        call = ProviderCall(
            operation=operation,
            system_prompt=self._system_prompt,
            messages=(ConversationTurn(role="user", text=prompt),),
            attachments=usable,
            max_output_tokens=CHAT_MAX_OUTPUT_TOKENS,
        )
        response = await self._dispatch(active, call)
        try:
            return parse_json_object(response.message)
        except MalformedResponseError:
            logger.warning(
                "Provider returned malformed JSON",
                extra={
                    "operation": operation,
                    "provider": active.config.provider,
                    "response_length": len(response.message),
                },
            )
            raise

    async def extract_structured(
        self,
        prompt_context: str,
        attachments: Sequence[Attachment] = (),
    ) -> StructuredExtraction:
        payload = await self._request_json(
            "extract_structured", build_extraction_prompt(prompt_context), attachments
        )
        return StructuredExtraction.model_validate(payload)

    @staticmethod
    def _solution_from(payload: dict[str, Any]) -> Solution:
        solution = payload.get("solution", payload)
        if not isinstance(solution, dict):
            raise MalformedResponseError("Provider reply has no solution object")
        return Solution.model_validate(solution)

    async def generate_solution(self, problem_info: dict[str, Any]) -> Solution:
        payload = await self._request_json(
            "generate_solution", build_solution_prompt(problem_info), ()
        )
        return self._solution_from(payload)

    async def debug_solution(
        self,
        problem_info: dict[str, Any],
        current_answer: str,
        attachments: Sequence[Attachment] = (),
    ) -> Solution:
        payload = await self._request_json(
            "debug_solution", build_debug_prompt(problem_info, current_answer), attachments
        )
        return self._solution_from(payload)

    async def analyze_image(self, attachment: Attachment) -> ImageAnalysis:
        active = self._require_active()
        attachments, dropped = self._usable_attachments(active, [attachment], "analyze_image")
        call = ProviderCall(
            operation="analyze_image",
            system_prompt=self._system_prompt,
            messages=(ConversationTurn(role="user", text=IMAGE_ANALYSIS_PROMPT),),
            attachments=attachments,
            max_output_tokens=IMAGE_ANALYSIS_MAX_OUTPUT_TOKENS,
        )
        response = await self._dispatch(active, call)
        text = response.message
        if dropped:
            text += attachment_dropped_note(active.capability.label)
        return ImageAnalysis(text=text, timestamp=int(time.time() * 1000))

    async def test_connection(self) -> ConnectionStatus:
        """Round-trip the smallest prompt through the active backend; never raises."""
        active = self._active
        if active is None:
            return ConnectionStatus(ok=False, reason=str(UnconfiguredError()))

        label = active.capability.label
        if active.config.provider == "local" and not await active.client.is_available():
            return ConnectionStatus(
                ok=False, reason=f"{label} not available at {active.client.endpoint}"
            )

        call = ProviderCall(
            operation="test_connection",
            system_prompt=None,
            messages=(ConversationTurn(role="user", text=CONNECTION_TEST_PROMPT),),
            max_output_tokens=CONNECTION_TEST_MAX_OUTPUT_TOKENS,
        )
        try:
            response = await self._dispatch(active, call)
        except WingmanError as exc:
            logger.warning(
                "Connection test failed",
                extra={"provider": active.config.provider},
                exc_info=True,
            )
            return ConnectionStatus(ok=False, reason=str(exc))
        if not response.message.strip():
            return ConnectionStatus(ok=False, reason=f"Empty response from {label}")
        return ConnectionStatus(ok=True)

    async def list_local_models(self) -> list[str]:
        active = self._active
        if active is None or active.config.provider != "local":
            return []
        return await self._resolver_factory(active.client).available_models()

    def status(self) -> ProviderStatus:
        active = self._active
        if active is None:
            return ProviderStatus(provider=None, model=None, configured=False)
        return ProviderStatus(
            provider=active.config.provider,
            model=active.client.model,
            configured=True,
            verified=active.resolution.verified if active.resolution else None,
        )
