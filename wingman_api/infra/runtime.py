"""Runtime infrastructure helpers for startup config, tracing, and backend SDK clients."""

import logging
import os
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

import httpx
from google import genai
from google.genai import types
from langsmith import traceable
from langsmith.run_trees import get_cached_client
from openai import AsyncAzureOpenAI
from pydantic import ValidationError

from wingman_api.constants import AZURE_OPENAI_API_VERSION, LANGSMITH_PROJECT
from wingman_api.schemas import (
    PROVIDER_CONFIG_ADAPTER,
    CloudChatConfig,
    CloudGenerativeConfig,
    LocalConfig,
    ProviderConfig,
)

logger = logging.getLogger(__name__)

_PROVIDER_ENV_KEYS: dict[str, dict[str, str]] = {
    "cloud_chat": {
        "api_key": "AZURE_OPENAI_API_KEY",
        "endpoint": "AZURE_OPENAI_ENDPOINT",
        "deployment": "AZURE_OPENAI_DEPLOYMENT",
    },
    "cloud_generative": {"api_key": "GEMINI_API_KEY"},
    "local": {"base_url": "OLLAMA_URL", "model": "OLLAMA_MODEL"},
}


def load_startup_config(environ: Mapping[str, str] | None = None) -> ProviderConfig | None:
    """Build the persisted provider selection handed to the router at startup."""
    environ = os.environ if environ is None else environ
    provider = environ.get("WINGMAN_PROVIDER", "").strip().lower()
    if not provider:
        logger.info("No provider selected at startup; waiting for configuration")
        return None
    env_keys = _PROVIDER_ENV_KEYS.get(provider)
    if env_keys is None:
        logger.warning("Ignoring unknown startup provider", extra={"provider": provider})
        return None

    values: dict[str, Any] = {"provider": provider}
    for field_name, env_key in env_keys.items():
        if env_key in environ:
            values[field_name] = environ[env_key]
    try:
        return PROVIDER_CONFIG_ADAPTER.validate_python(values)
    except ValidationError:
        logger.warning(
            "Startup provider configuration is invalid",
            extra={"provider": provider},
            exc_info=True,
        )
        return None


def _configure_langsmith(langsmith_api_key: str | None) -> None:
    if not langsmith_api_key:
        os.environ.pop("LANGSMITH_TRACING", None)
        logger.info("LangSmith tracing disabled because API key is unavailable")
        return

    os.environ["LANGSMITH_TRACING"] = "true"
    os.environ.setdefault("LANGSMITH_PROJECT", LANGSMITH_PROJECT)


@lru_cache(maxsize=1)
def ensure_langsmith_configured() -> None:
    """Configure LangSmith environment variables (called once via lru_cache)."""
    _configure_langsmith(os.environ.get("LANGSMITH_API_KEY"))


def flush_langsmith_traces() -> None:
    if os.environ.get("LANGSMITH_TRACING", "").lower() != "true":
        return
    if not os.environ.get("LANGSMITH_API_KEY"):
        return
    try:
        get_cached_client().flush()
    except Exception:
        logger.warning("Failed to flush LangSmith traces", exc_info=True)


def build_azure_openai_client(config: CloudChatConfig) -> AsyncAzureOpenAI:
    """Create an Azure OpenAI client; construction performs no network call."""
    return AsyncAzureOpenAI(
        api_key=config.api_key,
        azure_endpoint=config.endpoint,
        api_version=AZURE_OPENAI_API_VERSION,
    )


def build_genai_client(config: CloudGenerativeConfig) -> genai.Client:
    return genai.Client(api_key=config.api_key)


def build_ollama_http_client(config: LocalConfig) -> httpx.AsyncClient:
    # In-flight local calls run to completion: no client-side timeout.
    return httpx.AsyncClient(base_url=config.base_url.rstrip("/"), timeout=None)


@traceable(run_type="llm", name="azure_openai.chat.completions.create")
async def invoke_azure_chat_completions(client: AsyncAzureOpenAI, params: dict[str, Any]) -> Any:
    return await client.chat.completions.create(**params)


@traceable(run_type="llm", name="gemini.chats.send_message")
async def invoke_gemini_chat(
    client: genai.Client,
    model: str,
    history: list[types.Content],
    parts: list[types.Part],
    config: types.GenerateContentConfig,
) -> Any:
    chat = client.aio.chats.create(model=model, history=history, config=config)
    return await chat.send_message(parts)


@traceable(run_type="llm", name="ollama.generate")
async def invoke_ollama_generate(client: httpx.AsyncClient, body: dict[str, Any]) -> httpx.Response:
    return await client.post("/api/generate", json=body)
