"""Provider capability registry."""

from dataclasses import dataclass

from .constants import DEFAULT_LOCAL_BASE_URL, GENERATIVE_MODEL_CANDIDATES, ProviderName


@dataclass(frozen=True)
class ProviderCapability:
    provider: ProviderName
    label: str
    supports_attachments: bool
    model_candidates: tuple[str, ...] = ()
    default_endpoint: str | None = None


PROVIDER_CAPABILITIES: dict[ProviderName, ProviderCapability] = {
    "cloud_chat": ProviderCapability(
        provider="cloud_chat",
        label="Azure OpenAI",
        supports_attachments=True,
    ),
    "cloud_generative": ProviderCapability(
        provider="cloud_generative",
        label="Gemini",
        supports_attachments=True,
        model_candidates=GENERATIVE_MODEL_CANDIDATES,
        default_endpoint="https://generativelanguage.googleapis.com",
    ),
    # Single-shot generate endpoint: no images, no history.
    "local": ProviderCapability(
        provider="local",
        label="Ollama",
        supports_attachments=False,
        default_endpoint=DEFAULT_LOCAL_BASE_URL,
    ),
}
