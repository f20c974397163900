"""Provider client construction."""

from wingman_api.schemas import (
    CloudChatConfig,
    CloudGenerativeConfig,
    LocalConfig,
    ProviderConfig,
)

from .base import ProviderClient
from .cloud_chat_provider import CloudChatProvider
from .cloud_generative_provider import CloudGenerativeProvider
from .local_provider import LocalProvider


def build_provider_client(config: ProviderConfig) -> ProviderClient:
    """Build the client implied by a validated config; no network call is made."""
    if isinstance(config, CloudChatConfig):
        return CloudChatProvider(config)
    if isinstance(config, CloudGenerativeConfig):
        return CloudGenerativeProvider(config)
    if isinstance(config, LocalConfig):
        return LocalProvider(config)
    raise TypeError(f"Unsupported provider config: {type(config).__name__}")
