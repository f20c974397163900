"""Domain-level exceptions for the assistant core.

Every error carries a human-readable message meant to be shown to the user
verbatim.
"""


class WingmanError(Exception):
    """Base exception for all assistant core errors."""


class BadRequestError(WingmanError, ValueError):
    """Raised for client-side invalid requests at the domain layer."""


class UnconfiguredError(WingmanError):
    """Raised when no valid provider is active."""

    def __init__(self, message: str = "No LLM provider configured") -> None:
        super().__init__(message)


class ValidationFailedError(WingmanError):
    """A provider configuration is missing a required field."""

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"Missing required configuration field: {field}")
        self.field = field


class BackendUnavailableError(WingmanError):
    """A backend could not be reached or answered with a failure."""

    def __init__(self, provider: str, endpoint: str, message: str) -> None:
        super().__init__(f"{provider} backend at {endpoint} failed: {message}")
        self.provider = provider
        self.endpoint = endpoint


class MalformedResponseError(WingmanError):
    """Sanitized provider text did not parse as the expected shape."""


class NoCompatibleModelError(WingmanError):
    """Every candidate model name was rejected by the backend."""

    def __init__(self, provider: str, failures: list[tuple[str, str]]) -> None:
        details = "; ".join(f"{model}: {reason}" for model, reason in failures)
        super().__init__(f"No compatible {provider} model found ({details})")
        self.provider = provider
        self.failures = failures
