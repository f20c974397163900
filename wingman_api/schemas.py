"""Pydantic schemas for provider configuration, conversations and the command API."""

from typing import Annotated, Any, ClassVar, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    TypeAdapter,
    field_validator,
    model_validator,
)

from .constants import (
    DEFAULT_LOCAL_BASE_URL,
    DEFAULT_LOCAL_MODEL,
    IMAGE_ATTACHMENT_MIME_TYPES,
    CaptureView,
    ProviderName,
)
from .data_urls import parse_data_url
from .errors import ValidationFailedError
from .model_registry import PROVIDER_CAPABILITIES


class _ProviderConfigBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    provider: ProviderName
    required_fields: ClassVar[tuple[str, ...]] = ()

    def missing_field(self) -> str | None:
        """Return the first required field that is absent or blank."""
        for name in self.required_fields:
            value = getattr(self, name)
            if value is None or not str(value).strip():
                return name
        return None

    def require_fields(self) -> None:
        missing = self.missing_field()
        if missing is not None:
            raise ValidationFailedError(
                missing,
                f"{PROVIDER_CAPABILITIES[self.provider].label} configuration "
                f"is missing required field: {missing}",
            )


class CloudChatConfig(_ProviderConfigBase):
    required_fields: ClassVar[tuple[str, ...]] = ("api_key", "endpoint", "deployment")

    provider: Literal["cloud_chat"] = "cloud_chat"
    api_key: str = Field(default="", alias="apiKey")
    endpoint: str = ""
    deployment: str = ""


class CloudGenerativeConfig(_ProviderConfigBase):
    required_fields: ClassVar[tuple[str, ...]] = ("api_key",)

    provider: Literal["cloud_generative"] = "cloud_generative"
    api_key: str = Field(default="", alias="apiKey")


class LocalConfig(_ProviderConfigBase):
    required_fields: ClassVar[tuple[str, ...]] = ("base_url", "model")

    provider: Literal["local"] = "local"
    base_url: str = Field(default=DEFAULT_LOCAL_BASE_URL, alias="baseUrl")
    model: str = DEFAULT_LOCAL_MODEL


ProviderConfig = Annotated[
    CloudChatConfig | CloudGenerativeConfig | LocalConfig,
    Field(discriminator="provider"),
]
PROVIDER_CONFIG_ADAPTER: TypeAdapter[ProviderConfig] = TypeAdapter(ProviderConfig)


class ProviderConfigBody(RootModel[ProviderConfig]):
    pass


class Attachment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    mime_type: str = Field(alias="mimeType")
    data_url: str = Field(alias="dataUrl")

    @field_validator("mime_type")
    @classmethod
    def validate_mime_type(cls, mime_type: str) -> str:
        if mime_type not in IMAGE_ATTACHMENT_MIME_TYPES:
            raise ValueError(f"Unsupported attachment mimeType: {mime_type}")
        return mime_type

    @model_validator(mode="after")
    def validate_data_url(self) -> "Attachment":
        data_url_mime, _ = parse_data_url(self.data_url)
        if data_url_mime != self.mime_type:
            raise ValueError("mimeType must match dataUrl content type")
        return self

    def payload(self) -> str:
        _, payload = parse_data_url(self.data_url)
        return payload


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    text: str


class StructuredExtraction(BaseModel):
    model_config = ConfigDict(extra="allow")

    problem_statement: Any = ""
    context: Any = ""
    suggested_responses: Any = Field(default_factory=list)
    reasoning: Any = ""


class Solution(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: Any = ""
    problem_statement: Any = ""
    context: Any = ""
    suggested_responses: Any = Field(default_factory=list)
    reasoning: Any = ""


class ImageAnalysis(BaseModel):
    text: str
    timestamp: int


class ConfigureResult(BaseModel):
    success: bool
    error: str | None = None
    field: str | None = None


class ConnectionStatus(BaseModel):
    ok: bool
    reason: str | None = None


class ProviderStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: ProviderName | None
    model: str | None
    configured: bool
    verified: bool | None = None


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    history: list[ConversationTurn] = Field(default_factory=list)
    attachment: Attachment | None = None
    screenshot_path: str | None = Field(default=None, alias="screenshotPath")


class ChatResponse(BaseModel):
    message: str


class ExtractRequest(BaseModel):
    context: str = ""


class SolutionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    problem_info: dict[str, Any] = Field(alias="problemInfo")


class DebugRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    problem_info: dict[str, Any] = Field(alias="problemInfo")
    current_answer: str = Field(alias="currentAnswer")


class AnalyzeImageRequest(BaseModel):
    path: str


class SwitchProviderRequest(BaseModel):
    provider: ProviderName
    credentials: dict[str, str] | None = None


class CaptureRequest(BaseModel):
    path: str
    view: CaptureView = "primary"
    preview: str | None = None


class CaptureItem(BaseModel):
    path: str
    preview: str


class RemoveResult(BaseModel):
    success: bool
    error: str | None = None
