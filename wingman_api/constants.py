"""Shared constants and literal types for the assistant core."""

import re
from typing import Literal

LANGSMITH_PROJECT = "wingman-assistant"
AZURE_OPENAI_API_VERSION = "2024-08-01-preview"
DEFAULT_LOCAL_BASE_URL = "http://localhost:11434"
DEFAULT_LOCAL_MODEL = "llama3.2"
GENERATIVE_MODEL_CANDIDATES = ("gemini-2.0-flash", "gemini-1.5-flash", "gemini-pro")
IMAGE_ATTACHMENT_MIME_TYPES = {"image/png", "image/jpeg", "image/webp", "image/gif"}
CAPTURE_MIME_TYPE = "image/png"
DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[-.\w+/]+);base64,(?P<payload>[A-Za-z0-9+/=]*)$")
DEFAULT_TEMPERATURE = 0.7
LOCAL_TOP_P = 0.9
CHAT_MAX_OUTPUT_TOKENS = 2000
GENERATIVE_MAX_OUTPUT_TOKENS = 2048
IMAGE_ANALYSIS_MAX_OUTPUT_TOKENS = 1500
CONNECTION_TEST_MAX_OUTPUT_TOKENS = 10
CONNECTION_TEST_PROMPT = "Hello"
SCREENSHOT_ONLY_MESSAGE = "I've taken a screenshot. Please help me."
MAX_CAPTURES = 5

ProviderName = Literal["cloud_chat", "cloud_generative", "local"]
CaptureView = Literal["primary", "extra"]
