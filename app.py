"""Local command API for the desktop assistant, backed by the provider router."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

import uvicorn
from fastapi import APIRouter, FastAPI, HTTPException

from wingman_api.captures import CaptureRecord, CaptureStore, attachment_from_path, load_capture
from wingman_api.constants import CaptureView
from wingman_api.errors import (
    BadRequestError,
    UnconfiguredError,
    WingmanError,
)
from wingman_api.infra.runtime import (
    ensure_langsmith_configured,
    flush_langsmith_traces,
    load_startup_config,
)
from wingman_api.schemas import (
    AnalyzeImageRequest,
    Attachment,
    CaptureItem,
    CaptureRequest,
    ChatRequest,
    ChatResponse,
    ConfigureResult,
    ConnectionStatus,
    DebugRequest,
    ExtractRequest,
    ImageAnalysis,
    ProviderConfigBody,
    ProviderStatus,
    RemoveResult,
    Solution,
    SolutionRequest,
    StructuredExtraction,
    SwitchProviderRequest,
)
from wingman_api.services.provider_router import ProviderRouter

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

router = APIRouter(prefix="/api")


@lru_cache(maxsize=1)
def get_provider_router() -> ProviderRouter:
    return ProviderRouter()


@lru_cache(maxsize=1)
def get_capture_store() -> CaptureStore:
    return CaptureStore()


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, UnconfiguredError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, BadRequestError):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))


async def _run_provider_operation(operation: str, coro):
    ensure_langsmith_configured()
    try:
        return await coro
    except WingmanError as exc:
        logger.warning("Provider operation failed", extra={"operation": operation}, exc_info=True)
        raise _to_http_error(exc) from exc
    except Exception as exc:
        logger.exception("Unexpected provider operation failure", extra={"operation": operation})
        raise _to_http_error(exc) from exc
    finally:
        flush_langsmith_traces()


async def _capture_attachments(view: CaptureView) -> list[Attachment]:
    records = get_capture_store().queue(view).list()
    if not records:
        raise HTTPException(status_code=400, detail="No screenshots to process")
    try:
        return [await attachment_from_path(record.path) for record in records]
    except BadRequestError as exc:
        raise _to_http_error(exc) from exc


@router.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/provider", response_model=ProviderStatus)
def provider_status() -> ProviderStatus:
    return get_provider_router().status()


@router.put("/provider", response_model=ConfigureResult)
async def configure_provider(request: ProviderConfigBody) -> ConfigureResult:
    return await _run_provider_operation(
        "configure", get_provider_router().configure(request.root)
    )


@router.post("/provider/switch", response_model=ConfigureResult)
async def switch_provider(request: SwitchProviderRequest) -> ConfigureResult:
    return await _run_provider_operation(
        "switch_provider",
        get_provider_router().switch_provider(request.provider, request.credentials),
    )


@router.post("/provider/test", response_model=ConnectionStatus)
async def check_connection() -> ConnectionStatus:
    return await _run_provider_operation(
        "test_connection", get_provider_router().test_connection()
    )


@router.get("/provider/local-models", response_model=list[str])
async def local_models() -> list[str]:
    return await _run_provider_operation(
        "list_local_models", get_provider_router().list_local_models()
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest) -> ChatResponse:
    """Send a message with caller-supplied history to the active provider."""
    logger.info("Chat request received", extra={"message_count": len(request.history) + 1})
    attachment = request.attachment
    if attachment is None and request.screenshot_path:
        try:
            attachment = await attachment_from_path(request.screenshot_path)
        except BadRequestError:
            # Attachments never fail a chat call.
            logger.warning(
                "Screenshot unreadable; continuing without it",
                extra={"capture_path": request.screenshot_path},
                exc_info=True,
            )
    message = await _run_provider_operation(
        "conversation",
        get_provider_router().send_conversation(request.message, request.history, attachment),
    )
    return ChatResponse(message=message)


@router.post("/extract", response_model=StructuredExtraction)
async def extract(request: ExtractRequest) -> StructuredExtraction:
    attachments = await _capture_attachments("primary")
    return await _run_provider_operation(
        "extract_structured",
        get_provider_router().extract_structured(request.context, attachments),
    )


@router.post("/solution", response_model=Solution)
async def solution(request: SolutionRequest) -> Solution:
    return await _run_provider_operation(
        "generate_solution", get_provider_router().generate_solution(request.problem_info)
    )


@router.post("/debug", response_model=Solution)
async def debug(request: DebugRequest) -> Solution:
    attachments = await _capture_attachments("extra")
    return await _run_provider_operation(
        "debug_solution",
        get_provider_router().debug_solution(
            request.problem_info, request.current_answer, attachments
        ),
    )


@router.post("/analyze-image", response_model=ImageAnalysis)
async def analyze_image(request: AnalyzeImageRequest) -> ImageAnalysis:
    try:
        attachment = await attachment_from_path(request.path)
    except BadRequestError as exc:
        raise _to_http_error(exc) from exc
    return await _run_provider_operation(
        "analyze_image", get_provider_router().analyze_image(attachment)
    )


@router.get("/captures", response_model=list[CaptureItem])
def list_captures(view: CaptureView = "primary") -> list[CaptureItem]:
    return [
        CaptureItem(path=record.path, preview=record.preview)
        for record in get_capture_store().queue(view).list()
    ]


@router.post("/captures", response_model=CaptureItem)
async def push_capture(request: CaptureRequest) -> CaptureItem:
    if request.preview is not None:
        record = CaptureRecord(path=request.path, preview=request.preview)
    else:
        try:
            record = await load_capture(request.path)
        except OSError as exc:
            raise HTTPException(
                status_code=400, detail=f"Cannot read capture {request.path}: {exc}"
            ) from exc
    await get_capture_store().queue(request.view).push(record)
    return CaptureItem(path=record.path, preview=record.preview)


@router.delete("/captures", response_model=RemoveResult)
async def delete_capture(path: str) -> RemoveResult:
    return await get_capture_store().remove(path)


@router.post("/reset")
async def reset() -> dict[str, str]:
    await get_capture_store().clear()
    return {"status": "ok"}


async def _configure_from_environment() -> None:
    config = load_startup_config()
    if config is None:
        return
    result = await get_provider_router().configure(config)
    if not result.success:
        logger.warning("Startup provider configuration failed", extra={"error": result.error})


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    await _configure_from_environment()
    yield


app = FastAPI(lifespan=lifespan)
app.include_router(router)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="127.0.0.1", port=8765, log_level="info")


if __name__ == "__main__":
    main()
