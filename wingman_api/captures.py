"""Bounded FIFO queues of pending screen captures."""

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .constants import CAPTURE_MIME_TYPE, MAX_CAPTURES, CaptureView
from .data_urls import build_data_url
from .errors import BadRequestError
from .schemas import Attachment, RemoveResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureRecord:
    path: str
    preview: str


def _destroy(record: CaptureRecord) -> None:
    try:
        Path(record.path).unlink()
    except FileNotFoundError:
        logger.warning("Capture file already gone", extra={"capture_path": record.path})
    except OSError:
        logger.exception("Failed to delete capture file", extra={"capture_path": record.path})


async def load_capture(path: str) -> CaptureRecord:
    """Read a capture file and build its record with a data-URL preview."""
    data = await asyncio.to_thread(Path(path).read_bytes)
    return CaptureRecord(path=path, preview=build_data_url(CAPTURE_MIME_TYPE, data))


async def attachment_from_path(path: str) -> Attachment:
    try:
        data = await asyncio.to_thread(Path(path).read_bytes)
    except OSError as exc:
        raise BadRequestError(f"Cannot read capture {path}: {exc.strerror or exc}") from exc
    return Attachment(
        name=Path(path).name,
        mime_type=CAPTURE_MIME_TYPE,
        data_url=build_data_url(CAPTURE_MIME_TYPE, data),
    )


class CaptureQueue:
    """Ordered capture store holding at most ``max_size`` records.

    Mutations are serialized by a per-queue lock so that concurrent pushes
    evict strictly oldest-first. A path appears at most once per queue, and
    a file is only deleted once no queue lists its path.
    """

    def __init__(
        self,
        name: CaptureView,
        max_size: int = MAX_CAPTURES,
        is_referenced: Callable[[str], bool] | None = None,
    ) -> None:
        self.name = name
        self._max_size = max_size
        self._is_referenced = is_referenced
        self._records: deque[CaptureRecord] = deque()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, path: object) -> bool:
        return any(record.path == path for record in self._records)

    def list(self) -> list[CaptureRecord]:
        return list(self._records)

    def _release(self, record: CaptureRecord) -> None:
        if self._is_referenced is not None and self._is_referenced(record.path):
            logger.info(
                "Capture file still queued; keeping it",
                extra={"queue": self.name, "capture_path": record.path},
            )
            return
        _destroy(record)

    def _discard_path(self, path: str) -> CaptureRecord | None:
        for record in self._records:
            if record.path == path:
                self._records.remove(record)
                return record
        return None

    async def push(self, record: CaptureRecord) -> CaptureRecord | None:
        """Append a record, evicting and deleting the oldest one past the bound.

        Re-pushing a queued path moves it to the newest position instead of
        adding a second entry.
        """
        async with self._lock:
            self._discard_path(record.path)
            self._records.append(record)
            if len(self._records) <= self._max_size:
                return None
            evicted = self._records.popleft()
        self._release(evicted)
        logger.info(
            "Evicted oldest capture",
            extra={"queue": self.name, "capture_path": evicted.path},
        )
        return evicted

    async def remove(self, path: str) -> bool:
        async with self._lock:
            record = self._discard_path(path)
        if record is None:
            return False
        self._release(record)
        return True

    async def clear(self) -> None:
        async with self._lock:
            records = list(self._records)
            self._records.clear()
        for record in records:
            self._release(record)


class CaptureStore:
    def __init__(self, max_size: int = MAX_CAPTURES) -> None:
        self.primary = CaptureQueue(
            "primary", max_size, is_referenced=lambda path: path in self.extra
        )
        self.extra = CaptureQueue(
            "extra", max_size, is_referenced=lambda path: path in self.primary
        )

    def queue(self, view: CaptureView) -> CaptureQueue:
        return self.primary if view == "primary" else self.extra

    async def remove(self, path: str) -> RemoveResult:
        for queue in (self.primary, self.extra):
            if await queue.remove(path):
                logger.info("Capture removed", extra={"queue": queue.name, "capture_path": path})
                return RemoveResult(success=True)
        logger.warning("Capture not found", extra={"capture_path": path})
        return RemoveResult(success=False, error=f"Capture not found: {path}")

    async def clear(self) -> None:
        await self.primary.clear()
        await self.extra.clear()
        logger.info("Capture queues cleared")
