"""Upload orchestrator: download -> Drive upload -> record, for a batch of URLs.

A fixed pool of `max_concurrent` workers drains a queue of URLs. Each URL
runs through run_with_retry(), so a backoff wait only parks its own worker.
With max_concurrent=1 the batch is processed strictly one URL at a time.

Outcome rules:
    all succeed   -> records returned
    some fail     -> successes returned, each failure logged
    all fail      -> BatchUploadFailed
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from drive_uploader.config import settings
from drive_uploader.models.file_record import FileRecord
from drive_uploader.services.downloader import Downloader
from drive_uploader.services.drive_storage import DriveStorage
from drive_uploader.services.file_store import FileStore
from drive_uploader.services.retry_policy import RetryTrace, run_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadFailure:
    url: str
    reason: str

    def to_dict(self) -> dict:
        return {"url": self.url, "reason": self.reason}


class BatchUploadFailed(Exception):
    """Every URL in the batch failed."""

    def __init__(self, failures: Sequence[UploadFailure]):
        self.failures = list(failures)
        super().__init__("All file uploads failed")


def safe_error_message(e: Exception, fallback: str = "Upload failed") -> str:
    """Reason string reported for a URL that could not be transferred.

    aiohttp timeouts and bare connection resets stringify to "", which would
    leave an empty reason in the batch failure details; name the error type
    instead.
    """
    msg = str(e).strip()
    if not msg:
        msg = f"{type(e).__name__}: {fallback}"
    return msg


class UploadOrchestrator:

    def __init__(
        self,
        downloader: Downloader,
        storage: DriveStorage,
        store: FileStore,
        *,
        max_concurrent: int = settings.MAX_CONCURRENT_UPLOADS,
        max_attempts: int = settings.MAX_UPLOAD_ATTEMPTS,
        initial_backoff: float = settings.INITIAL_BACKOFF_SECONDS,
        max_backoff: float = settings.MAX_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.downloader = downloader
        self.storage = storage
        self.store = store
        self.max_concurrent = max(1, max_concurrent)
        self.max_attempts = max_attempts
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.sleep = sleep

    async def upload_all(self, urls: Sequence[str]) -> list[FileRecord]:
        """Upload every URL; return the records that made it into Drive.

        Result order follows completion, not input order.
        """
        start = time.monotonic()
        logger.info("Starting batch upload of %d files", len(urls))

        queue: asyncio.Queue[str] = asyncio.Queue()
        for url in urls:
            queue.put_nowait(url)

        uploaded: list[FileRecord] = []
        failures: list[UploadFailure] = []

        async def _worker(worker_id: int) -> None:
            while True:
                try:
                    url = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    record = await self.upload_one(url)
                except Exception as e:
                    logger.error("Failed to upload file from URL %s: %s", url, e, exc_info=True)
                    failures.append(UploadFailure(url=url, reason=safe_error_message(e)))
                else:
                    uploaded.append(record)
                finally:
                    queue.task_done()

        width = min(self.max_concurrent, len(urls))
        await asyncio.gather(*(_worker(i) for i in range(width)))

        total_ms = (time.monotonic() - start) * 1000
        avg_ms = total_ms / len(uploaded) if uploaded else 0
        logger.info(
            "Batch upload completed. Success: %d, Failed: %d, Total time: %.0fms, Avg time per file: %.0fms",
            len(uploaded), len(failures), total_ms, avg_ms,
        )

        if failures and not uploaded:
            raise BatchUploadFailed(failures)
        if failures:
            logger.warning(
                "Some files failed to upload: %s", [f.to_dict() for f in failures],
            )
        return uploaded

    async def upload_one(self, url: str, trace: RetryTrace | None = None) -> FileRecord:
        """Transfer a single URL, retrying transient failures with backoff."""
        return await run_with_retry(
            lambda: self._transfer(url),
            max_attempts=self.max_attempts,
            initial_delay=self.initial_backoff,
            max_delay=self.max_backoff,
            sleep=self.sleep,
            label=url,
            trace=trace,
        )

    async def _transfer(self, url: str) -> FileRecord:
        async with self.downloader.download(url) as downloaded:
            result = await self.storage.upload(downloaded.stream, downloaded.metadata)
            metadata = downloaded.metadata

        record = await self.store.insert(
            name=metadata.name,
            mime_type=metadata.mime_type,
            size=metadata.size,
            drive_file_id=result.id,
            drive_url=result.url,
        )
        logger.info("Successfully uploaded file: %s", metadata.name)
        return record
