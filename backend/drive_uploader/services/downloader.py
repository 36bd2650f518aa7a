"""Streaming downloader: URL -> uniquely named temp file.

The body is written to disk chunk by chunk so large files never sit in
memory. Header values (Content-Type / Content-Length) are treated as hints;
the recorded size is what actually landed on disk.
"""
import logging
import os
import secrets
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Optional
from urllib.parse import unquote, urlsplit

import aiofiles
import aiohttp

from drive_uploader.config import settings

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
UNKNOWN_FILE_NAME = "unknown-file"


class DownloadError(Exception):
    """Non-2xx response while downloading. Carries status, message, and URL."""

    def __init__(self, status: int, message: str, url: str):
        self.status = status
        self.message = message
        self.url = url
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"Failed to download file: server responded with status {self.status} ({self.message})"


@dataclass
class FileMetadata:
    name: str
    mime_type: str
    size: int


@dataclass
class DownloadedFile:
    path: Path
    stream: BinaryIO
    metadata: FileMetadata


def file_name_from_url(url: str) -> str:
    """Last path segment of the URL, percent-decoded."""
    try:
        path = urlsplit(url).path
    except ValueError:
        logger.warning("Failed to parse URL %s", url)
        return UNKNOWN_FILE_NAME
    name = unquote(path.rsplit("/", 1)[-1])
    return name or UNKNOWN_FILE_NAME


class Downloader:
    """Downloads URLs into temp files that are removed when the caller is done.

    Usage:
        async with downloader.download(url) as downloaded:
            storage.upload(downloaded.stream, downloaded.metadata)
    """

    def __init__(
        self,
        timeout_seconds: float = settings.DOWNLOAD_TIMEOUT_SECONDS,
        chunk_size: int = settings.DOWNLOAD_CHUNK_SIZE,
        temp_dir: Optional[str] = settings.TEMP_DIR or None,
    ):
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.chunk_size = chunk_size
        self.temp_dir = Path(temp_dir or tempfile.gettempdir())

    def make_temp_path(self) -> Path:
        return self.temp_dir / f"upload-{secrets.token_hex(16)}"

    @asynccontextmanager
    async def download(self, url: str) -> AsyncIterator[DownloadedFile]:
        """Stream url to a temp file and yield it opened for reading at offset 0.

        The temp file is deleted on every exit path.
        """
        temp_path = self.make_temp_path()
        stream = None
        try:
            metadata = await self._fetch_to_file(url, temp_path)
            stream = open(temp_path, "rb")
            yield DownloadedFile(path=temp_path, stream=stream, metadata=metadata)
        finally:
            if stream is not None:
                stream.close()
            self._discard(temp_path)

    async def _fetch_to_file(self, url: str, temp_path: Path) -> FileMetadata:
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.get(url) as resp:
                if not 200 <= resp.status < 300:
                    raise DownloadError(
                        status=resp.status,
                        message=resp.reason or "No reason given",
                        url=url,
                    )
                mime_type = resp.content_type or DEFAULT_MIME_TYPE
                declared_size = resp.content_length
                async with aiofiles.open(temp_path, "wb") as f:
                    try:
                        async for chunk in resp.content.iter_chunked(self.chunk_size):
                            await f.write(chunk)
                    except aiohttp.ClientPayloadError as e:
                        # Peer dropped the connection mid-body
                        raise ConnectionResetError(f"Connection lost while downloading {url}: {e}") from e

        actual_size = os.stat(temp_path).st_size
        if declared_size is not None and declared_size != actual_size:
            logger.debug(
                "Content-Length for %s was %d, wrote %d bytes", url, declared_size, actual_size,
            )
        return FileMetadata(
            name=file_name_from_url(url),
            mime_type=mime_type,
            size=actual_size,
        )

    @staticmethod
    def _discard(temp_path: Path) -> None:
        if not temp_path.exists():
            return
        try:
            os.remove(temp_path)
        except OSError as e:
            logger.warning("Failed to delete temp file %s: %s", temp_path, e)
