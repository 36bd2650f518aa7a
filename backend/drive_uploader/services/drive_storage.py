"""Google Drive uploader adapter.

upload(stream, metadata) -> UploadResult(id, url)

Small files go up in one multipart request. Files above the resumable
threshold open a resumable session and are sent in UPLOAD_CHUNK_SIZE chunks.

googleapiclient is sync, so each upload runs under asyncio.to_thread.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from drive_uploader.config import settings
from drive_uploader.services.downloader import FileMetadata
from drive_uploader.services.google_auth import GoogleAuthService
from drive_uploader.services.token_store import ReauthenticationRequired

logger = logging.getLogger(__name__)

DRIVE_FILE_URL = "https://drive.google.com/file/d/{file_id}/view"


class DriveUploadError(Exception):
    """Drive refused or failed an upload for a non-auth reason."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.status:
            return f"Google Drive responded with status {self.status}: {self.message}"
        return f"Google Drive upload failed: {self.message}"


class DriveAuthRejected(Exception):
    """Drive rejected the credentials (expired/revoked token)."""
    pass


@dataclass
class UploadResult:
    id: str
    url: str


def _http_error_status(error: HttpError) -> Optional[int]:
    status = getattr(error.resp, "status", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def _default_service_factory(credentials: Credentials):
    return build("drive", "v3", credentials=credentials, cache_discovery=False)


class DriveStorage:
    """Uploads file streams to the authorized user's Drive."""

    def __init__(
        self,
        auth: GoogleAuthService,
        resumable_threshold: int = settings.RESUMABLE_THRESHOLD_BYTES,
        chunk_size: int = settings.UPLOAD_CHUNK_SIZE,
        service_factory: Callable[[Credentials], object] = _default_service_factory,
    ):
        self.auth = auth
        self.resumable_threshold = resumable_threshold
        self.chunk_size = chunk_size
        self._service_factory = service_factory

    async def upload(self, stream: BinaryIO, metadata: FileMetadata) -> UploadResult:
        """Upload with one refresh-and-retry cycle on auth rejection."""
        credentials = await self.auth.get_valid_client()
        try:
            return await self._upload_with(credentials, stream, metadata)
        except DriveAuthRejected as e:
            logger.warning("Drive rejected credentials for %s, refreshing token: %s", metadata.name, e)

        try:
            credentials = await self.auth.refresh()
        except ReauthenticationRequired:
            raise
        except Exception as e:
            logger.error("Token refresh failed, re-authentication required: %s", e)
            raise ReauthenticationRequired() from e

        stream.seek(0)
        logger.info("Retrying upload of %s with refreshed token", metadata.name)
        try:
            return await self._upload_with(credentials, stream, metadata)
        except DriveAuthRejected as e:
            logger.error("Drive rejected refreshed credentials for %s", metadata.name)
            raise ReauthenticationRequired() from e

    async def _upload_with(
        self, credentials: Credentials, stream: BinaryIO, metadata: FileMetadata,
    ) -> UploadResult:
        logger.info("Uploading file to Google Drive: %s (%d bytes)", metadata.name, metadata.size)
        try:
            response = await asyncio.to_thread(self._create_file, credentials, stream, metadata)
        except RefreshError as e:
            raise DriveAuthRejected(str(e)) from e
        except HttpError as e:
            status = _http_error_status(e)
            if status == 401:
                raise DriveAuthRejected(str(e)) from e
            raise DriveUploadError(getattr(e, "reason", None) or str(e), status=status) from e

        file_id = (response or {}).get("id")
        if not file_id:
            raise DriveUploadError("File ID was not returned from Google Drive")

        logger.info("Uploaded %s to Google Drive, ID: %s", metadata.name, file_id)
        return UploadResult(id=file_id, url=DRIVE_FILE_URL.format(file_id=file_id))

    def _create_file(self, credentials: Credentials, stream: BinaryIO, metadata: FileMetadata) -> dict:
        """Blocking Drive call; runs in a worker thread."""
        service = self._service_factory(credentials)
        resumable = metadata.size > self.resumable_threshold
        media = MediaIoBaseUpload(
            stream,
            mimetype=metadata.mime_type,
            chunksize=self.chunk_size,
            resumable=resumable,
        )
        request = service.files().create(
            body={"name": metadata.name, "mimeType": metadata.mime_type},
            media_body=media,
            fields="id",
        )
        if not resumable:
            return request.execute()

        logger.info("Using resumable upload for large file: %s (%d bytes)", metadata.name, metadata.size)
        response = None
        while response is None:
            status, response = request.next_chunk()
            if status:
                logger.debug("Uploaded %d%% of %s", int(status.progress() * 100), metadata.name)
        return response
