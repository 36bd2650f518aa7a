"""Files API routes."""
from fastapi import APIRouter, Depends

from drive_uploader.config import settings
from drive_uploader.dependencies import get_file_store, get_orchestrator, rate_limit
from drive_uploader.schemas.file import ErrorResponse, FileRecordResponse, UploadFilesRequest
from drive_uploader.services.file_store import FileStore
from drive_uploader.services.upload_orchestrator import UploadOrchestrator
from drive_uploader.services.url_validator import normalize_urls

router = APIRouter(prefix="/files", tags=["files"], dependencies=[Depends(rate_limit)])


@router.post(
    "/upload",
    response_model=list[FileRecordResponse],
    status_code=201,
    responses={400: {"model": ErrorResponse, "description": "Invalid URLs or every upload failed"}},
)
async def upload_files(
    body: UploadFilesRequest,
    orchestrator: UploadOrchestrator = Depends(get_orchestrator),
):
    """Download each URL and copy it into Google Drive.

    Returns only the files that were uploaded; partial failures are logged.
    """
    urls = normalize_urls(body.file_urls, max_urls=settings.MAX_URLS_PER_REQUEST)
    return await orchestrator.upload_all(urls)


@router.get("", response_model=list[FileRecordResponse])
async def list_files(store: FileStore = Depends(get_file_store)):
    """List all uploaded files, newest first."""
    return await store.list_all()
