"""Process-wide service instances, exposed as FastAPI dependencies.

Each getter builds its object on first use. Tests swap them out with
app.dependency_overrides.
"""
from drive_uploader.config import settings
from drive_uploader.database import async_session
from drive_uploader.services.downloader import Downloader
from drive_uploader.services.drive_storage import DriveStorage
from drive_uploader.services.file_store import FileStore
from drive_uploader.services.google_auth import GoogleAuthService, load_client_config
from drive_uploader.services.rate_limiter import FixedWindowRateLimiter
from drive_uploader.services.token_store import FileTokenStore
from drive_uploader.services.upload_orchestrator import UploadOrchestrator

_token_store: FileTokenStore | None = None
_auth_service: GoogleAuthService | None = None
_orchestrator: UploadOrchestrator | None = None

rate_limiter = FixedWindowRateLimiter(
    limit=settings.THROTTLE_LIMIT,
    window_seconds=settings.THROTTLE_TTL,
)
rate_limit = rate_limiter.dependency()


def get_token_store() -> FileTokenStore:
    global _token_store
    if _token_store is None:
        _token_store = FileTokenStore(settings.TOKEN_PATH)
    return _token_store


def get_auth_service() -> GoogleAuthService:
    global _auth_service
    if _auth_service is None:
        _auth_service = GoogleAuthService(
            token_store=get_token_store(),
            client_config=load_client_config(),
        )
    return _auth_service


def get_file_store() -> FileStore:
    return FileStore(async_session)


def get_orchestrator() -> UploadOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = UploadOrchestrator(
            downloader=Downloader(),
            storage=DriveStorage(get_auth_service()),
            store=get_file_store(),
        )
    return _orchestrator
