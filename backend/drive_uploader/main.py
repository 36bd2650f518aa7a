"""FastAPI application entry point."""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from drive_uploader.config import settings
from drive_uploader.database import check_connection, engine
from drive_uploader.models import Base
from drive_uploader.services.upload_orchestrator import BatchUploadFailed
from drive_uploader.services.url_validator import InvalidUploadRequest

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("drive_uploader")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Verify the database, create tables, load saved OAuth tokens."""
    logger.info("Connecting to the database...")
    await check_connection()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Successfully connected to the database")

    from drive_uploader.dependencies import get_auth_service
    auth = get_auth_service()
    await auth.token_store.get()
    if not auth.configured:
        logger.warning("Google OAuth client is not configured; uploads will fail until it is")

    yield

    logger.info("Disconnecting from the database...")
    await engine.dispose()


app = FastAPI(
    title="File Upload Service",
    version="1.1.0",
    description="Download files from URLs and upload them to Google Drive.",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.monotonic()
    response = await call_next(request)
    duration_ms = (time.monotonic() - start) * 1000
    logging.getLogger("drive_uploader.http").info(
        "%s %s %d %.1fms", request.method, request.url.path, response.status_code, duration_ms,
    )
    return response


@app.exception_handler(InvalidUploadRequest)
async def invalid_upload_handler(request: Request, exc: InvalidUploadRequest):
    return JSONResponse(
        status_code=400,
        content={"message": str(exc), "details": [issue.to_dict() for issue in exc.issues]},
    )


@app.exception_handler(BatchUploadFailed)
async def batch_failed_handler(request: Request, exc: BatchUploadFailed):
    return JSONResponse(
        status_code=400,
        content={"message": str(exc), "details": [f.to_dict() for f in exc.failures]},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "url": None,
            "reason": "invalid_body",
            "message": f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}",
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": "Invalid request body", "details": details})


# Register routers
from drive_uploader.routes.auth import router as auth_router
from drive_uploader.routes.files import router as files_router
from drive_uploader.routes.health import router as health_router
app.include_router(auth_router)
app.include_router(files_router)
app.include_router(health_router)
