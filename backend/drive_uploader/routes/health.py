"""Liveness and readiness checks."""
import logging
import shutil
import tempfile
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from drive_uploader.config import settings
from drive_uploader.database import get_db
from drive_uploader.dependencies import get_auth_service
from drive_uploader.services.google_auth import GoogleAuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

DISK_USAGE_THRESHOLD = 0.9


async def _check_database(db: AsyncSession) -> dict:
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "up"}
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        return {"status": "down", "error": str(e)}


def _check_storage() -> dict:
    """Disk usage of the directory downloads are staged in."""
    path = settings.TEMP_DIR or tempfile.gettempdir()
    try:
        usage = shutil.disk_usage(path)
    except OSError as e:
        logger.error("Storage health check failed for %s: %s", path, e)
        return {"status": "down", "path": path, "error": str(e)}
    used = usage.used / usage.total if usage.total else 0.0
    return {
        "status": "up" if used < DISK_USAGE_THRESHOLD else "down",
        "path": path,
        "usedPercent": round(used * 100, 1),
    }


@router.get("")
async def health_check(
    db: AsyncSession = Depends(get_db),
    auth: GoogleAuthService = Depends(get_auth_service),
):
    """Overall status: database, staging disk, and Drive auth state."""
    checks = {
        "database": await _check_database(db),
        "storage": _check_storage(),
        # Informational: an unauthenticated service is still up
        "googleDrive": {"status": (await auth.state()).value},
    }
    healthy = checks["database"]["status"] == "up" and checks["storage"]["status"] == "up"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ok" if healthy else "error", "info": checks},
    )


@router.get("/db")
async def health_db(db: AsyncSession = Depends(get_db)):
    """Verify database connectivity."""
    result = await _check_database(db)
    if result["status"] != "up":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "database": "down", "error": result.get("error")},
        )
    return {"status": "ok", "database": "up"}


@router.get("/ping")
async def ping():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
