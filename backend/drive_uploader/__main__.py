"""Run the API server: python -m drive_uploader

Exits with status 1 when the database is unreachable at startup.
"""
import asyncio
import logging
import sys

import uvicorn

from drive_uploader.config import settings
from drive_uploader.database import check_connection, engine

logger = logging.getLogger("drive_uploader")


async def _preflight() -> None:
    try:
        await check_connection()
    finally:
        await engine.dispose()


def main() -> None:
    from drive_uploader.main import app

    try:
        asyncio.run(_preflight())
    except Exception as e:
        logger.error("Error starting server: %s", e, exc_info=True)
        sys.exit(1)

    logger.info("Application is running on: http://localhost:%d", settings.API_PORT)
    logger.info("Health checks available at: http://localhost:%d/health", settings.API_PORT)
    uvicorn.run(app, host="0.0.0.0", port=settings.API_PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
