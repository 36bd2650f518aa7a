"""Async SQLAlchemy engine, session factory and connectivity check.

Routes take a session through Depends(get_db); services that outlive a
request (the upload workers) use async_session directly via FileStore.
"""
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from drive_uploader.config import settings


def _engine_options(url: str) -> dict:
    # SQLite (tests, local runs) uses its own pool and rejects sizing args
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 10, "max_overflow": 20, "pool_pre_ping": True}


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """Yield a session for one request."""
    async with async_session() as session:
        yield session


async def check_connection() -> None:
    """Run SELECT 1; raises if the database is unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
