"""FileRecord persistence: insert-once, list-all."""
import logging

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from drive_uploader.models.file_record import FileRecord

logger = logging.getLogger(__name__)


class FileStore:
    """Each call opens its own session, so concurrent upload workers never share one."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def insert(
        self,
        *,
        name: str,
        mime_type: str,
        size: int,
        drive_file_id: str,
        drive_url: str,
    ) -> FileRecord:
        async with self.session_factory() as db:
            record = FileRecord(
                name=name,
                mime_type=mime_type,
                size=size,
                drive_file_id=drive_file_id,
                drive_url=drive_url,
            )
            db.add(record)
            await db.commit()
            await db.refresh(record)
        logger.debug("Recorded file %s (id=%s, drive=%s)", name, record.id, drive_file_id)
        return record

    async def list_all(self) -> list[FileRecord]:
        """All records, newest first."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(FileRecord).order_by(desc(FileRecord.created_at), desc(FileRecord.id))
            )
            return list(result.scalars().all())
