"""ORM models. Importing this package registers every table on Base.metadata."""
from drive_uploader.models.file_record import Base, FileRecord

__all__ = ["Base", "FileRecord"]
