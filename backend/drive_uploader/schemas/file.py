"""Request/response schemas for the /files API.

Python attributes stay snake_case; JSON on the wire is camelCase
(fileUrls, mimeType, driveFileId, driveUrl, createdAt, updatedAt).
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelSchema(BaseModel):
    """Accepts either casing, serializes camelCase, reads ORM attributes."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UploadFilesRequest(CamelSchema):
    # Size and URL checks run in url_validator so every offending URL gets reported
    file_urls: list[str] = []


class FileRecordResponse(CamelSchema):
    id: int
    name: str
    mime_type: str
    size: int
    drive_file_id: str
    drive_url: str
    created_at: datetime
    updated_at: datetime


class ErrorDetail(BaseModel):
    url: Optional[str] = None
    reason: str
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    """Body of every 400 from /files/upload."""
    message: str
    details: list[ErrorDetail] = []
