"""Pydantic schemas for file operation endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from common.constants import MAX_FILE_NAME_LENGTH
from filevault.domain import FileRecord, Visibility


class UploadMeta(BaseModel):
    """JSON metadata part of a multipart upload."""
    file_name: Optional[str] = Field(None, max_length=MAX_FILE_NAME_LENGTH)
    visibility: Visibility
    tags: Optional[List[str]] = None


class RenameRequest(BaseModel):
    """Request model for renaming a file."""
    new_name: str = Field(..., max_length=MAX_FILE_NAME_LENGTH)

    @field_validator("new_name")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("New name is required")
        return value


class FileResponse(BaseModel):
    """Response model for file metadata."""
    id: str
    file_name: str
    size_bytes: int
    content_type: Optional[str] = None
    visibility: Visibility
    tags: List[str]
    upload_ts: str
    download_url: str

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileResponse":
        return cls(
            id=record.file_id,
            file_name=record.file_name,
            size_bytes=record.size_bytes,
            content_type=record.content_type,
            visibility=record.visibility,
            tags=record.tags,
            upload_ts=record.created_at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            download_url=record.download_url,
        )


class FilePageResponse(BaseModel):
    """Response model for a page of files."""
    content: List[FileResponse]
    page: int
    size: int
    total_elements: int
    total_pages: int
