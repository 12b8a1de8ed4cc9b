"""Pydantic schemas for API requests and responses."""

from filevault.schemas.common import ErrorResponse
from filevault.schemas.files import (
    FilePageResponse,
    FileResponse,
    RenameRequest,
    UploadMeta,
)
from filevault.schemas.tags import TagResponse

__all__ = [
    "UploadMeta",
    "RenameRequest",
    "FileResponse",
    "FilePageResponse",
    "TagResponse",
    "ErrorResponse",
]
