"""Service layer for business logic."""

from filevault.services.file_coordinator import FileCoordinator
from filevault.services.file_service import FileService
from filevault.services.tag_service import TagService

__all__ = [
    "FileCoordinator",
    "FileService",
    "TagService",
]
