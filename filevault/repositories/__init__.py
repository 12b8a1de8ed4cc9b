"""Repository layer for data access."""

from filevault.repositories.file_repository import FileRepository
from filevault.repositories.tag_repository import TagRepository

__all__ = [
    "FileRepository",
    "TagRepository",
]
