"""FileVault domain types."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class FileState(str, Enum):
    PENDING = "PENDING"    # reserved, content not yet durably stored
    READY = "READY"        # content stored and verified
    FAILED = "FAILED"      # upload aborted, blob may or may not exist
    DELETING = "DELETING"  # user-initiated removal in progress
    JANITOR = "JANITOR"    # claimed by the janitor for teardown


class Visibility(str, Enum):
    PRIVATE = "PRIVATE"
    PUBLIC = "PUBLIC"


@dataclass
class FileRecord:
    """
    Metadata for a stored file.
    """
    file_id: str
    owner_id: str
    file_name: str
    file_name_lower: str
    content_type: Optional[str]
    size_bytes: int
    sha256: str
    visibility: Visibility
    tags: List[str]
    created_at: datetime
    download_secret: str
    object_store_key: str
    state: FileState

    @property
    def download_url(self) -> str:
        return f"/d/{self.file_id}/{self.download_secret}"


@dataclass
class FileMeta:
    """
    Caller-supplied metadata for a new upload.
    """
    file_name: str
    visibility: Visibility
    content_type: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class Page(Generic[T]):
    items: List[T]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return (self.total + self.size - 1) // self.size
