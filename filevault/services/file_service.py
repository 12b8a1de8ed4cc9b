"""File service for metadata lifecycle transitions."""

import secrets
import sqlite3
from typing import Optional

from common.constants import MAX_FILE_NAME_LENGTH
from common.logging_config import get_logger
from filevault.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from filevault.database import is_unique_violation
from filevault.domain import FileMeta, FileRecord, FileState, Page, Visibility
from filevault.exceptions import (
    AccessDeniedError,
    ConcurrentModificationError,
    ContentConflictError,
    InvalidArgumentError,
    InvalidStateError,
    NameConflictError,
    NotFoundError,
)
from filevault.repositories.file_repository import SORTABLE_COLUMNS, FileRepository
from filevault.services.tag_service import TagService
from filevault.utils import (
    generate_download_secret,
    generate_object_store_key,
    normalize_name,
    utcnow,
)

logger = get_logger(__name__)

_OWNER_NAME_COLUMNS = "files.owner_id, files.file_name_lower"
_OWNER_HASH_COLUMNS = "files.owner_id, files.sha256"


def parse_sort(sort: Optional[str]) -> tuple:
    """
    Parse a sort expression of the form "field[,asc|desc]".

    Returns:
        Tuple of (field or None, descending)

    Raises:
        InvalidArgumentError: If the field or direction is not supported
    """
    if sort is None or not sort.strip():
        return None, False

    parts = [part.strip() for part in sort.split(",")]
    field = parts[0]
    if field not in SORTABLE_COLUMNS:
        allowed = ", ".join(sorted(SORTABLE_COLUMNS))
        raise InvalidArgumentError(f"Unsupported sort field '{field}'. Allowed: {allowed}")

    if len(parts) > 2:
        raise InvalidArgumentError(f"Invalid sort expression '{sort}'")

    direction = parts[1].lower() if len(parts) == 2 else "asc"
    if direction not in ("asc", "desc"):
        raise InvalidArgumentError(f"Invalid sort direction '{parts[1]}'")

    return field, direction == "desc"


class FileService:
    def __init__(
        self,
        tag_service: Optional[TagService] = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self.file_repo = FileRepository()
        self.tag_service = tag_service or TagService()
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def reserve(self, owner_id: str, meta: FileMeta) -> FileRecord:
        """
        Create a PENDING record before any bytes reach the object store.

        Raises:
            InvalidArgumentError: If the name or tags are invalid
            NameConflictError: If the owner already has a file with this name
        """
        file_name = self._validate_file_name(meta.file_name)
        tags = self.tag_service.validate_and_normalize_tags(meta.tags)
        self.tag_service.ensure_exist(tags)

        try:
            record = self.file_repo.create_file(
                owner_id=owner_id,
                file_name=file_name,
                file_name_lower=normalize_name(file_name),
                content_type=meta.content_type,
                visibility=Visibility(meta.visibility),
                tags=tags,
                created_at=utcnow(),
                download_secret=generate_download_secret(),
                object_store_key=generate_object_store_key(),
            )
        except sqlite3.IntegrityError as e:
            if is_unique_violation(e, _OWNER_NAME_COLUMNS):
                logger.warning(f"Duplicate file name '{file_name}' [owner_id={owner_id}]")
                raise NameConflictError(f"File with name '{file_name}' already exists for this user")
            raise

        logger.info(f"Reserved file {record.file_id} with key {record.object_store_key} [owner_id={owner_id}]")
        return record

    def finalize(self, file_id: str, sha256: str, actual_size: int) -> FileRecord:
        """
        Publish the content hash and size and mark the file READY.

        Raises:
            NotFoundError: If the file does not exist
            InvalidStateError: If the file is not PENDING
            ContentConflictError: If the owner already has a READY file with this hash
            ConcurrentModificationError: If the file left PENDING during finalization
        """
        sha256 = sha256.lower()

        record = self.file_repo.get_by_id(file_id)
        if record is None:
            raise NotFoundError(f"File not found: {file_id}")

        if record.state != FileState.PENDING:
            raise InvalidStateError(f"File not in PENDING state: {file_id}")

        existing = self.file_repo.find_ready_by_owner_and_hash(record.owner_id, sha256)
        if existing is not None:
            self._fail_duplicate(file_id, existing.file_id)

        try:
            finalized = self.file_repo.finalize(file_id, sha256, actual_size)
        except sqlite3.IntegrityError as e:
            if is_unique_violation(e, _OWNER_HASH_COLUMNS):
                self._fail_duplicate(file_id, None)
            raise

        if finalized is None:
            raise ConcurrentModificationError(f"File left PENDING state during finalization: {file_id}")

        logger.info(f"Finalized upload: {file_id} -> {actual_size} bytes, SHA-256: {sha256}")
        return finalized

    def _fail_duplicate(self, file_id: str, existing_id: Optional[str]) -> None:
        self.mark_failed(file_id)
        logger.info(f"Duplicate content for file {file_id} [existing={existing_id or 'concurrent'}]")
        raise ContentConflictError("File with identical content already exists for this user")

    def mark_failed(self, file_id: str) -> bool:
        """
        Move a PENDING or FAILED file to FAILED.

        Returns:
            True if the file is now FAILED, False if it was in any other state or missing
        """
        record = self.file_repo.transition_state(
            file_id, (FileState.PENDING, FileState.FAILED), FileState.FAILED
        )
        return record is not None

    def rename(self, file_id: str, owner_id: str, new_name: str) -> FileRecord:
        """
        Rename a READY file of the caller.

        Raises:
            InvalidArgumentError: If the new name is blank or too long
            NotFoundError: If the file does not exist or is private to another owner
            AccessDeniedError: If the file is public but belongs to another owner
            InvalidStateError: If the file is not READY
            NameConflictError: If the owner already has a file with this name
        """
        new_name = self._validate_file_name(new_name)

        record = self._find_owned(file_id, owner_id)
        if record.state != FileState.READY:
            raise InvalidStateError(f"Cannot rename file in state: {record.state.value}")

        try:
            renamed = self.file_repo.rename(file_id, owner_id, new_name, normalize_name(new_name))
        except sqlite3.IntegrityError as e:
            if is_unique_violation(e, _OWNER_NAME_COLUMNS):
                raise NameConflictError(f"File with name '{new_name}' already exists for this user")
            raise

        if renamed is None:
            # Lost a race: report whatever the file looks like now
            record = self._find_owned(file_id, owner_id)
            if record.state != FileState.READY:
                raise InvalidStateError(f"Cannot rename file in state: {record.state.value}")
            raise ConcurrentModificationError(f"File changed during rename: {file_id}")

        logger.info(f"Renamed file {file_id} to '{new_name}' [owner_id={owner_id}]")
        return renamed

    def mark_for_deletion(self, file_id: str, owner_id: str) -> FileRecord:
        """
        Move a READY file of the caller to DELETING.

        Raises:
            NotFoundError: If the file does not exist
            AccessDeniedError: If the file belongs to another owner
            InvalidStateError: If the file is not READY
        """
        record = self.file_repo.transition_state(
            file_id, (FileState.READY,), FileState.DELETING, owner_id=owner_id
        )
        if record is not None:
            return record

        current = self.file_repo.get_by_id(file_id)
        if current is None:
            raise NotFoundError("File not found")
        if current.owner_id != owner_id:
            raise AccessDeniedError("You don't have permission to access this file")
        raise InvalidStateError(f"File not in READY state: {file_id}")

    def restore_ready(self, file_id: str) -> bool:
        """Roll a DELETING file back to READY."""
        record = self.file_repo.transition_state(file_id, (FileState.DELETING,), FileState.READY)
        return record is not None

    def delete_metadata(self, file_id: str) -> None:
        self.file_repo.delete_file(file_id)
        logger.debug(f"Deleted file metadata: {file_id}")

    def get_file_for_download(self, file_id: str, secret: str) -> FileRecord:
        """
        Resolve a download link.

        Raises:
            NotFoundError: If the file does not exist or is not READY
            AccessDeniedError: If the secret does not match
        """
        record = self.file_repo.get_by_id(file_id)
        if record is None:
            raise NotFoundError("File not found")

        if record.state != FileState.READY:
            raise NotFoundError("File not available")

        if not secrets.compare_digest(secret.encode("utf-8"), record.download_secret.encode("utf-8")):
            raise AccessDeniedError("Invalid download secret")

        return record

    def list_own(
        self,
        owner_id: str,
        tag: Optional[str] = None,
        page: int = 0,
        size: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Page[FileRecord]:
        return self._list(page, size, sort, tag, owner_id=owner_id)

    def list_public(
        self,
        tag: Optional[str] = None,
        page: int = 0,
        size: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Page[FileRecord]:
        return self._list(page, size, sort, tag, visibility=Visibility.PUBLIC)

    def _list(
        self,
        page: int,
        size: Optional[int],
        sort: Optional[str],
        tag: Optional[str],
        owner_id: Optional[str] = None,
        visibility: Optional[Visibility] = None,
    ) -> Page[FileRecord]:
        if page < 0:
            raise InvalidArgumentError("Page index must not be negative")

        if size is None:
            size = self.default_page_size
        if size < 1:
            raise InvalidArgumentError("Page size must be positive")
        size = min(size, self.max_page_size)

        sort_field, descending = parse_sort(sort)

        normalized_tag = None
        if tag is not None and tag.strip():
            normalized_tag = tag.strip().lower()

        items, total = self.file_repo.list_files(
            state=FileState.READY,
            owner_id=owner_id,
            visibility=visibility,
            tag=normalized_tag,
            sort_field=sort_field,
            descending=descending,
            limit=size,
            offset=page * size,
        )
        return Page(items=items, page=page, size=size, total=total)

    def _find_owned(self, file_id: str, owner_id: str) -> FileRecord:
        record = self.file_repo.get_by_id(file_id)
        if record is None:
            raise NotFoundError("File not found")

        if record.owner_id != owner_id:
            if record.visibility == Visibility.PRIVATE:
                raise NotFoundError("File not found")
            raise AccessDeniedError("You don't have permission to access this file")

        return record

    @staticmethod
    def _validate_file_name(file_name: Optional[str]) -> str:
        if file_name is None or not file_name.strip():
            raise InvalidArgumentError("File name cannot be empty")
        if len(file_name) > MAX_FILE_NAME_LENGTH:
            raise InvalidArgumentError(f"File name must be at most {MAX_FILE_NAME_LENGTH} characters")
        return file_name
