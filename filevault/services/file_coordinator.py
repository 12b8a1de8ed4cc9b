"""Workflows that span the metadata store and the object store."""

from typing import BinaryIO, Iterator, Optional, Tuple

from common.logging_config import get_logger
from filevault.domain import FileMeta, FileRecord, FileState, Page
from filevault.exceptions import ContentConflictError, DeleteFailedError, UploadFailedError
from filevault.services.file_service import FileService
from objectstore.base import ObjectStoreClient
from objectstore.checksum import HashingReader

logger = get_logger(__name__)


class FileCoordinator:
    """
    Drives uploads and deletes across both stores.

    The metadata record is always written first, so every object key in the
    store can be traced back to a record. Records left behind by a failed
    workflow are reclaimed by the janitor.
    """

    def __init__(self, object_store: ObjectStoreClient, file_service: Optional[FileService] = None):
        self.object_store = object_store
        self.file_service = file_service or FileService()

    def upload(self, owner_id: str, stream: BinaryIO, meta: FileMeta, size: int = -1) -> FileRecord:
        """
        Reserve a record, stream the content to the object store and finalize.

        Args:
            owner_id: Uploading user
            stream: Readable binary source, consumed once
            meta: Name, visibility, content type and tags
            size: Declared content length, or -1 if unknown

        Returns:
            The READY file record

        Raises:
            InvalidArgumentError: If the metadata is invalid (nothing is reserved)
            NameConflictError: If the name is taken (nothing is reserved)
            ContentConflictError: If identical content is already stored for the owner
            UploadFailedError: On any other failure after reservation
        """
        record = self.file_service.reserve(owner_id, meta)

        try:
            reader = HashingReader(stream)
            self.object_store.put(record.object_store_key, reader, size, meta.content_type)
            sha256 = reader.hexdigest()

            finalized = self.file_service.finalize(record.file_id, sha256, reader.bytes_read)
        except ContentConflictError:
            logger.info(f"Duplicate content detected during upload of {record.file_id}, cleaning up")
            self._compensate_failed_upload(record)
            raise
        except Exception as e:
            logger.error(f"Upload failed for reserved file {record.file_id}: {e}", exc_info=True)
            self._compensate_failed_upload(record)
            raise UploadFailedError(f"Upload failed: {e}") from e

        logger.info(f"Successfully uploaded file {finalized.file_id} ({finalized.file_name}) [owner_id={owner_id}]")
        return finalized

    def _compensate_failed_upload(self, record: FileRecord) -> None:
        """
        Best-effort cleanup after a failed upload.

        Never raises; anything left behind is picked up by the janitor.
        """
        try:
            self.file_service.mark_failed(record.file_id)
        except Exception as e:
            logger.error(f"Failed to mark file {record.file_id} as FAILED: {e}", exc_info=True)

        current = None
        try:
            current = self.file_service.file_repo.get_by_id(record.file_id)
        except Exception as e:
            logger.error(f"Failed to re-read file {record.file_id} during compensation: {e}", exc_info=True)

        if current is not None and current.state in (FileState.READY, FileState.DELETING):
            logger.warning(
                f"Skipping blob cleanup for file {record.file_id} in state {current.state.value}"
            )
            return

        try:
            self.object_store.delete(record.object_store_key)
            logger.debug(f"Compensated failed upload: {record.file_id} -> {record.object_store_key}")
        except Exception as e:
            logger.error(
                f"Compensation failed for: {record.file_id} -> {record.object_store_key}: {e}",
                exc_info=True
            )

    def delete(self, file_id: str, owner_id: str) -> None:
        """
        Delete a READY file of the caller together with its content.

        Raises:
            NotFoundError, AccessDeniedError, InvalidStateError: From the mark step
            DeleteFailedError: If the content or metadata could not be removed
        """
        record = self.file_service.mark_for_deletion(file_id, owner_id)

        try:
            self.object_store.delete(record.object_store_key)
            self.file_service.delete_metadata(file_id)
        except Exception as e:
            logger.error(f"Failed to delete file {file_id}: {e}", exc_info=True)
            try:
                self.file_service.restore_ready(file_id)
            except Exception as rollback_error:
                logger.error(
                    f"Failed to rollback file state after delete failure: {file_id}: {rollback_error}",
                    exc_info=True
                )
            raise DeleteFailedError(f"Delete failed: {e}") from e

        logger.info(f"Successfully deleted file {file_id} [owner_id={owner_id}]")

    def open_download(self, file_id: str, secret: str) -> Tuple[FileRecord, Iterator[bytes]]:
        """
        Resolve a download link and open the content stream.

        Raises:
            NotFoundError: If the file does not exist or is not READY
            AccessDeniedError: If the secret does not match
            ObjectNotFoundError: If the content is missing from the object store
        """
        record = self.file_service.get_file_for_download(file_id, secret)
        return record, self.object_store.get(record.object_store_key)

    def rename(self, file_id: str, owner_id: str, new_name: str) -> FileRecord:
        return self.file_service.rename(file_id, owner_id, new_name)

    def list_own(self, owner_id: str, tag: Optional[str] = None, page: int = 0,
                 size: Optional[int] = None, sort: Optional[str] = None) -> Page[FileRecord]:
        return self.file_service.list_own(owner_id, tag=tag, page=page, size=size, sort=sort)

    def list_public(self, tag: Optional[str] = None, page: int = 0,
                    size: Optional[int] = None, sort: Optional[str] = None) -> Page[FileRecord]:
        return self.file_service.list_public(tag=tag, page=page, size=size, sort=sort)
