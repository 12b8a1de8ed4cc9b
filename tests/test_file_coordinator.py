"""Tests for upload, delete and download workflows across both stores."""

import hashlib
import io
from unittest.mock import patch

import pytest

from filevault.domain import FileMeta, FileState, Visibility
from filevault.exceptions import (
    AccessDeniedError,
    ContentConflictError,
    DeleteFailedError,
    InvalidStateError,
    NameConflictError,
    NotFoundError,
    UploadFailedError,
)
from filevault.repositories.file_repository import FileRepository
from objectstore.base import ObjectNotFoundError, ObjectStoreError


class FailingStream(io.RawIOBase):
    """Stream that yields some bytes and then fails."""

    def __init__(self):
        self._sent = False

    def readable(self):
        return True

    def read(self, size=-1):
        if not self._sent:
            self._sent = True
            return b"partial"
        raise IOError("connection reset by peer")


def all_records():
    items = []
    for state in FileState:
        found, _ = FileRepository.list_files(state, limit=1000)
        items.extend(found)
    return items


class TestUpload:
    def test_upload_stores_content_and_hash(self, upload, object_store):
        data = b"quarterly numbers" * 1000

        record = upload("alice", data, name="q3.csv", tags=["Finance"], content_type="text/csv")

        assert record.state == FileState.READY
        assert record.sha256 == hashlib.sha256(data).hexdigest()
        assert record.size_bytes == len(data)
        assert record.tags == ["finance"]
        assert record.content_type == "text/csv"
        assert b"".join(object_store.get(record.object_store_key)) == data

    def test_upload_size_is_bytes_actually_read(self, coordinator):
        data = b"12345"
        meta = FileMeta(file_name="n.txt", visibility=Visibility.PRIVATE)

        record = coordinator.upload("alice", io.BytesIO(data), meta)

        assert record.size_bytes == 5

    def test_duplicate_content_is_rejected_and_compensated(self, upload, object_store):
        first = upload("alice", b"same bytes", name="one.txt")

        with pytest.raises(ContentConflictError):
            upload("alice", b"same bytes", name="two.txt")

        failed = [record for record in all_records() if record.file_name == "two.txt"]
        assert len(failed) == 1
        assert failed[0].state == FileState.FAILED
        assert object_store.list_keys() == [first.object_store_key]

    def test_name_conflict_fails_before_any_bytes_move(self, upload, object_store):
        upload("alice", b"v1", name="doc.txt")
        keys_before = object_store.list_keys()

        with pytest.raises(NameConflictError):
            upload("alice", b"v2", name="DOC.txt")

        assert object_store.list_keys() == keys_before
        assert len(all_records()) == 1

    def test_stream_failure_compensates(self, coordinator, object_store):
        meta = FileMeta(file_name="broken.bin", visibility=Visibility.PRIVATE)

        with pytest.raises(UploadFailedError) as exc_info:
            coordinator.upload("alice", FailingStream(), meta)

        assert isinstance(exc_info.value.__cause__, ObjectStoreError)
        [record] = all_records()
        assert record.state == FileState.FAILED
        assert object_store.list_keys() == []

    def test_object_store_failure_is_wrapped(self, coordinator, object_store):
        meta = FileMeta(file_name="a.bin", visibility=Visibility.PRIVATE)

        with patch.object(object_store, "put", side_effect=ObjectStoreError("bucket offline")):
            with pytest.raises(UploadFailedError) as exc_info:
                coordinator.upload("alice", io.BytesIO(b"data"), meta)

        assert isinstance(exc_info.value.__cause__, ObjectStoreError)
        assert all_records()[0].state == FileState.FAILED

    def test_compensation_failures_are_swallowed(self, coordinator, object_store):
        meta = FileMeta(file_name="a.bin", visibility=Visibility.PRIVATE)

        with patch.object(object_store, "put", side_effect=ObjectStoreError("write failed")), \
                patch.object(object_store, "delete", side_effect=ObjectStoreError("delete failed")), \
                patch.object(coordinator.file_service, "mark_failed", side_effect=RuntimeError("db down")):
            with pytest.raises(UploadFailedError):
                coordinator.upload("alice", io.BytesIO(b"data"), meta)

        assert all_records()[0].state == FileState.PENDING

    def test_blob_deleted_when_metadata_store_is_down(self, coordinator, object_store):
        meta = FileMeta(file_name="a.bin", visibility=Visibility.PRIVATE)
        real_put = object_store.put

        def put_then_fail(key, stream, size, content_type=None):
            real_put(key, stream, size, content_type)
            raise ObjectStoreError("connection reset after write")

        with patch.object(object_store, "put", side_effect=put_then_fail), \
                patch.object(coordinator.file_service, "mark_failed", side_effect=RuntimeError("db down")), \
                patch.object(coordinator.file_service.file_repo, "get_by_id", side_effect=RuntimeError("db down")):
            with pytest.raises(UploadFailedError):
                coordinator.upload("alice", io.BytesIO(b"data"), meta)

        assert object_store.list_keys() == []

    def test_compensation_leaves_blob_of_ready_record(self, coordinator, object_store, upload):
        record = upload("alice", b"keep me")

        coordinator._compensate_failed_upload(record)

        assert FileRepository.get_by_id(record.file_id).state == FileState.READY
        assert object_store.exists(record.object_store_key)


class TestDelete:
    def test_delete_removes_blob_and_metadata(self, coordinator, upload, object_store):
        record = upload("alice", b"bye")

        coordinator.delete(record.file_id, "alice")

        assert FileRepository.get_by_id(record.file_id) is None
        assert not object_store.exists(record.object_store_key)

    def test_double_delete_is_not_found(self, coordinator, upload):
        record = upload("alice", b"bye")
        coordinator.delete(record.file_id, "alice")

        with pytest.raises(NotFoundError):
            coordinator.delete(record.file_id, "alice")

    def test_delete_by_other_owner(self, coordinator, upload):
        record = upload("alice", b"mine")

        with pytest.raises(AccessDeniedError):
            coordinator.delete(record.file_id, "bob")

        assert FileRepository.get_by_id(record.file_id).state == FileState.READY

    def test_delete_pending_is_invalid_state(self, coordinator, file_service):
        record = file_service.reserve("alice", FileMeta(file_name="p.txt", visibility=Visibility.PRIVATE))

        with pytest.raises(InvalidStateError):
            coordinator.delete(record.file_id, "alice")

    def test_blob_delete_failure_restores_ready(self, coordinator, upload, object_store):
        record = upload("alice", b"sticky")

        with patch.object(object_store, "delete", side_effect=ObjectStoreError("offline")):
            with pytest.raises(DeleteFailedError) as exc_info:
                coordinator.delete(record.file_id, "alice")

        assert isinstance(exc_info.value.__cause__, ObjectStoreError)
        assert FileRepository.get_by_id(record.file_id).state == FileState.READY

    def test_metadata_delete_failure_restores_ready(self, coordinator, upload):
        record = upload("alice", b"sticky")

        with patch.object(coordinator.file_service, "delete_metadata", side_effect=RuntimeError("db error")):
            with pytest.raises(DeleteFailedError):
                coordinator.delete(record.file_id, "alice")

        assert FileRepository.get_by_id(record.file_id).state == FileState.READY


class TestDownload:
    def test_download_round_trip(self, coordinator, upload):
        data = bytes(range(256)) * 600
        record = upload("alice", data)

        found, stream = coordinator.open_download(record.file_id, record.download_secret)

        assert found.file_id == record.file_id
        assert b"".join(stream) == data

    def test_download_with_wrong_secret(self, coordinator, upload):
        record = upload("alice", b"secret stuff")

        with pytest.raises(AccessDeniedError):
            coordinator.open_download(record.file_id, "f" * 32)

    def test_download_of_deleting_file(self, coordinator, upload, file_service):
        record = upload("alice", b"going away")
        file_service.mark_for_deletion(record.file_id, "alice")

        with pytest.raises(NotFoundError):
            coordinator.open_download(record.file_id, record.download_secret)

    def test_download_with_missing_blob(self, coordinator, upload, object_store):
        record = upload("alice", b"lost")
        object_store.delete(record.object_store_key)

        with pytest.raises(ObjectNotFoundError):
            coordinator.open_download(record.file_id, record.download_secret)


class TestDelegates:
    def test_rename_and_list(self, coordinator, upload):
        record = upload("alice", b"a", name="old.txt", visibility=Visibility.PUBLIC)

        coordinator.rename(record.file_id, "alice", "new.txt")

        own = coordinator.list_own("alice")
        public = coordinator.list_public()
        assert [r.file_name for r in own.items] == ["new.txt"]
        assert [r.file_name for r in public.items] == ["new.txt"]
