"""Shared pytest fixtures for all tests."""

import io
from pathlib import Path
from typing import Generator

import pytest

from filevault.database import init_database
from filevault.domain import FileMeta, Visibility
from filevault.service_locator import set_object_store
from filevault.services.file_coordinator import FileCoordinator
from filevault.services.file_service import FileService
from filevault.services.tag_service import TagService
from objectstore.local_store import LocalObjectStore


@pytest.fixture
def test_db(tmp_path, monkeypatch) -> Generator[Path, None, None]:
    """
    Create a temporary metadata database for each test.
    """
    db_path = tmp_path / "metadata.db"
    monkeypatch.setattr("filevault.database.DATABASE_PATH", str(db_path))
    init_database()
    yield db_path


@pytest.fixture
def object_store(tmp_path) -> LocalObjectStore:
    """
    Create an empty filesystem object store under tmp_path.
    """
    store = LocalObjectStore(tmp_path / "objects")
    store.ensure_directory()
    return store


@pytest.fixture
def file_service(test_db) -> FileService:
    return FileService(tag_service=TagService(max_tags=5), default_page_size=20, max_page_size=100)


@pytest.fixture
def coordinator(file_service, object_store) -> FileCoordinator:
    return FileCoordinator(object_store, file_service)


@pytest.fixture
def installed_store(object_store) -> Generator[LocalObjectStore, None, None]:
    """
    Install the temporary object store as the process-wide store.
    """
    set_object_store(object_store)
    yield object_store
    set_object_store(None)


@pytest.fixture
def upload(coordinator):
    """
    Upload raw bytes through the coordinator.

    Returns:
        Callable(owner_id, data, name=..., visibility=..., tags=..., content_type=...) -> FileRecord
    """
    def _upload(owner_id: str, data: bytes, name: str = "report.pdf",
                visibility: Visibility = Visibility.PRIVATE, tags=None,
                content_type: str = "application/pdf"):
        meta = FileMeta(file_name=name, visibility=visibility, content_type=content_type, tags=list(tags or []))
        return coordinator.upload(owner_id, io.BytesIO(data), meta, size=len(data))

    return _upload
