"""Integration tests for the metadata repositories."""

import sqlite3
from datetime import timedelta

import pytest

from filevault.database import get_db_connection, is_unique_violation
from filevault.domain import FileState, Visibility
from filevault.repositories.file_repository import FileRepository
from filevault.repositories.tag_repository import TagRepository
from filevault.utils import generate_download_secret, generate_object_store_key, utcnow


def create(owner_id="user-1", name="a.txt", visibility=Visibility.PRIVATE, tags=None, created_at=None):
    return FileRepository.create_file(
        owner_id=owner_id,
        file_name=name,
        file_name_lower=name.strip().lower(),
        content_type="text/plain",
        visibility=visibility,
        tags=tags or [],
        created_at=created_at or utcnow(),
        download_secret=generate_download_secret(),
        object_store_key=generate_object_store_key(),
    )


class TestCreateAndRead:
    def test_create_file_returns_pending_record(self, test_db):
        record = create(tags=["alpha", "beta"])

        assert record.state == FileState.PENDING
        assert record.sha256 == "PENDING"
        assert record.size_bytes == 0
        assert record.tags == ["alpha", "beta"]

        stored = FileRepository.get_by_id(record.file_id)
        assert stored == record

    def test_get_by_id_missing(self, test_db):
        assert FileRepository.get_by_id("missing") is None

    def test_same_normalized_name_is_rejected(self, test_db):
        create(name="Report.PDF")

        with pytest.raises(sqlite3.IntegrityError) as exc_info:
            create(name="report.pdf")

        assert is_unique_violation(exc_info.value, "files.owner_id, files.file_name_lower")

    def test_same_name_for_different_owners(self, test_db):
        create(owner_id="user-1", name="a.txt")
        other = create(owner_id="user-2", name="a.txt")

        assert other.owner_id == "user-2"

    def test_failed_insert_leaves_no_tag_rows(self, test_db):
        create(name="a.txt")

        with pytest.raises(sqlite3.IntegrityError):
            create(name="A.txt", tags=["orphan"])

        with get_db_connection() as conn:
            count = conn.execute("SELECT COUNT(*) FROM file_tags WHERE tag = 'orphan'").fetchone()[0]
        assert count == 0


class TestFinalize:
    def test_finalize_sets_hash_size_and_state(self, test_db):
        record = create()

        finalized = FileRepository.finalize(record.file_id, "ab" * 32, 42)

        assert finalized.state == FileState.READY
        assert finalized.sha256 == "ab" * 32
        assert finalized.size_bytes == 42

    def test_finalize_only_applies_to_pending(self, test_db):
        record = create()
        FileRepository.transition_state(record.file_id, (FileState.PENDING,), FileState.FAILED)

        assert FileRepository.finalize(record.file_id, "ab" * 32, 42) is None
        assert FileRepository.get_by_id(record.file_id).state == FileState.FAILED

    def test_ready_hash_is_unique_per_owner(self, test_db):
        first = create(name="a.txt")
        second = create(name="b.txt")
        FileRepository.finalize(first.file_id, "cd" * 32, 1)

        with pytest.raises(sqlite3.IntegrityError) as exc_info:
            FileRepository.finalize(second.file_id, "cd" * 32, 1)

        assert is_unique_violation(exc_info.value, "files.owner_id, files.sha256")
        assert FileRepository.get_by_id(second.file_id).state == FileState.PENDING

    def test_pending_records_may_share_placeholder_hash(self, test_db):
        create(name="a.txt")
        create(name="b.txt")

        with get_db_connection() as conn:
            count = conn.execute("SELECT COUNT(*) FROM files WHERE sha256 = 'PENDING'").fetchone()[0]
        assert count == 2

    def test_find_ready_by_owner_and_hash(self, test_db):
        record = create()
        assert FileRepository.find_ready_by_owner_and_hash("user-1", "ef" * 32) is None

        FileRepository.finalize(record.file_id, "ef" * 32, 3)

        found = FileRepository.find_ready_by_owner_and_hash("user-1", "ef" * 32)
        assert found.file_id == record.file_id
        assert FileRepository.find_ready_by_owner_and_hash("user-2", "ef" * 32) is None


class TestTransitions:
    def test_transition_state_matches_expected_state(self, test_db):
        record = create()

        updated = FileRepository.transition_state(record.file_id, (FileState.PENDING,), FileState.FAILED)

        assert updated.state == FileState.FAILED

    def test_transition_state_miss_returns_none(self, test_db):
        record = create()

        assert FileRepository.transition_state(record.file_id, (FileState.READY,), FileState.DELETING) is None
        assert FileRepository.get_by_id(record.file_id).state == FileState.PENDING

    def test_transition_state_scoped_to_owner(self, test_db):
        record = create(owner_id="user-1")
        FileRepository.finalize(record.file_id, "01" * 32, 1)

        assert FileRepository.transition_state(
            record.file_id, (FileState.READY,), FileState.DELETING, owner_id="user-2"
        ) is None
        assert FileRepository.transition_state(
            record.file_id, (FileState.READY,), FileState.DELETING, owner_id="user-1"
        ).state == FileState.DELETING

    def test_rename_requires_ready(self, test_db):
        record = create(name="old.txt")

        assert FileRepository.rename(record.file_id, "user-1", "new.txt", "new.txt") is None

        FileRepository.finalize(record.file_id, "02" * 32, 1)
        renamed = FileRepository.rename(record.file_id, "user-1", "New.txt", "new.txt")
        assert renamed.file_name == "New.txt"
        assert renamed.file_name_lower == "new.txt"

    def test_delete_file_removes_tags(self, test_db):
        record = create(tags=["x"])

        assert FileRepository.delete_file(record.file_id) is True
        assert FileRepository.get_by_id(record.file_id) is None
        assert TagRepository.get_tags_for_files([record.file_id]) == {record.file_id: []}
        assert FileRepository.delete_file(record.file_id) is False


class TestJanitorQueries:
    def test_find_stale_respects_cutoff_and_states(self, test_db):
        now = utcnow()
        old_pending = create(name="old-pending", created_at=now - timedelta(hours=5))
        old_failed = create(name="old-failed", created_at=now - timedelta(hours=6))
        FileRepository.transition_state(old_failed.file_id, (FileState.PENDING,), FileState.FAILED)
        old_ready = create(name="old-ready", created_at=now - timedelta(hours=7))
        FileRepository.finalize(old_ready.file_id, "03" * 32, 1)
        create(name="fresh", created_at=now - timedelta(hours=1))

        stale = FileRepository.find_stale(
            (FileState.PENDING, FileState.FAILED), now - timedelta(hours=4), limit=10
        )

        assert [record.file_id for record in stale] == [old_failed.file_id, old_pending.file_id]

    def test_find_stale_limit_and_exclusions(self, test_db):
        now = utcnow()
        records = [create(name=f"f{i}", created_at=now - timedelta(hours=10 - i)) for i in range(3)]
        states = (FileState.PENDING, FileState.FAILED)

        assert len(FileRepository.find_stale(states, now, limit=2)) == 2

        remaining = FileRepository.find_stale(states, now, limit=10, exclude_ids=[records[0].file_id])
        assert [record.file_id for record in remaining] == [records[1].file_id, records[2].file_id]

    def test_claim_skips_records_already_moved(self, test_db):
        first = create(name="a")
        second = create(name="b")
        FileRepository.finalize(second.file_id, "04" * 32, 1)

        claimed = FileRepository.claim(
            [first.file_id, second.file_id], (FileState.PENDING, FileState.FAILED), FileState.JANITOR
        )

        assert claimed == [first.file_id]
        assert FileRepository.get_by_id(first.file_id).state == FileState.JANITOR
        assert FileRepository.get_by_id(second.file_id).state == FileState.READY

    def test_claim_empty_list(self, test_db):
        assert FileRepository.claim([], (FileState.PENDING,), FileState.JANITOR) == []


class TestListFiles:
    def _ready(self, name, owner_id="user-1", visibility=Visibility.PRIVATE, tags=None, size=1, created_at=None):
        record = create(owner_id=owner_id, name=name, visibility=visibility, tags=tags, created_at=created_at)
        return FileRepository.finalize(record.file_id, name.encode().hex().ljust(64, "0")[:64], size)

    def test_lists_only_ready_files_of_owner(self, test_db):
        self._ready("a.txt")
        create(name="pending.txt")
        self._ready("other.txt", owner_id="user-2")

        items, total = FileRepository.list_files(FileState.READY, owner_id="user-1")

        assert total == 1
        assert [record.file_name for record in items] == ["a.txt"]

    def test_public_listing_and_tag_filter(self, test_db):
        self._ready("a.txt", visibility=Visibility.PUBLIC, tags=["docs"])
        self._ready("b.txt", visibility=Visibility.PUBLIC, tags=["misc"])
        self._ready("c.txt", visibility=Visibility.PRIVATE, tags=["docs"])

        items, total = FileRepository.list_files(FileState.READY, visibility=Visibility.PUBLIC, tag="docs")

        assert total == 1
        assert items[0].file_name == "a.txt"
        assert items[0].tags == ["docs"]

    def test_sorting_and_paging(self, test_db):
        self._ready("b.txt", size=30)
        self._ready("a.txt", size=10)
        self._ready("c.txt", size=20)

        by_name, _ = FileRepository.list_files(FileState.READY, owner_id="user-1", sort_field="fileName")
        assert [record.file_name for record in by_name] == ["a.txt", "b.txt", "c.txt"]

        by_size, _ = FileRepository.list_files(
            FileState.READY, owner_id="user-1", sort_field="sizeBytes", descending=True
        )
        assert [record.size_bytes for record in by_size] == [30, 20, 10]

        page, total = FileRepository.list_files(
            FileState.READY, owner_id="user-1", sort_field="fileName", limit=2, offset=2
        )
        assert total == 3
        assert [record.file_name for record in page] == ["c.txt"]


class TestTagRepository:
    def test_create_and_list_tags(self, test_db):
        now = utcnow()
        TagRepository.create_tag("zeta", now)
        TagRepository.create_tag("alpha", now)

        assert TagRepository.get_all_tags() == ["alpha", "zeta"]
        assert TagRepository.find_existing(["alpha", "beta"]) == {"alpha"}

    def test_duplicate_tag_raises_integrity_error(self, test_db):
        TagRepository.create_tag("alpha", utcnow())

        with pytest.raises(sqlite3.IntegrityError):
            TagRepository.create_tag("alpha", utcnow())

    def test_tags_keep_insertion_order(self, test_db):
        record = create(tags=["zeta", "alpha", "mid"])

        assert TagRepository.get_tags_for_files([record.file_id])[record.file_id] == ["zeta", "alpha", "mid"]
