"""File repository for database operations."""

import sqlite3
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from common.constants import HASH_NOT_COMPUTED
from common.logging_config import get_logger
from filevault.database import get_db_connection, use_connection
from filevault.domain import FileRecord, FileState, Visibility
from filevault.repositories.tag_repository import TagRepository
from filevault.utils import from_timestamp, generate_uuid, to_timestamp

logger = get_logger(__name__)

_FILE_COLUMNS = (
    "file_id, owner_id, file_name, file_name_lower, content_type, size_bytes, sha256, "
    "visibility, created_at, download_secret, object_store_key, state"
)

SORTABLE_COLUMNS = {
    "fileName": "file_name_lower",
    "uploadTs": "created_at",
    "contentType": "content_type",
    "sizeBytes": "size_bytes",
}


def _row_to_file(row: sqlite3.Row, tags: List[str]) -> FileRecord:
    return FileRecord(
        file_id=row["file_id"],
        owner_id=row["owner_id"],
        file_name=row["file_name"],
        file_name_lower=row["file_name_lower"],
        content_type=row["content_type"],
        size_bytes=row["size_bytes"],
        sha256=row["sha256"],
        visibility=Visibility(row["visibility"]),
        tags=tags,
        created_at=from_timestamp(row["created_at"]),
        download_secret=row["download_secret"],
        object_store_key=row["object_store_key"],
        state=FileState(row["state"]),
    )


def _rows_to_files(rows: List[sqlite3.Row], conn: sqlite3.Connection) -> List[FileRecord]:
    tags_by_file = TagRepository.get_tags_for_files([row["file_id"] for row in rows], conn=conn)
    return [_row_to_file(row, tags_by_file.get(row["file_id"], [])) for row in rows]


def _state_values(states: Iterable[FileState]) -> List[str]:
    return [FileState(state).value for state in states]


class FileRepository:
    @staticmethod
    def create_file(
        owner_id: str,
        file_name: str,
        file_name_lower: str,
        content_type: Optional[str],
        visibility: Visibility,
        tags: List[str],
        created_at: datetime,
        download_secret: str,
        object_store_key: str,
    ) -> FileRecord:
        """
        Insert a PENDING reservation together with its tag rows.

        Raises:
            sqlite3.IntegrityError: If a unique index rejects the record
        """
        file_id = generate_uuid()

        with get_db_connection() as conn:
            try:
                cursor = conn.cursor()
                cursor.execute(
                    f"""
                    INSERT INTO files ({_FILE_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        file_id,
                        owner_id,
                        file_name,
                        file_name_lower,
                        content_type,
                        0,
                        HASH_NOT_COMPUTED,
                        Visibility(visibility).value,
                        to_timestamp(created_at),
                        download_secret,
                        object_store_key,
                        FileState.PENDING.value,
                    )
                )
                TagRepository.add_file_tags(file_id, tags, conn=conn)
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise

        logger.debug(f"Reserved file record [file_id={file_id}] [owner_id={owner_id}]")

        return FileRecord(
            file_id=file_id,
            owner_id=owner_id,
            file_name=file_name,
            file_name_lower=file_name_lower,
            content_type=content_type,
            size_bytes=0,
            sha256=HASH_NOT_COMPUTED,
            visibility=Visibility(visibility),
            tags=list(tags),
            created_at=from_timestamp(to_timestamp(created_at)),
            download_secret=download_secret,
            object_store_key=object_store_key,
            state=FileState.PENDING,
        )

    @staticmethod
    def get_by_id(file_id: str, conn: Optional[sqlite3.Connection] = None) -> Optional[FileRecord]:
        with use_connection(conn) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {_FILE_COLUMNS} FROM files WHERE file_id = ?", (file_id,))
            row = cursor.fetchone()

            if row is None:
                return None

            tags = TagRepository.get_tags_for_files([file_id], conn=conn)[file_id]
            return _row_to_file(row, tags)

    @staticmethod
    def find_ready_by_owner_and_hash(owner_id: str, sha256: str) -> Optional[FileRecord]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_FILE_COLUMNS} FROM files WHERE owner_id = ? AND sha256 = ? AND state = ?",
                (owner_id, sha256, FileState.READY.value)
            )
            row = cursor.fetchone()

            if row is None:
                return None

            tags = TagRepository.get_tags_for_files([row["file_id"]], conn=conn)[row["file_id"]]
            return _row_to_file(row, tags)

    @staticmethod
    def finalize(file_id: str, sha256: str, size_bytes: int) -> Optional[FileRecord]:
        """
        Publish hash and size and flip PENDING -> READY in one statement.

        Returns:
            The READY record, or None if the record was no longer PENDING

        Raises:
            sqlite3.IntegrityError: If another READY record of the same owner has this hash
        """
        with get_db_connection() as conn:
            try:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    UPDATE files
                    SET sha256 = ?, size_bytes = ?, state = ?
                    WHERE file_id = ? AND state = ?
                    """,
                    (sha256, size_bytes, FileState.READY.value, file_id, FileState.PENDING.value)
                )
                if cursor.rowcount == 0:
                    conn.rollback()
                    return None

                record = FileRepository.get_by_id(file_id, conn=conn)
                conn.commit()
                return record
            except sqlite3.Error:
                conn.rollback()
                raise

    @staticmethod
    def transition_state(
        file_id: str,
        from_states: Iterable[FileState],
        to_state: FileState,
        owner_id: Optional[str] = None,
    ) -> Optional[FileRecord]:
        """
        Compare-and-set the state of a single file.

        Args:
            file_id: File to update
            from_states: States the file must currently be in
            to_state: New state
            owner_id: If given, the file must also belong to this owner

        Returns:
            The updated record, or None if no row matched
        """
        expected = _state_values(from_states)
        placeholders = ','.join('?' for _ in expected)
        query = f"UPDATE files SET state = ? WHERE file_id = ? AND state IN ({placeholders})"
        params = [FileState(to_state).value, file_id] + expected

        if owner_id is not None:
            query += " AND owner_id = ?"
            params.append(owner_id)

        with get_db_connection() as conn:
            try:
                cursor = conn.cursor()
                cursor.execute(query, params)
                if cursor.rowcount == 0:
                    conn.rollback()
                    return None

                record = FileRepository.get_by_id(file_id, conn=conn)
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise

        logger.debug(f"File state changed to {to_state.value} [file_id={file_id}]")
        return record

    @staticmethod
    def rename(file_id: str, owner_id: str, file_name: str, file_name_lower: str) -> Optional[FileRecord]:
        """
        Rename a READY file owned by owner_id.

        Returns:
            The renamed record, or None if no READY file of this owner matched

        Raises:
            sqlite3.IntegrityError: If the owner already has a file with this name
        """
        with get_db_connection() as conn:
            try:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    UPDATE files
                    SET file_name = ?, file_name_lower = ?
                    WHERE file_id = ? AND owner_id = ? AND state = ?
                    """,
                    (file_name, file_name_lower, file_id, owner_id, FileState.READY.value)
                )
                if cursor.rowcount == 0:
                    conn.rollback()
                    return None

                record = FileRepository.get_by_id(file_id, conn=conn)
                conn.commit()
                return record
            except sqlite3.Error:
                conn.rollback()
                raise

    @staticmethod
    def delete_file(file_id: str) -> bool:
        """
        Physically remove a file record and its tag rows.

        Returns:
            True if a row was deleted
        """
        with get_db_connection() as conn:
            try:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM file_tags WHERE file_id = ?", (file_id,))
                cursor.execute("DELETE FROM files WHERE file_id = ?", (file_id,))
                deleted = cursor.rowcount > 0
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"Failed to delete file [file_id={file_id}]: {e}", exc_info=True)
                raise

        logger.debug(f"File record removed [file_id={file_id}] [deleted={deleted}]")
        return deleted

    @staticmethod
    def find_stale(
        states: Iterable[FileState],
        cutoff: datetime,
        limit: int,
        exclude_ids: Iterable[str] = (),
    ) -> List[FileRecord]:
        """
        Find the oldest files in the given states created before cutoff.
        """
        state_values = _state_values(states)
        exclude_ids = list(exclude_ids)

        query = f"""
            SELECT {_FILE_COLUMNS}
            FROM files
            WHERE state IN ({','.join('?' for _ in state_values)})
            AND created_at < ?
        """
        params: list = state_values + [to_timestamp(cutoff)]

        if exclude_ids:
            query += f" AND file_id NOT IN ({','.join('?' for _ in exclude_ids)})"
            params += exclude_ids

        query += " ORDER BY created_at LIMIT ?"
        params.append(limit)

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return _rows_to_files(cursor.fetchall(), conn)

    @staticmethod
    def claim(file_ids: List[str], from_states: Iterable[FileState], to_state: FileState) -> List[str]:
        """
        Claim a batch of files by moving each one from from_states to to_state.

        All compare-and-set updates run in one transaction. Files that another
        worker already moved are skipped.

        Returns:
            IDs of the files this call actually claimed
        """
        if not file_ids:
            return []

        expected = _state_values(from_states)
        placeholders = ','.join('?' for _ in expected)
        claimed = []

        with get_db_connection() as conn:
            try:
                cursor = conn.cursor()
                for file_id in file_ids:
                    cursor.execute(
                        f"UPDATE files SET state = ? WHERE file_id = ? AND state IN ({placeholders})",
                        [FileState(to_state).value, file_id] + expected
                    )
                    if cursor.rowcount == 1:
                        claimed.append(file_id)
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise

        return claimed

    @staticmethod
    def list_files(
        state: FileState,
        owner_id: Optional[str] = None,
        visibility: Optional[Visibility] = None,
        tag: Optional[str] = None,
        sort_field: Optional[str] = None,
        descending: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[FileRecord], int]:
        """
        List files in one state with optional owner, visibility and tag filters.

        Returns:
            Tuple of (records on the requested page, total matching count)
        """
        conditions = ["f.state = ?"]
        params: list = [FileState(state).value]

        if owner_id is not None:
            conditions.append("f.owner_id = ?")
            params.append(owner_id)
        if visibility is not None:
            conditions.append("f.visibility = ?")
            params.append(Visibility(visibility).value)
        if tag is not None:
            conditions.append("EXISTS (SELECT 1 FROM file_tags t WHERE t.file_id = f.file_id AND t.tag = ?)")
            params.append(tag)

        where = " AND ".join(conditions)

        if sort_field is None:
            order_by = "f.created_at DESC, f.file_id"
        else:
            column = SORTABLE_COLUMNS[sort_field]
            direction = "DESC" if descending else "ASC"
            order_by = f"f.{column} {direction}, f.file_id"

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT COUNT(*) AS total FROM files f WHERE {where}", params)
            total = cursor.fetchone()["total"]

            cursor.execute(
                f"""
                SELECT {', '.join('f.' + c.strip() for c in _FILE_COLUMNS.split(','))}
                FROM files f
                WHERE {where}
                ORDER BY {order_by}
                LIMIT ? OFFSET ?
                """,
                params + [limit, offset]
            )
            return _rows_to_files(cursor.fetchall(), conn), total
