"""Tag repository for database operations."""

import sqlite3
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from common.logging_config import get_logger
from filevault.database import get_db_connection, use_connection
from filevault.utils import to_timestamp

logger = get_logger(__name__)


class TagRepository:
    @staticmethod
    def add_file_tags(file_id: str, tags: List[str], conn: sqlite3.Connection) -> None:
        """
        Attach tags to a file inside the caller's transaction.
        """
        if not tags:
            return

        cursor = conn.cursor()
        cursor.executemany(
            "INSERT OR IGNORE INTO file_tags (file_id, tag) VALUES (?, ?)",
            [(file_id, tag) for tag in tags]
        )

    @staticmethod
    def get_tags_for_files(file_ids: List[str], conn: Optional[sqlite3.Connection] = None) -> Dict[str, List[str]]:
        if not file_ids:
            return {}

        with use_connection(conn) as conn:
            placeholders = ','.join('?' for _ in file_ids)
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT file_id, tag FROM file_tags WHERE file_id IN ({placeholders}) ORDER BY file_id, rowid",
                list(file_ids)
            )
            result: Dict[str, List[str]] = {file_id: [] for file_id in file_ids}
            for row in cursor.fetchall():
                result[row["file_id"]].append(row["tag"])
            return result

    @staticmethod
    def find_existing(names: Iterable[str]) -> Set[str]:
        names = list(names)
        if not names:
            return set()

        with get_db_connection() as conn:
            placeholders = ','.join('?' for _ in names)
            cursor = conn.cursor()
            cursor.execute(f"SELECT name FROM tags WHERE name IN ({placeholders})", names)
            return {row["name"] for row in cursor.fetchall()}

    @staticmethod
    def create_tag(name: str, created_at: datetime) -> None:
        """
        Insert a tag into the registry.

        Raises:
            sqlite3.IntegrityError: If the tag already exists
        """
        with get_db_connection() as conn:
            try:
                conn.execute(
                    "INSERT INTO tags (name, created_at) VALUES (?, ?)",
                    (name, to_timestamp(created_at))
                )
                conn.commit()
            except sqlite3.IntegrityError:
                conn.rollback()
                raise

    @staticmethod
    def get_all_tags() -> List[str]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM tags ORDER BY name")
            return [row["name"] for row in cursor.fetchall()]
