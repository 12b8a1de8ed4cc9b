"""Database schema and connection management for SQLite."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from filevault.config import DATABASE_PATH, DATABASE_TIMEOUT_SECONDS


def init_database() -> None:
    """
    Initialize database and create tables if they don't exist.
    """
    db_path = Path(DATABASE_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection() as conn:
        cursor = conn.cursor()

        cursor.execute("PRAGMA journal_mode=WAL")

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS files (
                file_id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                file_name TEXT NOT NULL,
                file_name_lower TEXT NOT NULL,
                content_type TEXT,
                size_bytes INTEGER NOT NULL DEFAULT 0,
                sha256 TEXT NOT NULL,
                visibility TEXT NOT NULL,
                created_at TEXT NOT NULL,
                download_secret TEXT NOT NULL,
                object_store_key TEXT NOT NULL,
                state TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS file_tags (
                file_id TEXT NOT NULL,
                tag TEXT NOT NULL,
                PRIMARY KEY(file_id, tag),
                FOREIGN KEY(file_id) REFERENCES files(file_id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tags (
                name TEXT PRIMARY KEY,
                created_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_files_owner_name
            ON files(owner_id, file_name_lower)
        """)

        # Content uniqueness only binds READY files; PENDING/FAILED duplicates are transient
        cursor.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_files_owner_hash_ready
            ON files(owner_id, sha256) WHERE state = 'READY'
        """)

        cursor.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_files_object_store_key
            ON files(object_store_key)
        """)

        cursor.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_files_download_secret
            ON files(download_secret)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_files_state_created ON files(state, created_at)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_files_owner_state ON files(owner_id, state)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_files_visibility_state ON files(visibility, state)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_file_tags_tag ON file_tags(tag)
        """)

        conn.commit()


@contextmanager
def get_db_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.

    Each call opens its own connection; concurrent writers wait on the
    busy timeout instead of failing immediately.
    """
    conn = sqlite3.connect(DATABASE_PATH, timeout=DATABASE_TIMEOUT_SECONDS)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def use_connection(conn: Optional[sqlite3.Connection] = None) -> Generator[sqlite3.Connection, None, None]:
    """
    Yield the caller's connection, or open a short-lived one.

    Lets repository methods join a caller's transaction when one is passed.
    """
    if conn is not None:
        yield conn
        return
    with get_db_connection() as own_conn:
        yield own_conn


def is_unique_violation(error: sqlite3.IntegrityError, index_columns: str) -> bool:
    """
    Check whether an IntegrityError was raised by a given unique constraint.

    Args:
        error: The IntegrityError raised by sqlite3
        index_columns: Column list as SQLite reports it, e.g. "files.owner_id, files.file_name_lower"
    """
    message = str(error)
    return "UNIQUE constraint failed" in message and index_columns in message
