"""Utility helper functions for FileVault."""

import secrets
import time
import uuid
from datetime import datetime, timezone

from common.constants import OBJECT_KEY_PREFIX


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def generate_object_store_key() -> str:
    """
    Generate a never-reused object store key.

    Returns:
        Key in format: file-{uuid4}-{monotonic ns}
    """
    return f"{OBJECT_KEY_PREFIX}{uuid.uuid4()}-{time.monotonic_ns()}"


def generate_download_secret() -> str:
    return secrets.token_hex(16)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(value: datetime) -> str:
    """
    Serialize a datetime for storage.

    Fixed-width UTC ISO format so stored values sort lexicographically.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value)


def normalize_name(name: str) -> str:
    return name.strip().lower()
