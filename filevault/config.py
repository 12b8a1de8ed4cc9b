"""Configuration settings for the FileVault server."""

import os


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


DATABASE_PATH = os.environ.get("FILEVAULT_DATABASE_PATH", "/app/data/metadata.db")

DATABASE_TIMEOUT_SECONDS = float(os.environ.get("FILEVAULT_DATABASE_TIMEOUT", "30"))

SERVER_HOST = os.environ.get("FILEVAULT_HOST", "0.0.0.0")

SERVER_PORT = int(os.environ.get("FILEVAULT_PORT", "8000"))

OBJECT_STORE_BACKEND = os.environ.get("FILEVAULT_OBJECT_STORE", "local")

OBJECT_STORE_PATH = os.environ.get("FILEVAULT_OBJECT_STORE_PATH", "/app/data/objects")

S3_ENDPOINT_URL = os.environ.get("FILEVAULT_S3_ENDPOINT_URL")

S3_ACCESS_KEY = os.environ.get("FILEVAULT_S3_ACCESS_KEY")

S3_SECRET_KEY = os.environ.get("FILEVAULT_S3_SECRET_KEY")

S3_BUCKET = os.environ.get("FILEVAULT_S3_BUCKET", "filevault")

S3_REGION = os.environ.get("FILEVAULT_S3_REGION", "us-east-1")

MAX_TAGS_PER_FILE = int(os.environ.get("FILEVAULT_MAX_TAGS", "5"))

JANITOR_RETENTION_HOURS = float(os.environ.get("FILEVAULT_JANITOR_RETENTION_HOURS", "4"))

JANITOR_INTERVAL_SECONDS = float(os.environ.get("FILEVAULT_JANITOR_INTERVAL_SECONDS", "3600"))

JANITOR_BATCH_SIZE = int(os.environ.get("FILEVAULT_JANITOR_BATCH_SIZE", "1000"))

JANITOR_MAX_BATCHES = int(os.environ.get("FILEVAULT_JANITOR_MAX_BATCHES", "100"))

JANITOR_ENABLED = _env_bool("FILEVAULT_JANITOR_ENABLED", "true")

DEFAULT_PAGE_SIZE = int(os.environ.get("FILEVAULT_DEFAULT_PAGE_SIZE", "20"))

MAX_PAGE_SIZE = int(os.environ.get("FILEVAULT_MAX_PAGE_SIZE", "100"))
