"""Service locator for shared components."""

from pathlib import Path
from typing import Optional

from common.logging_config import get_logger
from filevault.config import (
    OBJECT_STORE_BACKEND,
    OBJECT_STORE_PATH,
    S3_ACCESS_KEY,
    S3_BUCKET,
    S3_ENDPOINT_URL,
    S3_REGION,
    S3_SECRET_KEY,
)
from filevault.exceptions import VaultException
from objectstore.base import ObjectStoreClient
from objectstore.local_store import LocalObjectStore
from objectstore.s3_store import S3ObjectStore

logger = get_logger(__name__)

_object_store: Optional[ObjectStoreClient] = None


def build_object_store(backend: str = OBJECT_STORE_BACKEND) -> ObjectStoreClient:
    """
    Create the object store configured for this process.

    Raises:
        VaultException: If the backend name is unknown
    """
    if backend == "local":
        store = LocalObjectStore(Path(OBJECT_STORE_PATH))
        store.ensure_directory()
        logger.info(f"Using local object store at {OBJECT_STORE_PATH}")
        return store

    if backend == "s3":
        store = S3ObjectStore(
            bucket_name=S3_BUCKET,
            endpoint_url=S3_ENDPOINT_URL,
            access_key=S3_ACCESS_KEY,
            secret_key=S3_SECRET_KEY,
            region_name=S3_REGION,
        )
        store.ensure_bucket()
        logger.info(f"Using S3 object store bucket '{S3_BUCKET}' at {S3_ENDPOINT_URL or 'AWS'}")
        return store

    raise VaultException(f"Unknown object store backend: {backend}")


def set_object_store(store: Optional[ObjectStoreClient]):
    """Set global object store instance"""
    global _object_store
    _object_store = store


def get_object_store() -> ObjectStoreClient:
    """Get global object store instance, building it on first use"""
    global _object_store
    if _object_store is None:
        _object_store = build_object_store()
    return _object_store
