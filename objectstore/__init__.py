"""Blob storage backends."""

from objectstore.base import ObjectNotFoundError, ObjectStoreClient, ObjectStoreError
from objectstore.local_store import LocalObjectStore
from objectstore.s3_store import S3ObjectStore

__all__ = [
    "ObjectStoreClient",
    "ObjectStoreError",
    "ObjectNotFoundError",
    "LocalObjectStore",
    "S3ObjectStore",
]
