"""S3-compatible object store client (MinIO, AWS S3, R2)."""

from typing import Any, BinaryIO, Iterator, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from common.constants import STREAM_PIECE_SIZE_BYTES
from common.logging_config import get_logger
from objectstore.base import ObjectNotFoundError, ObjectStoreClient, ObjectStoreError

logger = get_logger(__name__)

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


class S3ObjectStore(ObjectStoreClient):
    """
    boto3 client wrapper for a single bucket.
    """

    def __init__(
        self,
        bucket_name: str,
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region_name: str = "us-east-1",
        client: Any = None,
        piece_size: int = STREAM_PIECE_SIZE_BYTES,
    ):
        self.bucket_name = bucket_name
        self.piece_size = piece_size
        self.client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region_name,
        )

    def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet."""
        try:
            self.client.head_bucket(Bucket=self.bucket_name)
            logger.info(f"Bucket '{self.bucket_name}' already exists")
        except ClientError:
            logger.info(f"Creating bucket '{self.bucket_name}'")
            try:
                self.client.create_bucket(Bucket=self.bucket_name)
            except (BotoCoreError, ClientError) as e:
                raise ObjectStoreError(f"Failed to create bucket {self.bucket_name}") from e
            logger.info(f"Bucket '{self.bucket_name}' created successfully")
        except BotoCoreError as e:
            raise ObjectStoreError(f"Object store unreachable: {e}") from e

    def put(self, key: str, stream: BinaryIO, size: int, content_type: Optional[str] = None) -> None:
        extra_args = {"ContentType": content_type} if content_type else None
        try:
            self.client.upload_fileobj(stream, self.bucket_name, key, ExtraArgs=extra_args)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to upload object {key}: {e}")
            raise ObjectStoreError(f"Failed to upload object {key}") from e

        logger.info(f"Uploaded object {key} ({size} bytes declared)")

    def get(self, key: str) -> Iterator[bytes]:
        try:
            response = self.client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES:
                raise ObjectNotFoundError(f"Object {key} not found") from e
            raise ObjectStoreError(f"Failed to download object {key}") from e
        except BotoCoreError as e:
            raise ObjectStoreError(f"Failed to download object {key}") from e

        return response["Body"].iter_chunks(chunk_size=self.piece_size)

    def delete(self, key: str) -> None:
        # S3 reports success for absent keys
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(f"Failed to delete object {key}") from e
        logger.info(f"Deleted object {key}")

    def ping(self) -> bool:
        try:
            self.client.head_bucket(Bucket=self.bucket_name)
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Object store ping failed: {e}")
            return False
        return True
