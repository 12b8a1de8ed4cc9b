"""Stores blobs as plain files in a local directory."""

import os
import re
import uuid
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional

from common.constants import STREAM_PIECE_SIZE_BYTES
from common.logging_config import get_logger
from objectstore.base import ObjectNotFoundError, ObjectStoreClient, ObjectStoreError

logger = get_logger(__name__)

_VALID_KEY = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class LocalObjectStore(ObjectStoreClient):
    """
    Filesystem-backed object store.

    Each object is one file named after its key. Writes go to a temporary
    file that is renamed into place, so a crashed upload never leaves a
    partially written object under its final key.
    """

    def __init__(self, root: Path, piece_size: int = STREAM_PIECE_SIZE_BYTES):
        self.root = Path(root)
        self.piece_size = piece_size

    def ensure_directory(self) -> None:
        """Ensure the storage directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def get_object_path(self, key: str) -> Path:
        """
        Get file path for an object key.

        Raises:
            ValueError: If the key could escape the storage directory
        """
        if not _VALID_KEY.match(key):
            raise ValueError(f"Invalid object key: {key!r}")
        return self.root / key

    def put(self, key: str, stream: BinaryIO, size: int, content_type: Optional[str] = None) -> None:
        self.ensure_directory()
        target = self.get_object_path(key)
        temp_path = self.root / f".{key}.{uuid.uuid4().hex}.part"
        written = 0

        try:
            with open(temp_path, "wb") as f:
                while True:
                    piece = stream.read(self.piece_size)
                    if not piece:
                        break
                    f.write(piece)
                    written += len(piece)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, target)
        except OSError as e:
            logger.error(f"Failed to write object {key}: {e}")
            temp_path.unlink(missing_ok=True)
            raise ObjectStoreError(f"Failed to write object {key}") from e
        except Exception:
            temp_path.unlink(missing_ok=True)
            raise

        logger.info(f"Stored object {key} ({written} bytes)")

    def get(self, key: str) -> Iterator[bytes]:
        path = self.get_object_path(key)
        try:
            handle = open(path, "rb")
        except FileNotFoundError as e:
            raise ObjectNotFoundError(f"Object {key} not found") from e
        except OSError as e:
            raise ObjectStoreError(f"Failed to open object {key}") from e

        return self._stream_pieces(handle)

    def _stream_pieces(self, handle: BinaryIO) -> Iterator[bytes]:
        with handle:
            while True:
                piece = handle.read(self.piece_size)
                if not piece:
                    break
                yield piece

    def delete(self, key: str) -> None:
        path = self.get_object_path(key)
        try:
            path.unlink()
            logger.info(f"Deleted object {key}")
        except FileNotFoundError:
            logger.debug(f"Object {key} already absent")
        except OSError as e:
            raise ObjectStoreError(f"Failed to delete object {key}") from e

    def exists(self, key: str) -> bool:
        return self.get_object_path(key).exists()

    def list_keys(self) -> List[str]:
        """
        List all object keys in the storage directory.

        Returns:
            Sorted list of keys, excluding in-flight temporary files
        """
        if not self.root.exists():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_file() and not p.name.startswith("."))

    def ping(self) -> bool:
        self.ensure_directory()
        return os.access(self.root, os.W_OK)
