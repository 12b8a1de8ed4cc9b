"""Object store client contract shared by all blob backends."""

from abc import ABC, abstractmethod
from typing import BinaryIO, Iterator, Optional


class ObjectStoreError(Exception):
    """
    Raised when the object store cannot complete a request.
    """
    pass


class ObjectNotFoundError(ObjectStoreError):
    """
    Raised when a requested object key does not exist.
    """
    pass


class ObjectStoreClient(ABC):
    """
    Flat key/value blob store.

    Keys are opaque and never reused by callers. Implementations hold no
    knowledge of file metadata or lifecycle state.
    """

    @abstractmethod
    def put(self, key: str, stream: BinaryIO, size: int, content_type: Optional[str] = None) -> None:
        """
        Store the bytes read from stream under key.

        The stream is consumed exactly once, front to back, so callers can
        hash it while it is being written.
        """

    @abstractmethod
    def get(self, key: str) -> Iterator[bytes]:
        """
        Open the object for reading and return an iterator over its bytes.

        Raises:
            ObjectNotFoundError: If the key does not exist
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the object. Deleting a missing key is not an error."""

    def ping(self) -> bool:
        """Return True if the backend is reachable."""
        return True
