"""Provides SHA-256 checksum helpers for streamed uploads."""

import hashlib
from typing import BinaryIO


class IncrementalChecksumCalculator:
    """
    Calculate SHA-256 checksum incrementally for streaming data.
    """

    def __init__(self):
        self._hasher = hashlib.sha256()
        self._finalized = False
        self.bytes_seen = 0

    def update(self, data: bytes) -> None:
        """
        Update checksum with new data.

        Args:
            data: Bytes to add to checksum calculation
        """
        if self._finalized:
            raise ValueError("Cannot update after finalization")
        self._hasher.update(data)
        self.bytes_seen += len(data)

    def finalize(self) -> str:
        """
        Finalize checksum calculation and return result.

        Returns:
            Hexadecimal string representation of SHA-256 hash
        """
        self._finalized = True
        return self._hasher.hexdigest()


class HashingReader:
    """
    Read-only stream wrapper that hashes every byte handed to the consumer.

    Wraps the upload source so that an object store write and the content
    hash are produced in a single pass over the data.
    """

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self._calculator = IncrementalChecksumCalculator()

    def read(self, size: int = -1) -> bytes:
        data = self._stream.read(size)
        if data:
            self._calculator.update(data)
        return data

    def readable(self) -> bool:
        return True

    @property
    def bytes_read(self) -> int:
        return self._calculator.bytes_seen

    def hexdigest(self) -> str:
        return self._calculator.finalize()
