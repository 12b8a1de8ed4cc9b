"""Custom exception classes for FileVault."""


class VaultException(Exception):
    """
    Base exception class for all FileVault errors.
    """
    pass


class InvalidArgumentError(VaultException):
    """
    Raised when request data fails validation (tags, names, paging).
    """
    pass


class FileAlreadyExistsError(VaultException):
    """
    Raised when a write would violate a per-owner uniqueness rule.

    Attributes:
        conflict_type: "name" or "content"
    """

    conflict_type = "unknown"

    def __init__(self, message: str, conflict_type: str = None):
        super().__init__(message)
        if conflict_type is not None:
            self.conflict_type = conflict_type


class NameConflictError(FileAlreadyExistsError):
    """
    Raised when the owner already has a file with the same normalized name.
    """
    conflict_type = "name"


class ContentConflictError(FileAlreadyExistsError):
    """
    Raised when the owner already has a READY file with identical content.
    """
    conflict_type = "content"


class NotFoundError(VaultException):
    """
    Raised when a file does not exist or must not be revealed to the caller.
    """
    pass


class AccessDeniedError(VaultException):
    """
    Raised when the caller can see a file but may not perform the operation.
    """
    pass


class InvalidStateError(VaultException):
    """
    Raised when an operation is not valid for the file's lifecycle state.
    """
    pass


class ConcurrentModificationError(VaultException):
    """
    Raised when a conditional update lost a race with another writer.
    """
    pass


class DeleteFailedError(VaultException):
    """
    Raised when blob or metadata removal fails after a file was marked DELETING.
    """
    pass


class UploadFailedError(VaultException):
    """
    Raised when an upload fails for an unexpected storage or I/O reason.
    """
    pass
