"""Error kinds raised by the file storage layer."""

from __future__ import annotations


class StorageError(Exception):
    """
    Base class for storage failures.

    ``str(exc)`` carries operator detail (it may include filesystem paths)
    and is meant for logs. ``public_message`` is safe to show to clients.
    """

    code = "STORAGE_ERROR"
    public_message = "Storage operation failed"


class InvalidPathError(StorageError):
    """Collection id or filename fails the grammar, or escapes the root."""

    code = "INVALID_PATH"
    public_message = "Invalid collection id or filename"


class LimitExceededError(StorageError):
    """Upload is larger than the configured maximum object size."""

    code = "LIMIT_EXCEEDED"
    public_message = "File exceeds the maximum allowed size"

    def __init__(self, limit: int, written: int | None = None):
        self.limit = limit
        self.written = written
        message = f"Upload exceeded limit of {limit} bytes"
        if written is not None:
            message += f" ({written} bytes received)"
        super().__init__(message)


class ObjectNotFoundError(StorageError):
    """Requested object does not exist."""

    code = "NOT_FOUND"
    public_message = "File not found"


class StorageIOError(StorageError):
    """Disk or stream failure, including client disconnects and timeouts."""

    code = "STORAGE_ERROR"
    public_message = "Unable to store file"
