"""File storage module for image uploads and downloads."""

from __future__ import annotations

from .errors import (
    StorageError,
    InvalidPathError,
    LimitExceededError,
    ObjectNotFoundError,
    StorageIOError,
)
from .path_resolver import (
    COLLECTION_ID_PATTERN,
    FILENAME_PATTERN,
    PathResolver,
    is_valid_collection_id,
    is_valid_filename,
)
from .bounded_copy import bounded_copy
from .backend import StorageBackend, StoredObject
from .local_backend import LocalStorageBackend

__all__ = [
    "StorageError",
    "InvalidPathError",
    "LimitExceededError",
    "ObjectNotFoundError",
    "StorageIOError",
    "COLLECTION_ID_PATTERN",
    "FILENAME_PATTERN",
    "PathResolver",
    "is_valid_collection_id",
    "is_valid_filename",
    "bounded_copy",
    "StorageBackend",
    "StoredObject",
    "LocalStorageBackend",
]
