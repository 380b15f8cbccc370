"""Abstract storage backend for stored images."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, BinaryIO


class StoredObject:
    """A persisted file, keyed by collection id and filename."""

    def __init__(
        self,
        collection_id: int,
        filename: str,
        size_bytes: int,
        path: str,
    ):
        self.collection_id = collection_id
        self.filename = filename
        self.size_bytes = size_bytes
        self.path = path

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "collection_id": self.collection_id,
            "filename": self.filename,
            "size_bytes": self.size_bytes,
            "path": self.path,
        }

    def __repr__(self) -> str:
        return (
            f"StoredObject(collection_id={self.collection_id!r}, "
            f"filename={self.filename!r}, size_bytes={self.size_bytes!r})"
        )


class StorageBackend(ABC):
    """
    Abstract storage backend for image uploads.

    Implementations:
    - LocalStorageBackend: Store files on the local filesystem
    """

    @abstractmethod
    def resolve(self, collection_id: int | str, filename: str) -> Path:
        """
        Map a stored object key to its location.

        Raises:
            InvalidPathError: If the key fails validation
        """
        pass

    @abstractmethod
    async def save(
        self,
        collection_id: int | str,
        filename: str,
        source: Any,
    ) -> StoredObject:
        """
        Save an object, replacing any previous content under the same key.

        Args:
            collection_id: Collection the object belongs to
            filename: Object filename
            source: Byte stream to store

        Returns:
            StoredObject describing what was written

        Raises:
            InvalidPathError: If the key fails validation
            LimitExceededError: If the stream is larger than the maximum size
            StorageIOError: If the write fails
        """
        pass

    @abstractmethod
    async def get(self, path: str | Path) -> BinaryIO:
        """
        Open a previously resolved object path for reading.

        Raises:
            ObjectNotFoundError: If nothing is stored at ``path``
            StorageIOError: If the file cannot be opened
        """
        pass

    @abstractmethod
    def allocate_collection_id(self) -> int:
        """
        Reserve a new, unused collection id.

        Raises:
            StorageIOError: If the reservation cannot be made
        """
        pass
