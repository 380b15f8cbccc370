"""Local filesystem storage backend."""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import Any, BinaryIO

from microshop.config.settings import StorageSettings
from microshop.logging.setup import get_logger
from .backend import StorageBackend, StoredObject
from .bounded_copy import DEFAULT_CHUNK_SIZE, bounded_copy, discard
from .errors import ObjectNotFoundError, StorageIOError
from .path_resolver import (
    PathResolver,
    is_valid_collection_id,
    normalize_collection_id,
)

logger = get_logger(__name__)


class LocalStorageBackend(StorageBackend):
    """
    Local filesystem storage backend.

    Files are stored one per object, without sidecar metadata:
    - Layout: <base_path>/<collection id>/<filename>
    - Example: imagestore/1/meow.png

    Uploads are streamed to a hidden temporary file next to the target and
    moved into place only once the size-bounded copy has finished, so
    readers never observe partial content. Concurrent saves of the same key
    resolve to whichever finishes last.

    The backend keeps no state besides the root and the size limit, so one
    instance is shared by all requests.
    """

    def __init__(
        self,
        base_path: str | os.PathLike,
        max_file_size: int,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """
        Initialize local storage backend.

        Args:
            base_path: Storage root, created if missing
            max_file_size: Maximum size in bytes of one stored object
            chunk_size: Read size used while copying uploads

        Raises:
            ValueError: If the size limits are not positive
            StorageIOError: If the storage root cannot be created
        """
        if max_file_size <= 0:
            raise ValueError("max_file_size must be positive")
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

        self.resolver = PathResolver(base_path)
        self.base_path = self.resolver.root
        self.max_file_size = max_file_size
        self.chunk_size = chunk_size

        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(
                f"Unable to create storage root {self.base_path}: {e}") from e

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> LocalStorageBackend:
        """Create a backend from the storage section of the app settings."""
        return cls(
            settings.base_path,
            settings.max_file_size,
            chunk_size=settings.chunk_size,
        )

    def resolve(self, collection_id: int | str, filename: str) -> Path:
        return self.resolver.resolve(collection_id, filename)

    async def save(
        self,
        collection_id: int | str,
        filename: str,
        source: Any,
    ) -> StoredObject:
        """
        Save an object to the local filesystem.

        The key is validated before the source is touched. On failure no
        partial file remains, and a collection directory created only for
        this save is removed again (best effort).

        Args:
            collection_id: Collection the object belongs to
            filename: Object filename
            source: Byte stream to store (see bounded_copy.iter_chunks)

        Returns:
            StoredObject describing what was written

        Raises:
            InvalidPathError: If the key fails validation
            LimitExceededError: If the stream is larger than max_file_size
            StorageIOError: If the write fails
        """
        destination = self.resolver.resolve(collection_id, filename)
        directory = destination.parent
        created_dirs = self._make_dirs(directory)

        temp_path = directory / f".{filename}.{uuid.uuid4().hex}.part"
        completed = False
        try:
            size = await bounded_copy(
                source, temp_path, self.max_file_size, self.chunk_size)
            try:
                os.replace(temp_path, destination)
            except OSError as e:
                discard(temp_path)
                raise StorageIOError(
                    f"Unable to move upload into place at {destination}: {e}") from e
            completed = True
        finally:
            if not completed:
                self._remove_dirs(created_dirs)

        stored = StoredObject(
            collection_id=int(collection_id),
            filename=filename,
            size_bytes=size,
            path=self.resolver.relative(destination),
        )
        logger.debug(f"Stored {stored.path} ({size} bytes)")
        return stored

    async def get(self, path: str | os.PathLike) -> BinaryIO:
        """
        Open a stored object for reading.

        ``path`` is expected to come from resolve(); it is not re-validated.
        The caller owns the returned file object and must close it.

        Raises:
            ObjectNotFoundError: If no file exists at ``path``
            StorageIOError: If the file cannot be opened
        """
        try:
            return open(path, "rb")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise ObjectNotFoundError(f"File not found: {path}") from e
        except OSError as e:
            raise StorageIOError(f"Unable to open {path}: {e}") from e

    async def open_object(self, collection_id: int | str, filename: str) -> BinaryIO:
        """Resolve a key and open the stored object for reading."""
        return await self.get(self.resolve(collection_id, filename))

    def allocate_collection_id(self) -> int:
        """
        Reserve the next free numeric collection directory.

        The directory is created with an exclusive mkdir, so concurrent
        callers never receive the same id.
        """
        try:
            existing = [
                int(entry.name) for entry in self.base_path.iterdir()
                if entry.is_dir() and is_valid_collection_id(entry.name)
            ]
        except OSError as e:
            raise StorageIOError(
                f"Unable to list storage root {self.base_path}: {e}") from e

        candidate = max(existing, default=0) + 1
        while True:
            try:
                (self.base_path / str(candidate)).mkdir()
                return candidate
            except FileExistsError:
                candidate += 1
            except OSError as e:
                raise StorageIOError(
                    f"Unable to create collection {candidate}: {e}") from e

    def release_collection(self, collection_id: int | str) -> bool:
        """
        Remove a collection directory if it is empty.

        Returns:
            True if the directory was removed
        """
        directory = self.resolver.contain(normalize_collection_id(collection_id))
        try:
            directory.rmdir()
            return True
        except OSError:
            return False

    def _make_dirs(self, directory: Path) -> list[Path]:
        """Create ``directory`` and return the ones that did not exist, deepest first."""
        missing = []
        current = directory
        while current != self.base_path and not current.exists():
            missing.append(current)
            current = current.parent

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Unable to create {directory}: {e}") from e
        return missing

    def _remove_dirs(self, directories: list[Path]) -> None:
        # Another request may already be writing into the directory
        for directory in directories:
            try:
                directory.rmdir()
            except OSError:
                break
