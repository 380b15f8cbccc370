"""Map (collection id, filename) pairs to locations under the storage root."""

from __future__ import annotations

import os
import re
from pathlib import Path

from .errors import InvalidPathError


# Ids are kept within a signed 64-bit integer
MAX_COLLECTION_ID_DIGITS = 18
COLLECTION_ID_PATTERN = r"[0-9]{1,%d}" % MAX_COLLECTION_ID_DIGITS
FILENAME_PATTERN = r"[A-Za-z]+\.[a-z]{3}"

_COLLECTION_ID_RE = re.compile(COLLECTION_ID_PATTERN)
_FILENAME_RE = re.compile(FILENAME_PATTERN)


def is_valid_filename(filename: str) -> bool:
    """Letters-only stem followed by a three letter lowercase extension."""
    return isinstance(filename, str) and bool(_FILENAME_RE.fullmatch(filename))


def is_valid_collection_id(collection_id: int | str) -> bool:
    """Non-negative integer of at most 18 digits, or its decimal string form."""
    if isinstance(collection_id, bool):
        return False
    if isinstance(collection_id, int):
        return 0 <= collection_id < 10 ** MAX_COLLECTION_ID_DIGITS
    return isinstance(collection_id, str) and bool(
        _COLLECTION_ID_RE.fullmatch(collection_id))


def normalize_collection_id(collection_id: int | str) -> str:
    """
    Return the directory segment for a collection id.

    ``"007"`` and ``7`` name the same collection.

    Raises:
        InvalidPathError: If the id is not a non-negative integer
    """
    if not is_valid_collection_id(collection_id):
        raise InvalidPathError(f"Invalid collection id: {collection_id!r}")
    return str(int(collection_id))


def is_within_root(root: str | os.PathLike, candidate: str | os.PathLike) -> bool:
    """Lexical containment check; both paths are normalized, nothing is read from disk."""
    root_path = os.path.normpath(os.path.abspath(root))
    candidate_path = os.path.normpath(os.path.abspath(candidate))
    if candidate_path == root_path:
        return False
    return os.path.commonpath([root_path, candidate_path]) == root_path


class PathResolver:
    """
    Resolve stored object locations as ``<root>/<collection id>/<filename>``.

    Two independent checks guard every resolution: the id and filename must
    match the accepted grammar, and the cleaned result must lie under the
    root. The second check holds even if the grammar is loosened later.
    Resolution is pure and never touches the filesystem.
    """

    def __init__(self, root: str | os.PathLike):
        self.root = Path(os.path.normpath(os.path.abspath(root)))

    def resolve(self, collection_id: int | str, filename: str) -> Path:
        """
        Resolve a stored object to an absolute path under the root.

        Args:
            collection_id: Non-negative integer collection id
            filename: Object filename, e.g. ``meow.png``

        Returns:
            Absolute path of the object

        Raises:
            InvalidPathError: If either part fails the grammar or the
                result would escape the root
        """
        segment = normalize_collection_id(collection_id)
        if not is_valid_filename(filename):
            raise InvalidPathError(f"Invalid filename: {filename!r}")
        return self.contain(os.path.join(segment, filename))

    def contain(self, relative: str | os.PathLike) -> Path:
        """
        Join ``relative`` onto the root and verify the result stays inside.

        Raises:
            InvalidPathError: If the cleaned path is the root itself or
                lies outside it
        """
        candidate = os.path.normpath(os.path.join(self.root, relative))
        if not is_within_root(self.root, candidate):
            raise InvalidPathError(f"Path escapes storage root: {relative!r}")
        return Path(candidate)

    def relative(self, path: str | os.PathLike) -> str:
        """Return ``path`` relative to the root using forward slashes."""
        return Path(path).relative_to(self.root).as_posix()
