"""Size-bounded streaming copy into a file on disk."""

from __future__ import annotations

import inspect
import io
import os
from typing import Any, AsyncIterator

from microshop.logging.setup import get_logger
from .errors import LimitExceededError, StorageError, StorageIOError

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 32 * 1024


async def iter_chunks(source: Any, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """
    Yield non-empty byte chunks from an upload source.

    Accepted sources:
    - objects with ``read(size)``, sync (``BinaryIO``) or async (``UploadFile``)
    - async iterables of bytes (``Request.stream()``)
    - iterables of bytes
    - ``bytes``/``bytearray``/``memoryview``
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = io.BytesIO(bytes(source))

    read = getattr(source, "read", None)
    if callable(read):
        while True:
            chunk = read(chunk_size)
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                return
            yield bytes(chunk)
    elif hasattr(source, "__aiter__"):
        async for chunk in source:
            if chunk:
                yield bytes(chunk)
    else:
        for chunk in source:
            if chunk:
                yield bytes(chunk)


def discard(path: str | os.PathLike) -> None:
    """Remove a partially written file; a missing file is fine."""
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Failed to remove partial file {path}: {e}")


async def bounded_copy(
    source: Any,
    destination: str | os.PathLike,
    limit: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """
    Stream ``source`` into ``destination``, never writing more than ``limit`` bytes.

    The destination is removed whenever the copy does not complete: limit
    violations, read or write errors, client disconnects, timeouts and task
    cancellation all leave nothing behind.

    Args:
        source: Upload source (see iter_chunks)
        destination: File path to create or truncate
        limit: Maximum number of bytes accepted
        chunk_size: Read size for sources with ``read()``

    Returns:
        Number of bytes written

    Raises:
        LimitExceededError: If the source yields more than ``limit`` bytes
        StorageIOError: On any other failure while opening, reading or writing
    """
    try:
        out = open(destination, "wb")
    except OSError as e:
        raise StorageIOError(f"Unable to open {destination}: {e}") from e

    written = 0
    try:
        with out:
            async for chunk in iter_chunks(source, chunk_size):
                written += len(chunk)
                if written > limit:
                    raise LimitExceededError(limit, written)
                out.write(chunk)
    except StorageError:
        discard(destination)
        raise
    except Exception as e:
        discard(destination)
        raise StorageIOError(
            f"Copy to {destination} failed after {written} bytes: {e}") from e
    except BaseException:
        # Cancelled by client disconnect or server shutdown
        discard(destination)
        raise

    return written
