"""
Image storage API router.

Provides the two upload protocols and retrieval for stored images:
- POST /images/{id}/{filename}: the raw request body is the file
- POST /: multipart form with one or more file parts
- GET /images/{id}/{filename}: stored bytes with content type inferred
  from the filename
"""

from __future__ import annotations

import os
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import FileResponse, JSONResponse
from starlette.datastructures import UploadFile

from microshop.logging.setup import get_logger
from microshop.core.storage.file import (
    LocalStorageBackend,
    StorageError,
    StorageIOError,
    InvalidPathError,
    StoredObject,
    is_valid_collection_id,
    is_valid_filename,
)
from microshop.core.storage.file.path_resolver import (
    is_within_root,
    normalize_collection_id,
)
from microshop.core.api.dependencies import get_storage
from microshop.core.api.errors import (
    not_found_error,
    payload_too_large_error,
    raise_storage_error,
    storage_error_status,
    validation_error,
)

logger = get_logger(__name__)

router = APIRouter(tags=["images"])


def image_url(stored: StoredObject) -> str:
    """Public retrieval URL of a stored object."""
    return f"/images/{stored.path}"


def log_storage_failure(exc: StorageError, target: str) -> None:
    """Client errors are warnings; I/O faults are logged with full detail."""
    if isinstance(exc, StorageIOError):
        logger.error(f"Storage failure for {target}: {exc}", exc_info=True)
    else:
        logger.warning(f"Rejected upload {target}: {exc}")


def declared_length(request: Request) -> int | None:
    """Content-Length header as an int, or None when absent or malformed."""
    value = request.headers.get("content-length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


@router.post(
    "/images/{collection_id}/{filename}",
    status_code=status.HTTP_201_CREATED,
)
async def upload_image(
    collection_id: str,
    filename: str,
    request: Request,
    storage: LocalStorageBackend = Depends(get_storage),
):
    """
    Store the raw request body as ``<collection_id>/<filename>``.

    The key is validated and the declared Content-Length checked before any
    of the body is read. A failed upload is not retried by the server.

    Returns:
        Stored object description with its retrieval URL

    Raises:
        HTTPException:
            - 400: Invalid collection id or filename
            - 413: Body larger than the maximum file size
            - 500: Storage failure
    """
    target = f"{collection_id}/{filename}"
    logger.info(f"REST upload request: {target}")

    try:
        storage.resolve(collection_id, filename)
    except InvalidPathError as e:
        log_storage_failure(e, target)
        raise_storage_error(e)

    length = declared_length(request)
    if length is not None and length > storage.max_file_size:
        logger.warning(
            f"Rejected upload {target}: declared {length} bytes, "
            f"limit {storage.max_file_size}")
        payload_too_large_error(storage.max_file_size)

    try:
        stored = await storage.save(collection_id, filename, request.stream())
    except StorageError as e:
        log_storage_failure(e, target)
        raise_storage_error(e)

    logger.info(f"Stored {stored.path}: {stored.size_bytes} bytes")
    return {**stored.to_dict(), "url": image_url(stored)}


def part_result(
    field: str,
    filename: str | None,
    stored: StoredObject | None = None,
    error: StorageError | None = None,
) -> dict[str, Any]:
    """Per-part outcome reported by the multipart endpoint."""
    result: dict[str, Any] = {"field": field, "filename": filename}
    if stored is not None:
        result.update(status="stored", url=image_url(stored), **stored.to_dict())
    else:
        result.update(
            status="failed",
            status_code=storage_error_status(error),
            code=error.code,
            message=error.public_message,
        )
    return result


@router.post("/")
async def upload_multipart(
    request: Request,
    storage: LocalStorageBackend = Depends(get_storage),
):
    """
    Store every file part of a multipart form.

    The optional ``id`` form field names the collection; without it a new
    collection id is assigned. Each part is saved under its own filename
    and succeeds or fails independently: parts already stored stay stored
    when a later part fails.

    Returns:
        201 when every part was stored, 207 when at least one failed, with
        one result entry per file part

    Raises:
        HTTPException:
            - 400: No file parts, or an invalid ``id`` field
            - 500: A new collection id could not be assigned
    """
    async with request.form() as form:
        parts = [
            (field, value) for field, value in form.multi_items()
            if isinstance(value, UploadFile)
        ]
        if not parts:
            validation_error(["Form contains no file parts"], field="file")

        requested_id = form.get("id")
        allocated = False
        if isinstance(requested_id, str) and requested_id.strip():
            collection_id = requested_id.strip()
            if not is_valid_collection_id(collection_id):
                validation_error(
                    ["id must be a non-negative integer"], field="id")
        else:
            try:
                collection_id = str(storage.allocate_collection_id())
            except StorageIOError as e:
                log_storage_failure(e, "new collection")
                raise_storage_error(e)
            allocated = True

        logger.info(
            f"Multipart upload request: collection={collection_id}, parts={len(parts)}")

        results = []
        for field, upload in parts:
            filename = upload.filename
            target = f"{collection_id}/{filename}"
            if not is_valid_filename(filename):
                error = InvalidPathError(f"Invalid filename: {filename!r}")
                log_storage_failure(error, target)
                results.append(part_result(field, filename, error=error))
                continue

            try:
                stored = await storage.save(collection_id, filename, upload)
            except StorageError as e:
                log_storage_failure(e, target)
                results.append(part_result(field, filename, error=e))
                continue

            logger.info(f"Stored {stored.path}: {stored.size_bytes} bytes")
            results.append(part_result(field, filename, stored=stored))

    stored_count = sum(1 for result in results if result["status"] == "stored")
    if allocated and stored_count == 0:
        storage.release_collection(collection_id)

    return JSONResponse(
        status_code=(
            status.HTTP_201_CREATED if stored_count == len(results)
            else status.HTTP_207_MULTI_STATUS
        ),
        content={
            "collection_id": int(collection_id),
            "stored": stored_count,
            "failed": len(results) - stored_count,
            "files": results,
        },
    )


@router.get("/images/{collection_id}/{filename}")
async def get_image(
    collection_id: str,
    filename: str,
    storage: LocalStorageBackend = Depends(get_storage),
):
    """
    Serve a stored image.

    Only keys matching the upload grammar are looked up, so nothing else
    under the storage root is reachable. Content type, ETag, Last-Modified
    and range requests are handled by the file responder.

    Raises:
        HTTPException:
            - 404: Key is malformed or nothing is stored under it
    """
    if not (is_valid_collection_id(collection_id) and is_valid_filename(filename)):
        not_found_error("File")

    path = os.path.join(
        storage.base_path, normalize_collection_id(collection_id), filename)
    if not is_within_root(storage.base_path, path) or not os.path.isfile(path):
        not_found_error("File")

    logger.debug(f"Serving {collection_id}/{filename}")
    return FileResponse(
        path,
        headers={"X-Content-Type-Options": "nosniff"},
    )
