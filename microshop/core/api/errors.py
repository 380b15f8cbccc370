"""
Standardized error response handling for the microshop APIs.

This module provides utilities for creating consistent error responses
across all API endpoints, ensuring a uniform error format for clients.
"""

from __future__ import annotations

from typing import Any, NoReturn
from fastapi import HTTPException, status

from microshop.core.storage.file import (
    StorageError,
    InvalidPathError,
    LimitExceededError,
    ObjectNotFoundError,
)


STORAGE_ERROR_STATUS: dict[type[StorageError], int] = {
    InvalidPathError: status.HTTP_400_BAD_REQUEST,
    LimitExceededError: status.HTTP_413_CONTENT_TOO_LARGE,
    ObjectNotFoundError: status.HTTP_404_NOT_FOUND,
}


def error_response(
    message: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    details: list[str] | None = None,
    field: str | None = None,
    code: str | None = None
) -> dict[str, Any]:
    """
    Create a standardized error response.

    Args:
        message: Human-readable error summary
        status_code: HTTP status code (default: 400)
        details: List of specific error details (optional)
        field: Field name that caused the error (optional)
        code: Error code for programmatic handling (optional)

    Returns:
        Standardized error response dictionary

    Examples:
        >>> error_response("Invalid collection id or filename", code="INVALID_PATH")
        {'error': {'message': 'Invalid collection id or filename', 'code': 'INVALID_PATH'}}
    """
    error_dict: dict[str, Any] = {"message": message}

    if details is not None:
        error_dict["details"] = details

    if field is not None:
        error_dict["field"] = field

    if code is not None:
        error_dict["code"] = code

    return {"error": error_dict}


def raise_error(
    message: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    details: list[str] | None = None,
    field: str | None = None,
    code: str | None = None
) -> NoReturn:
    """
    Raise an HTTPException with standardized error format.

    Raises:
        HTTPException: With standardized error response format

    Examples:
        >>> raise_error("Product not found", status_code=404, code="NOT_FOUND")
    """
    raise HTTPException(
        status_code=status_code,
        detail=error_response(message, status_code, details, field, code)
    )


def storage_error_status(exc: StorageError) -> int:
    """HTTP status for a storage error kind; unknown kinds are server errors."""
    for kind, status_code in STORAGE_ERROR_STATUS.items():
        if isinstance(exc, kind):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def raise_storage_error(exc: StorageError) -> NoReturn:
    """
    Translate a storage error into its HTTP response.

    Only the error's public message and code reach the client.
    """
    raise_error(
        message=exc.public_message,
        status_code=storage_error_status(exc),
        code=exc.code
    )


# Common error response helpers
def validation_error(details: list[str], field: str | None = None) -> NoReturn:
    """Raise a validation error with details."""
    raise_error(
        message="Validation failed",
        status_code=status.HTTP_400_BAD_REQUEST,
        details=details,
        field=field,
        code="VALIDATION_ERROR"
    )


def not_found_error(resource: str, resource_id: str | None = None) -> NoReturn:
    """Raise a not found error."""
    message = f"{resource} not found"
    if resource_id:
        message = f"{resource} '{resource_id}' not found"

    raise_error(
        message=message,
        status_code=status.HTTP_404_NOT_FOUND,
        code="NOT_FOUND"
    )


def payload_too_large_error(limit: int) -> NoReturn:
    """Raise a payload too large error."""
    raise_error(
        message=LimitExceededError.public_message,
        status_code=status.HTTP_413_CONTENT_TOO_LARGE,
        details=[f"Maximum size is {limit} bytes"],
        code=LimitExceededError.code
    )

