"""
FastAPI dependencies giving handlers access to per-app resources.
"""

from __future__ import annotations

from fastapi import Request

from microshop.core.storage.file import LocalStorageBackend
from microshop.core.products.store import ProductStore


def get_storage(request: Request) -> LocalStorageBackend:
    """
    Storage backend created during app startup.

    Args:
        request: FastAPI request

    Returns:
        The app's LocalStorageBackend
    """
    return request.app.state.storage


def get_product_store(request: Request) -> ProductStore:
    """Product store created during app startup."""
    return request.app.state.product_store
