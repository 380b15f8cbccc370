"""
Product catalog API router.

Provides list, add and update endpoints over the in-memory catalog.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from microshop.logging.setup import get_logger
from microshop.core.api.dependencies import get_product_store
from microshop.core.api.errors import not_found_error
from microshop.core.products.models import Product, ProductData, ProductListResponse
from microshop.core.products.store import ProductNotFoundError, ProductStore

logger = get_logger(__name__)

router = APIRouter(tags=["products"])


@router.get("/", response_model=ProductListResponse)
def get_products(store: ProductStore = Depends(get_product_store)):
    """List all products."""
    logger.debug("Handle GET products")
    return {"products": store.list_products()}


@router.post("/", response_model=Product, status_code=status.HTTP_201_CREATED)
def add_product(
    product: ProductData,
    store: ProductStore = Depends(get_product_store),
):
    """Add a product; the id is assigned by the catalog."""
    created = store.add_product(product)
    logger.info(f"Added product {created.id}: {created.name}")
    return created


@router.put("/{product_id}", response_model=Product)
def update_product(
    product_id: int,
    product: ProductData,
    store: ProductStore = Depends(get_product_store),
):
    """
    Replace an existing product.

    Raises:
        HTTPException:
            - 404: No product with this id
    """
    try:
        updated = store.update_product(product_id, product)
    except ProductNotFoundError:
        logger.warning(f"Update for unknown product {product_id}")
        not_found_error("Product", str(product_id))

    logger.info(f"Updated product {product_id}")
    return updated
