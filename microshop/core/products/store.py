"""In-memory product catalog."""

from __future__ import annotations

import threading
from datetime import datetime, timezone

from microshop.core.products.models import Product, ProductData


class ProductNotFoundError(LookupError):
    """Raised when a product id is not in the catalog."""

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


DEFAULT_PRODUCTS = [
    ProductData(
        name="Latte",
        description="Frothy milky coffee",
        price=2.45,
        sku="prod-bev-001",
    ),
    ProductData(
        name="Espresso",
        description="Short and strong coffee without milk",
        price=1.99,
        sku="prod-bev-002",
    ),
]


class ProductStore:
    """
    Thread-safe in-memory product list.

    Ids are assigned sequentially starting at 1 and never reused.
    """

    def __init__(self, seed: list[ProductData] | None = None):
        self._lock = threading.Lock()
        self._products: dict[int, Product] = {}
        self._next_id = 1
        for data in DEFAULT_PRODUCTS if seed is None else seed:
            self.add_product(data)

    def list_products(self) -> list[Product]:
        """Return all products ordered by id."""
        with self._lock:
            return [self._products[key] for key in sorted(self._products)]

    def get_product(self, product_id: int) -> Product:
        with self._lock:
            try:
                return self._products[product_id]
            except KeyError:
                raise ProductNotFoundError(product_id) from None

    def add_product(self, data: ProductData) -> Product:
        """Add a product and return it with its assigned id."""
        with self._lock:
            timestamp = _now()
            product = Product(
                id=self._next_id,
                created_on=timestamp,
                updated_on=timestamp,
                **data.model_dump(),
            )
            self._products[product.id] = product
            self._next_id += 1
            return product

    def update_product(self, product_id: int, data: ProductData) -> Product:
        """
        Replace a product's fields, keeping its id and creation time.

        Raises:
            ProductNotFoundError: If no product has ``product_id``
        """
        with self._lock:
            current = self._products.get(product_id)
            if current is None:
                raise ProductNotFoundError(product_id)
            product = Product(
                id=product_id,
                created_on=current.created_on,
                updated_on=_now(),
                **data.model_dump(),
            )
            self._products[product_id] = product
            return product
