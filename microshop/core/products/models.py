from pydantic import BaseModel, Field
from typing import Optional


class ProductData(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    price: float = Field(gt=0)
    sku: str = Field(pattern=r"^[a-z]+-[a-z]+-[0-9]+$")


class Product(ProductData):
    id: int
    created_on: str
    updated_on: str
    deleted_on: Optional[str] = None


class ProductListResponse(BaseModel):
    products: list[Product]
