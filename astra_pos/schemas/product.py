from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional

from astra_pos.schemas.common import MAX_COUNT, Price


class ProductBase(BaseModel):
    """Base schema for Product with common attributes."""
    name: str = Field(..., min_length=1, max_length=255, description="Product name")
    price: Price = Field(..., description="Unit price (must be non-negative)")
    stock: int = Field(..., ge=0, le=MAX_COUNT, description="Available stock (must be non-negative)")


class ProductCreate(ProductBase):
    """Schema for creating a new product."""
    pass


class ProductReplace(ProductBase):
    """Request body for a wholesale product update; every field is required."""
    pass


class ProductUpdate(ProductBase):
    """A full replacement record for an existing product."""
    id: int


class ProductResponse(ProductBase):
    """Schema for product response including all fields."""
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProductListResponse(BaseModel):
    """Schema for product list response."""
    items: list[ProductResponse]
    total: int
