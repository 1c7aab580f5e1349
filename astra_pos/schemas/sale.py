from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime

from astra_pos.schemas.common import MAX_COUNT, Money, Price


class LineItemRequest(BaseModel):
    """One product/quantity pair of a sale request."""
    product_id: int = Field(..., description="ID of the product being sold")
    quantity: int = Field(..., ge=1, le=MAX_COUNT, description="Units sold")


class SaleCreate(BaseModel):
    """Schema for committing a sale."""
    items: list[LineItemRequest] = Field(..., min_length=1)


class SaleItemResponse(BaseModel):
    """A committed line item with its name and price snapshot."""
    product_id: int
    product_name: str
    quantity: int
    unit_price: Price

    model_config = ConfigDict(from_attributes=True)

    @property
    def line_total(self):
        return self.unit_price * self.quantity


class SaleResponse(BaseModel):
    """Schema for sale response."""
    id: int
    created_at: datetime
    items: list[SaleItemResponse]
    subtotal: Money
    tax: Money
    total: Money
    cashier_id: int
    cashier_name: str

    model_config = ConfigDict(from_attributes=True)


class SaleListResponse(BaseModel):
    """Schema for paginated sale list response."""
    items: list[SaleResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
