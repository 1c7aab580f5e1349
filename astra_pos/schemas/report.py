from pydantic import BaseModel
from datetime import date
import enum

from astra_pos.schemas.common import Money
from astra_pos.schemas.product import ProductResponse
from astra_pos.schemas.sale import SaleResponse


class ReportPeriod(str, enum.Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class TopProduct(BaseModel):
    product_name: str
    quantity: int


class DailyRevenue(BaseModel):
    day: date
    total: Money


class DashboardResponse(BaseModel):
    """Headline figures for the dashboard."""
    todays_revenue: Money
    todays_sales_count: int
    low_stock: list[ProductResponse]
    top_products: list[TopProduct]
    daily_revenue: list[DailyRevenue]


class SalesSummaryResponse(BaseModel):
    """Totals for the sales report over a period."""
    period: ReportPeriod
    total_revenue: Money
    sales_count: int
    average_sale_value: Money
    sales: list[SaleResponse]
