from collections import Counter, OrderedDict
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from astra_pos.config import get_settings
from astra_pos.database import Database
from astra_pos.schemas.product import ProductResponse
from astra_pos.schemas.report import (
    DashboardResponse,
    DailyRevenue,
    ReportPeriod,
    SalesSummaryResponse,
    TopProduct,
)
from astra_pos.schemas.sale import SaleResponse
from astra_pos.services.product_service import ProductService
from astra_pos.services.sale_service import SaleService, CENT
from astra_pos.utils.cache import CacheService, cache_service, DASHBOARD_PREFIX

TOP_PRODUCTS = 5
CHART_DAYS = 7


def _day(sale: SaleResponse):
    created = sale.created_at
    if created.tzinfo is not None:
        created = created.astimezone(timezone.utc)
    return created.date()


def period_start(period: ReportPeriod, now: datetime) -> Optional[datetime]:
    """Start of the reporting window containing ``now`` (None for all time)."""
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if period == ReportPeriod.TODAY:
        return today
    if period == ReportPeriod.WEEK:
        # Weeks start on Sunday
        return today - timedelta(days=(today.weekday() + 1) % 7)
    if period == ReportPeriod.MONTH:
        return today.replace(day=1)
    return None


def filter_sales(sales: List[SaleResponse], period: ReportPeriod, now: datetime) -> List[SaleResponse]:
    start = period_start(period, now)
    if start is None:
        return list(sales)
    return [s for s in sales if _day(s) >= start.date()]


def build_dashboard(
    products: List[ProductResponse],
    sales: List[SaleResponse],
    now: datetime,
    low_stock_threshold: int,
) -> DashboardResponse:
    today = now.date()
    todays_sales = [s for s in sales if _day(s) == today]

    sold = Counter()
    for sale in sales:
        for item in sale.items:
            sold[item.product_name] += item.quantity

    per_day = OrderedDict()
    for sale in sorted(sales, key=lambda s: s.created_at):
        day = _day(sale)
        per_day[day] = per_day.get(day, Decimal("0")) + sale.total

    return DashboardResponse(
        todays_revenue=sum((s.total for s in todays_sales), Decimal("0")),
        todays_sales_count=len(todays_sales),
        low_stock=[p for p in products if p.stock < low_stock_threshold],
        top_products=[
            TopProduct(product_name=name, quantity=quantity)
            for name, quantity in sold.most_common(TOP_PRODUCTS)
        ],
        daily_revenue=[
            DailyRevenue(day=day, total=total)
            for day, total in list(per_day.items())[-CHART_DAYS:]
        ],
    )


class ReportingService:
    """
    Read-side projections over the catalog and sale history.

    Every figure is a fold over a snapshot; nothing here writes to the
    ledger. The dashboard is cached in Redis per calendar day and dropped
    whenever a product or sale is written.
    """

    def __init__(self, database: Database, cache: CacheService = None, low_stock_threshold: int = None):
        self.cache = cache or cache_service
        self.products = ProductService(database, cache=self.cache)
        self.sales = SaleService(database, cache=self.cache)
        self.low_stock_threshold = (
            low_stock_threshold
            if low_stock_threshold is not None
            else get_settings().LOW_STOCK_THRESHOLD
        )

    def dashboard(self, now: datetime = None) -> DashboardResponse:
        now = now or datetime.now(timezone.utc)
        key = now.date().isoformat()

        cached = self.cache.get(DASHBOARD_PREFIX, key)
        if cached:
            return DashboardResponse.model_validate(cached)

        report = build_dashboard(
            self.products.list_products(),
            self.sales.list_sales(),
            now,
            self.low_stock_threshold,
        )
        self.cache.set(DASHBOARD_PREFIX, key, report.model_dump(mode="json"))
        return report

    def summary(self, period: ReportPeriod = ReportPeriod.ALL, now: datetime = None) -> SalesSummaryResponse:
        now = now or datetime.now(timezone.utc)
        sales = filter_sales(self.sales.list_sales(), period, now)

        revenue = sum((s.total for s in sales), Decimal("0"))
        average = (revenue / len(sales)).quantize(CENT) if sales else Decimal("0.00")

        return SalesSummaryResponse(
            period=period,
            total_revenue=revenue,
            sales_count=len(sales),
            average_sale_value=average,
            sales=sales,
        )
