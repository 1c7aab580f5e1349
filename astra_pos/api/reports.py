from fastapi import APIRouter, Depends, Query

from astra_pos.database import Database, get_database
from astra_pos.api.deps import get_cache
from astra_pos.schemas.report import DashboardResponse, ReportPeriod, SalesSummaryResponse
from astra_pos.services.reporting_service import ReportingService
from astra_pos.utils.cache import CacheService

router = APIRouter(prefix="/reports", tags=["Reports"])


def get_reporting_service(
    database: Database = Depends(get_database),
    cache: CacheService = Depends(get_cache)
) -> ReportingService:
    return ReportingService(database, cache=cache)


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Dashboard figures",
    description="Today's revenue, low-stock products, best sellers and recent daily revenue. Cached in Redis."
)
def dashboard(service: ReportingService = Depends(get_reporting_service)):
    """Get the dashboard projection."""
    return service.dashboard()


@router.get(
    "/summary",
    response_model=SalesSummaryResponse,
    summary="Sales summary",
    description="Revenue, sale count and average sale value for a period."
)
def summary(
    period: ReportPeriod = Query(ReportPeriod.ALL, description="all, today, week or month"),
    service: ReportingService = Depends(get_reporting_service)
):
    """Get the sales summary for a period."""
    return service.summary(period)
