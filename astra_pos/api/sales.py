from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse

from astra_pos.database import Database, get_database
from astra_pos.api.deps import current_identity, get_cache, ledger_http_error
from astra_pos.schemas.auth import Identity
from astra_pos.schemas.sale import SaleCreate, SaleResponse, SaleListResponse
from astra_pos.services.errors import LedgerError
from astra_pos.services.sale_service import SaleService, format_receipt
from astra_pos.utils.cache import CacheService

router = APIRouter(prefix="/sales", tags=["Sales"])


def get_sale_service(
    database: Database = Depends(get_database),
    cache: CacheService = Depends(get_cache)
) -> SaleService:
    return SaleService(database, cache=cache)


@router.post(
    "/",
    response_model=SaleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Process a sale",
    description="""
    Commit a sale for the user signed in at the calling terminal.

    **All or nothing:**
    Stock for every line is checked before anything is written. If any
    product is unknown (404) or short of stock (409), no stock moves and no
    sale is recorded. When two terminals race for the last unit, exactly one
    sale succeeds.
    """
)
def commit_sale(
    sale_data: SaleCreate,
    identity: Identity = Depends(current_identity),
    service: SaleService = Depends(get_sale_service)
):
    """
    Process a sale.

    - **items**: Ordered list of `{product_id, quantity}`, at least one
    """
    try:
        return service.commit_sale(
            [(item.product_id, item.quantity) for item in sale_data.items],
            identity.user_id
        )
    except LedgerError as e:
        raise ledger_http_error(e)


@router.get(
    "/",
    response_model=SaleListResponse,
    summary="List sales",
    description="Get a paginated list of sales, newest first."
)
def list_sales(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(10, ge=1, le=100, description="Items per page"),
    service: SaleService = Depends(get_sale_service)
):
    """Get paginated sale history."""
    sales, total, total_pages = service.get_sales(page, page_size)

    return SaleListResponse(
        items=sales,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages
    )


@router.get(
    "/{sale_id}",
    response_model=SaleResponse,
    summary="Get sale by ID"
)
def get_sale(
    sale_id: int,
    service: SaleService = Depends(get_sale_service)
):
    """Get a sale by ID."""
    try:
        return service.get_sale(sale_id)
    except LedgerError as e:
        raise ledger_http_error(e)


@router.get(
    "/{sale_id}/receipt",
    response_class=PlainTextResponse,
    summary="Get a printable receipt"
)
def get_receipt(
    sale_id: int,
    service: SaleService = Depends(get_sale_service)
):
    """Get a sale as a plain-text receipt."""
    try:
        sale = service.get_sale(sale_id)
    except LedgerError as e:
        raise ledger_http_error(e)

    return PlainTextResponse(
        format_receipt(sale),
        headers={"Content-Disposition": f'attachment; filename="receipt-{sale.id}.txt"'}
    )
