from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from astra_pos.database import Database, get_database
from astra_pos.api.deps import current_identity, get_cache, ledger_http_error
from astra_pos.schemas.auth import Identity
from astra_pos.schemas.product import (
    ProductCreate,
    ProductReplace,
    ProductUpdate,
    ProductResponse,
    ProductListResponse
)
from astra_pos.services.errors import LedgerError
from astra_pos.services.product_service import ProductService
from astra_pos.utils.cache import CacheService

router = APIRouter(prefix="/products", tags=["Products"])


def get_product_service(
    database: Database = Depends(get_database),
    cache: CacheService = Depends(get_cache)
) -> ProductService:
    return ProductService(database, cache=cache)


@router.post(
    "/",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    description="Create a new product with name, price, and initial stock."
)
def create_product(
    product_data: ProductCreate,
    identity: Identity = Depends(current_identity),
    service: ProductService = Depends(get_product_service)
):
    """
    Create a new product.

    - **name**: Product name (required)
    - **price**: Unit price, must be non-negative (required)
    - **stock**: Initial stock quantity, must be non-negative (required)
    """
    try:
        return service.create(product_data, identity)
    except LedgerError as e:
        raise ledger_http_error(e)


@router.get(
    "/",
    response_model=ProductListResponse,
    summary="List all products",
    description="Get every product ordered by name, with optional search."
)
def list_products(
    search: Optional[str] = Query(None, description="Search by product name"),
    service: ProductService = Depends(get_product_service)
):
    """Get all products ordered by name."""
    products = service.list_products(search)
    return ProductListResponse(items=products, total=len(products))


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get product by ID",
    description="Get detailed information about a specific product."
)
def get_product(
    product_id: int,
    service: ProductService = Depends(get_product_service)
):
    """Get a product by ID."""
    try:
        return service.get(product_id)
    except LedgerError as e:
        raise ledger_http_error(e)


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Replace a product",
    description="Replace a product's name, price and stock. All fields are required."
)
def update_product(
    product_id: int,
    product_data: ProductReplace,
    identity: Identity = Depends(current_identity),
    service: ProductService = Depends(get_product_service)
):
    """
    Replace a product record.

    Cached dashboard figures are invalidated after the update.
    """
    try:
        return service.update(
            ProductUpdate(id=product_id, **product_data.model_dump()),
            identity
        )
    except LedgerError as e:
        raise ledger_http_error(e)
