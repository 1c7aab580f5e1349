from sqlalchemy.orm import Session
from decimal import Decimal
from typing import Optional, List
import logging

from astra_pos.database import Database
from astra_pos.models.product import Product
from astra_pos.schemas.auth import Identity
from astra_pos.schemas.common import MAX_COUNT, MAX_PRICE
from astra_pos.schemas.product import ProductCreate, ProductUpdate, ProductResponse
from astra_pos.services.errors import (
    NotFoundError,
    ProductNotFoundError,
    InsufficientStockError,
    ValidationError,
)
from astra_pos.services.permissions import authorize
from astra_pos.utils.cache import CacheService, cache_service, DASHBOARD_PREFIX

logger = logging.getLogger(__name__)


# The starter menu loaded into an empty catalog when SEED_DEMO_CATALOG is set
DEMO_CATALOG = [
    ("Burger", Decimal("5.99"), 50),
    ("Fries", Decimal("2.49"), 100),
    ("Coke", Decimal("1.99"), 75),
    ("Iced Tea", Decimal("2.29"), 60),
    ("Coffee", Decimal("1.50"), 80),
]


def _check_fields(name: str, price, stock) -> None:
    if not name or not name.strip():
        raise ValidationError("Product name must not be empty")
    if price is None or price < 0:
        raise ValidationError("Price must be non-negative")
    if price > MAX_PRICE:
        raise ValidationError(f"Price must not exceed {MAX_PRICE}")
    if stock is None or stock < 0:
        raise ValidationError("Stock must be non-negative")
    if stock > MAX_COUNT:
        raise ValidationError(f"Stock must not exceed {MAX_COUNT}")


class ProductService:
    """
    The catalog store.

    This service handles:
    - Listing products (ordered by name, returned as copies)
    - Creating products
    - Wholesale updates of a product record
    - Atomic stock adjustments for the sale engine
    - Invalidating cached projections after every write

    Products are never deleted.
    """

    def __init__(self, database: Database, cache: CacheService = None):
        self.database = database
        self.cache = cache or cache_service

    def list_products(self, search: str = None) -> List[ProductResponse]:
        """
        Get all products ordered by name.

        Args:
            search: Optional case-insensitive filter on the product name

        Returns:
            Snapshot copies of the matching products
        """
        with self.database.session() as db:
            query = db.query(Product)

            if search:
                query = query.filter(Product.name.ilike(f"%{search}%"))

            products = query.order_by(Product.name.asc(), Product.id.asc()).all()
            return [ProductResponse.model_validate(p) for p in products]

    def get(self, product_id: int) -> ProductResponse:
        """Get a product by ID."""
        with self.database.session() as db:
            product = db.get(Product, product_id)

            if not product:
                raise NotFoundError(f"Product with ID {product_id} not found")

            return ProductResponse.model_validate(product)

    def create(self, product_data: ProductCreate, actor: Optional[Identity]) -> ProductResponse:
        """
        Create a new product.

        Args:
            product_data: Product creation data
            actor: The signed-in user making the change

        Returns:
            The created product
        """
        _check_fields(product_data.name, product_data.price, product_data.stock)

        with self.database.session() as db:
            authorize(db, actor)

            product = Product(
                name=product_data.name,
                price=product_data.price,
                stock=product_data.stock
            )
            db.add(product)
            db.commit()
            db.refresh(product)

            logger.info(f"Product #{product.id} '{product.name}' created by user #{actor.user_id}")
            result = ProductResponse.model_validate(product)

        self._invalidate_projections()
        return result

    def update(self, product_data: ProductUpdate, actor: Optional[Identity]) -> ProductResponse:
        """
        Replace an existing product record wholesale.

        Args:
            product_data: The full replacement record, matched by ``id``
            actor: The signed-in user making the change

        Returns:
            The updated product

        Raises:
            NotFoundError: If no product has that ID
        """
        _check_fields(product_data.name, product_data.price, product_data.stock)

        with self.database.session() as db:
            authorize(db, actor)

            product = self._lock_product(db, product_data.id)
            if not product:
                raise NotFoundError(f"Product with ID {product_data.id} not found")

            product.name = product_data.name
            product.price = product_data.price
            product.stock = product_data.stock

            db.commit()
            db.refresh(product)

            logger.info(f"Product #{product.id} updated by user #{actor.user_id}")
            result = ProductResponse.model_validate(product)

        self._invalidate_projections()
        return result

    def adjust_stock(self, product_id: int, delta: int, db: Session = None) -> ProductResponse:
        """
        Apply ``delta`` to a product's stock (negative for a sale).

        With ``db`` given the change joins that session's transaction and is
        left for the caller to commit; otherwise it is committed here.

        Raises:
            ProductNotFoundError: If the product doesn't exist
            InsufficientStockError: If the stock would go negative
            ValidationError: If the stock would overflow its column
        """
        if db is not None:
            return ProductResponse.model_validate(self._apply_delta(db, product_id, delta))

        with self.database.session() as db:
            product = self._apply_delta(db, product_id, delta)
            db.commit()
            db.refresh(product)
            result = ProductResponse.model_validate(product)

        self._invalidate_projections()
        return result

    def seed_demo_catalog(self) -> int:
        """
        Load the demo menu into an empty catalog.

        Returns:
            Number of products inserted (0 if the catalog already has products)
        """
        with self.database.session() as db:
            if db.query(Product.id).first() is not None:
                return 0

            for name, price, stock in DEMO_CATALOG:
                db.add(Product(name=name, price=price, stock=stock))
            db.commit()

        logger.info(f"Seeded catalog with {len(DEMO_CATALOG)} demo products")
        self._invalidate_projections()
        return len(DEMO_CATALOG)

    def _lock_product(self, db: Session, product_id: int) -> Optional[Product]:
        # Row lock where the database honours it; SQLite relies on the store lock
        return (
            db.query(Product)
            .filter(Product.id == product_id)
            .with_for_update()
            .first()
        )

    def _apply_delta(self, db: Session, product_id: int, delta: int) -> Product:
        product = self._lock_product(db, product_id)

        if not product:
            raise ProductNotFoundError(product_id)

        if product.stock + delta < 0:
            raise InsufficientStockError(product.id, product.name, product.stock, -delta)
        if product.stock + delta > MAX_COUNT:
            raise ValidationError(f"Stock must not exceed {MAX_COUNT}")

        product.stock += delta
        return product

    def _invalidate_projections(self) -> None:
        self.cache.delete_pattern(f"{DASHBOARD_PREFIX}:*")
