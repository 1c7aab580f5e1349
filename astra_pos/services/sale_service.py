from sqlalchemy.orm import Session, selectinload
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple
from collections import OrderedDict
import math
import logging

from astra_pos.config import get_settings
from astra_pos.database import Database
from astra_pos.models.product import Product
from astra_pos.models.sale import Sale, SaleItem
from astra_pos.models.user import User
from astra_pos.schemas.common import MAX_AMOUNT
from astra_pos.schemas.sale import SaleResponse
from astra_pos.services.errors import (
    NotFoundError,
    ProductNotFoundError,
    InsufficientStockError,
    NotAuthenticatedError,
    ValidationError,
)
from astra_pos.services.product_service import ProductService
from astra_pos.utils.cache import CacheService, cache_service, DASHBOARD_PREFIX

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class SaleService:
    """
    The sale transaction engine: the only writer of sale history, and the
    only writer that touches the catalog and the history together.

    CONCURRENCY:
    ============
    A commit runs entirely inside one ``Database.session()``, which holds the
    store's exclusive lock. Products are additionally read with
    SELECT ... FOR UPDATE, in ID order so two sales never lock the same
    rows in opposite orders. Validation, stock decrements and the history
    append therefore form a single serializable step:

    - Two sales competing for the last unit cannot both pass validation
    - A rejected sale changes nothing (the session is rolled back)
    - Readers see the state before or after a sale, never in between
    """

    def __init__(
        self,
        database: Database,
        cache: CacheService = None,
        tax_rate: Decimal = None,
    ):
        self.database = database
        self.cache = cache or cache_service
        self.tax_rate = tax_rate if tax_rate is not None else get_settings().TAX_RATE
        self.products = ProductService(database, cache=self.cache)

    def commit_sale(self, line_items: Iterable[Tuple[int, int]], actor_id: int) -> SaleResponse:
        """
        Atomically record a sale and take its items out of stock.

        Algorithm:
        1. Resolve every product (locked); any unknown ID fails the sale
        2. Check each product's stock covers the quantity requested
           (repeated lines for one product are added up), then compute the
           totals and check they fit the ledger columns
        3. Decrement stock, snapshot names and prices
        4. Stamp ID and timestamp, append the sale, commit

        Args:
            line_items: Ordered, non-empty (product_id, quantity) pairs
            actor_id: The signed-in user the sale is attributed to

        Returns:
            The committed sale

        Raises:
            ValidationError: If there are no line items, a quantity is not
                positive, or the total is too large to record
            NotAuthenticatedError: If ``actor_id`` is not a known user
            ProductNotFoundError: If any product doesn't exist
            InsufficientStockError: If any product has too little stock
        """
        lines = [(int(product_id), int(quantity)) for product_id, quantity in line_items]
        self._check_lines(lines)

        requested = OrderedDict()
        for product_id, quantity in lines:
            requested[product_id] = requested.get(product_id, 0) + quantity

        with self.database.session() as db:
            cashier = db.get(User, actor_id)
            if cashier is None:
                raise NotAuthenticatedError(f"User with ID {actor_id} is not signed in")

            # 1. Resolve and lock
            locked = self._lock_products(db, requested.keys())
            for product_id in requested:
                if product_id not in locked:
                    raise ProductNotFoundError(product_id)

            # 2. Validate every line before touching anything
            for product_id, quantity in requested.items():
                product = locked[product_id]
                if quantity > product.stock:
                    raise InsufficientStockError(product.id, product.name, product.stock, quantity)

            subtotal, tax, total = self.compute_totals(
                (locked[product_id].price, quantity) for product_id, quantity in lines
            )
            if total > MAX_AMOUNT:
                raise ValidationError(f"Sale total {total} exceeds the largest recordable amount {MAX_AMOUNT}")

            # 3. Apply
            for product_id, quantity in requested.items():
                self.products.adjust_stock(product_id, -quantity, db=db)

            items = [
                SaleItem(
                    position=position,
                    product_id=product_id,
                    product_name=locked[product_id].name,
                    quantity=quantity,
                    unit_price=locked[product_id].price,
                )
                for position, (product_id, quantity) in enumerate(lines)
            ]

            # 4. Append
            sale = Sale(
                created_at=self._next_timestamp(db),
                subtotal=subtotal,
                tax=tax,
                total=total,
                cashier_id=cashier.id,
                cashier_name=cashier.name,
                items=items,
            )
            db.add(sale)
            db.commit()
            db.refresh(sale)

            logger.info(f"Sale #{sale.id} committed by user #{cashier.id}: {len(items)} line(s), total {total}")
            result = SaleResponse.model_validate(sale)

        self.cache.delete_pattern(f"{DASHBOARD_PREFIX}:*")
        return result

    def compute_totals(self, priced_quantities: Iterable[Tuple[Decimal, int]]) -> Tuple[Decimal, Decimal, Decimal]:
        """Return (subtotal, tax, total) for (unit_price, quantity) pairs."""
        subtotal = sum(
            (Decimal(price) * quantity for price, quantity in priced_quantities),
            Decimal("0"),
        ).quantize(CENT, rounding=ROUND_HALF_UP)
        tax = (subtotal * self.tax_rate).quantize(CENT, rounding=ROUND_HALF_UP)
        return subtotal, tax, subtotal + tax

    def list_sales(self) -> List[SaleResponse]:
        """Get the whole sale history, newest first."""
        with self.database.session() as db:
            sales = self._history(db).all()
            return [SaleResponse.model_validate(s) for s in sales]

    def get_sales(self, page: int = 1, page_size: int = 10) -> Tuple[List[SaleResponse], int, int]:
        """
        Get paginated sale history, newest first.

        Returns:
            Tuple of (sales list, total count, total pages)
        """
        with self.database.session() as db:
            query = self._history(db)

            total = query.count()
            total_pages = math.ceil(total / page_size) if total > 0 else 1

            offset = (page - 1) * page_size
            sales = query.offset(offset).limit(page_size).all()

            return [SaleResponse.model_validate(s) for s in sales], total, total_pages

    def get_sale(self, sale_id: int) -> SaleResponse:
        """Get a sale by ID."""
        with self.database.session() as db:
            sale = (
                db.query(Sale)
                .options(selectinload(Sale.items))
                .filter(Sale.id == sale_id)
                .first()
            )

            if not sale:
                raise NotFoundError(f"Sale with ID {sale_id} not found")

            return SaleResponse.model_validate(sale)

    def _check_lines(self, lines: List[Tuple[int, int]]) -> None:
        if not lines:
            raise ValidationError("A sale needs at least one line item")

        for product_id, quantity in lines:
            if quantity <= 0:
                raise ValidationError(f"Quantity for product {product_id} must be positive")

    def _lock_products(self, db: Session, product_ids: Iterable[int]) -> dict:
        products = (
            db.query(Product)
            .filter(Product.id.in_(list(product_ids)))
            .order_by(Product.id.asc())
            .with_for_update()
            .all()
        )
        return {p.id: p for p in products}

    def _next_timestamp(self, db: Session) -> datetime:
        now = datetime.now(timezone.utc)
        latest: Optional[datetime] = db.query(Sale.created_at).order_by(Sale.created_at.desc()).limit(1).scalar()

        if latest is not None and _as_utc(latest) >= now:
            # Clock went backwards or two commits share a tick
            return _as_utc(latest) + timedelta(microseconds=1)
        return now

    def _history(self, db: Session):
        return (
            db.query(Sale)
            .options(selectinload(Sale.items))
            .order_by(Sale.created_at.desc(), Sale.id.desc())
        )


def format_receipt(sale: SaleResponse) -> str:
    """Render a committed sale as a plain-text receipt."""
    rule = "-" * 32
    lines = [
        f"Sale ID: {sale.id}",
        f"Date: {sale.created_at:%Y-%m-%d %H:%M:%S}",
        f"Cashier: {sale.cashier_name}",
        rule,
    ]
    for item in sale.items:
        lines.append(f"{item.product_name} (x{item.quantity}) - ${item.line_total:.2f}")
    lines += [
        rule,
        f"Subtotal: ${sale.subtotal:.2f}",
        f"Tax: ${sale.tax:.2f}",
        f"Total: ${sale.total:.2f}",
    ]
    return "\n".join(lines)
