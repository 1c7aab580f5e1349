from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from astra_pos.database import Base


class Sale(Base):
    """
    An immutable record of a committed sale.

    Attributes:
        id: Unique identifier, assigned at commit
        created_at: Commit timestamp, increasing with insertion order
        subtotal: Sum of unit_price * quantity over the line items
        tax: Tax charged on the subtotal
        total: subtotal + tax
        cashier_id: User the sale is attributed to
        cashier_name: Name of that user at commit time
    """
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    subtotal = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)
    # No foreign key: users can be deleted, their sales stay attributed
    cashier_id = Column(Integer, nullable=False, index=True)
    cashier_name = Column(String(255), nullable=False)

    items = relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Sale(id={self.id}, total={self.total})>"


class SaleItem(Base):
    """One line of a sale, with product name and price captured at commit time."""
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    product_id = Column(Integer, nullable=False, index=True)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)

    sale = relationship("Sale", back_populates="items")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_quantity_positive'),
    )

    def __repr__(self):
        return f"<SaleItem(sale_id={self.sale_id}, product_id={self.product_id}, quantity={self.quantity})>"
