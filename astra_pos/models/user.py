from sqlalchemy import Column, Integer, String, Enum
import enum

from astra_pos.database import Base


class UserRole(str, enum.Enum):
    """Access tier: owners have full access, cashiers run the till."""
    OWNER = "owner"
    CASHIER = "cashier"


class User(Base):
    """
    A staff account that can sign in to a terminal with a 4-digit PIN.

    Attributes:
        id: Unique identifier for the user
        name: Display name
        role: Access tier
        pin: Four decimal digits, compared as a shared secret
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CASHIER)
    pin = Column(String(4), nullable=False, index=True)

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}', role='{self.role}')>"
