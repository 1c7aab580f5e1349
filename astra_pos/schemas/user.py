from pydantic import BaseModel, Field, ConfigDict

from astra_pos.models.user import UserRole
from astra_pos.schemas.common import PIN_PATTERN


class UserBase(BaseModel):
    """Base schema for User with common attributes."""
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    role: UserRole = Field(default=UserRole.CASHIER, description="Access tier")


class UserCreate(UserBase):
    """Schema for creating a new user."""
    pin: str = Field(..., pattern=PIN_PATTERN, description="Four-digit PIN")


class UserReplace(UserCreate):
    """Request body for a wholesale user update."""
    pass


class UserUpdate(UserCreate):
    """A full replacement record for an existing user."""
    id: int


class UserRecord(UserCreate):
    """Directory snapshot, PIN included. Never sent over HTTP."""
    id: int

    model_config = ConfigDict(from_attributes=True)


class UserResponse(UserBase):
    """Schema for user response; the PIN is never returned."""
    id: int

    model_config = ConfigDict(from_attributes=True)
