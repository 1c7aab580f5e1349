from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
import enum

from astra_pos.models.user import UserRole
from astra_pos.schemas.common import PIN_PATTERN


class SessionState(str, enum.Enum):
    """States of a terminal's session."""
    UNINITIALIZED = "uninitialized"
    AWAITING_LOGIN = "awaiting_login"
    AUTHENTICATED = "authenticated"


class Identity(BaseModel):
    """The signed-in user of a terminal."""
    user_id: int
    name: str
    role: UserRole

    model_config = ConfigDict(frozen=True)

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER


class SetupRequest(BaseModel):
    """First-run request creating the owner account."""
    name: str = Field(..., min_length=1, max_length=255)
    pin: str = Field(..., pattern=PIN_PATTERN)


class LoginRequest(BaseModel):
    pin: str = Field(..., pattern=PIN_PATTERN)


class TerminalStatus(BaseModel):
    """Schema for a terminal's current session state."""
    terminal_id: str
    state: SessionState
    identity: Optional[Identity] = None
