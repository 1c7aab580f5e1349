from fastapi import Depends, Header, HTTPException, Request, status

from astra_pos.schemas.auth import Identity
from astra_pos.services.auth_service import TerminalRegistry
from astra_pos.services.errors import (
    LedgerError,
    NotFoundError,
    InsufficientStockError,
    InvalidStateError,
    ValidationError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    PermissionDeniedError,
)
from astra_pos.utils.cache import CacheService


def get_cache(request: Request) -> CacheService:
    return request.app.state.cache


def get_terminals(request: Request) -> TerminalRegistry:
    return request.app.state.terminals


def current_identity(
    terminal_id: str = Header(..., alias="X-Terminal-Id", min_length=1, max_length=64),
    terminals: TerminalRegistry = Depends(get_terminals)
) -> Identity:
    """The user signed in at the calling terminal; 401 if nobody is."""
    try:
        return terminals.require_identity(terminal_id)
    except NotAuthenticatedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )


_STATUS_CODES = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InsufficientStockError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidCredentialsError, status.HTTP_401_UNAUTHORIZED),
    (NotAuthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
]


def ledger_http_error(exc: LedgerError) -> HTTPException:
    """Translate a rejected ledger operation into an HTTP error."""
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
