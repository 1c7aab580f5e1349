from fastapi import APIRouter, Depends, HTTPException, Path, status

from astra_pos.api.deps import get_terminals
from astra_pos.schemas.auth import Identity, LoginRequest, SetupRequest, TerminalStatus
from astra_pos.services.auth_service import TerminalRegistry
from astra_pos.services.errors import InvalidCredentialsError, InvalidStateError, ValidationError

router = APIRouter(prefix="/terminals", tags=["Terminals"])


@router.get(
    "/{terminal_id}",
    response_model=TerminalStatus,
    summary="Get terminal state",
    description="Whether the terminal needs first-run setup, a PIN, or has a user signed in."
)
def get_terminal_status(
    terminal_id: str = Path(..., min_length=1, max_length=64),
    terminals: TerminalRegistry = Depends(get_terminals)
):
    """Get the session state of a terminal."""
    return terminals.status(terminal_id)


@router.post(
    "/{terminal_id}/setup",
    response_model=Identity,
    status_code=status.HTTP_201_CREATED,
    summary="First-run setup",
    description="""
    Create the owner account and sign it in.

    Only available while no owner exists; afterwards it always fails with 409.
    """
)
def setup(
    request: SetupRequest,
    terminal_id: str = Path(..., min_length=1, max_length=64),
    terminals: TerminalRegistry = Depends(get_terminals)
):
    """Create the first owner."""
    try:
        return terminals.setup(terminal_id, request.name, request.pin)
    except InvalidStateError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )


@router.post(
    "/{terminal_id}/login",
    response_model=Identity,
    summary="Sign in with a PIN"
)
def login(
    request: LoginRequest,
    terminal_id: str = Path(..., min_length=1, max_length=64),
    terminals: TerminalRegistry = Depends(get_terminals)
):
    """
    Sign in the user holding the PIN.

    Failed attempts return 401 and may be retried without limit.
    """
    try:
        return terminals.login(terminal_id, request.pin)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )
    except InvalidStateError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )


@router.post(
    "/{terminal_id}/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Sign out"
)
def logout(
    terminal_id: str = Path(..., min_length=1, max_length=64),
    terminals: TerminalRegistry = Depends(get_terminals)
):
    """Sign out the current user."""
    try:
        terminals.logout(terminal_id)
    except InvalidStateError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )
    return None
