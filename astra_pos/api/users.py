from fastapi import APIRouter, Depends, HTTPException, status

from astra_pos.database import Database, get_database
from astra_pos.api.deps import current_identity, ledger_http_error
from astra_pos.schemas.auth import Identity
from astra_pos.schemas.user import UserCreate, UserReplace, UserUpdate, UserResponse
from astra_pos.services.errors import LedgerError
from astra_pos.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(database: Database = Depends(get_database)) -> UserService:
    return UserService(database)


def require_owner(identity: Identity = Depends(current_identity)) -> Identity:
    if not identity.is_owner:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only owners can manage users"
        )
    return identity


@router.get(
    "/",
    response_model=list[UserResponse],
    summary="List users",
    description="Get every user account. Owner only; PINs are not returned."
)
def list_users(
    identity: Identity = Depends(require_owner),
    service: UserService = Depends(get_user_service)
):
    """Get all users."""
    return service.list_users()


@router.post(
    "/",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user"
)
def create_user(
    user_data: UserCreate,
    identity: Identity = Depends(current_identity),
    service: UserService = Depends(get_user_service)
):
    """
    Create a new user.

    - **name**: Display name (required)
    - **role**: `owner` or `cashier`, default `cashier`
    - **pin**: Four digits, not used by any other user (required)
    """
    try:
        return service.create(user_data, identity)
    except LedgerError as e:
        raise ledger_http_error(e)


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Replace a user"
)
def update_user(
    user_id: int,
    user_data: UserReplace,
    identity: Identity = Depends(current_identity),
    service: UserService = Depends(get_user_service)
):
    """Replace a user's name, role and PIN."""
    try:
        return service.update(UserUpdate(id=user_id, **user_data.model_dump()), identity)
    except LedgerError as e:
        raise ledger_http_error(e)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a user"
)
def delete_user(
    user_id: int,
    identity: Identity = Depends(current_identity),
    service: UserService = Depends(get_user_service)
):
    """Delete a user. The last owner cannot be deleted."""
    try:
        service.delete(user_id, identity)
    except LedgerError as e:
        raise ledger_http_error(e)
    return None
