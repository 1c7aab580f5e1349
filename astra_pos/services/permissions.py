from typing import Optional

from sqlalchemy.orm import Session

from astra_pos.models.user import User, UserRole
from astra_pos.schemas.auth import Identity
from astra_pos.services.errors import NotAuthenticatedError, PermissionDeniedError


def authorize(db: Session, actor: Optional[Identity], owner_only: bool = False) -> User:
    """
    Check that ``actor`` may perform a mutation, inside the caller's session.

    The actor's user record is loaded again rather than trusting the
    identity it presents: a user deleted or demoted since signing in loses
    access immediately.

    Raises:
        NotAuthenticatedError: No actor, or the actor's account is gone
        PermissionDeniedError: ``owner_only`` and the actor is not an owner
    """
    if actor is None:
        raise NotAuthenticatedError("Sign in required")

    user = db.get(User, actor.user_id)
    if user is None:
        raise NotAuthenticatedError(f"User with ID {actor.user_id} no longer exists")

    if owner_only and user.role != UserRole.OWNER:
        raise PermissionDeniedError(f"'{user.name}' is not allowed to perform this action")

    return user
