from sqlalchemy.orm import Session
from typing import Optional, List
import logging
import re

from astra_pos.database import Database
from astra_pos.models.user import User, UserRole
from astra_pos.schemas.auth import Identity
from astra_pos.schemas.common import PIN_PATTERN
from astra_pos.schemas.user import UserCreate, UserUpdate, UserRecord
from astra_pos.services.errors import NotFoundError, ValidationError, InvalidStateError
from astra_pos.services.permissions import authorize

logger = logging.getLogger(__name__)

_PIN_RE = re.compile(PIN_PATTERN)


class UserService:
    """
    The user directory.

    Reads are open; create, update and delete need a signed-in owner. The
    only write without an actor is the first-owner bootstrap, which is
    refused once any owner exists.

    Two invariants are kept here:
    - PINs are unique, so a PIN identifies at most one user at login
    - At least one owner remains once the first one is created
    """

    def __init__(self, database: Database):
        self.database = database

    def list_users(self) -> List[UserRecord]:
        """Get all users ordered by ID."""
        with self.database.session() as db:
            users = db.query(User).order_by(User.id.asc()).all()
            return [UserRecord.model_validate(u) for u in users]

    def get(self, user_id: int) -> UserRecord:
        """Get a user by ID."""
        with self.database.session() as db:
            user = db.get(User, user_id)

            if not user:
                raise NotFoundError(f"User with ID {user_id} not found")

            return UserRecord.model_validate(user)

    def find_by_pin(self, pin: str) -> Optional[UserRecord]:
        """Return the first user (lowest ID) holding ``pin``, or None."""
        with self.database.session() as db:
            user = db.query(User).filter(User.pin == pin).order_by(User.id.asc()).first()
            return UserRecord.model_validate(user) if user else None

    def has_owner(self) -> bool:
        with self.database.session() as db:
            return self._owner_count(db) > 0

    def create_first_owner(self, name: str, pin: str) -> UserRecord:
        """
        Create the bootstrap owner account.

        The owner check and the insert run in one locked session, so two
        terminals racing through first-run setup cannot both succeed.

        Raises:
            InvalidStateError: If an owner already exists
            ValidationError: If the name is blank or the PIN malformed
        """
        with self.database.session() as db:
            if self._owner_count(db) > 0:
                raise InvalidStateError("Setup has already been completed")

            self._check_name(name)
            self._check_pin(db, pin)

            user = User(name=name, role=UserRole.OWNER, pin=pin)
            db.add(user)
            db.commit()
            db.refresh(user)

            logger.info(f"Owner account #{user.id} created by first-run setup")
            return UserRecord.model_validate(user)

    def create(self, user_data: UserCreate, actor: Optional[Identity]) -> UserRecord:
        """
        Create a new user. Owner only.

        Raises:
            ValidationError: If the PIN is malformed or already in use
        """
        with self.database.session() as db:
            authorize(db, actor, owner_only=True)
            self._check_name(user_data.name)
            self._check_pin(db, user_data.pin)

            user = User(name=user_data.name, role=user_data.role, pin=user_data.pin)
            db.add(user)
            db.commit()
            db.refresh(user)

            logger.info(f"User #{user.id} ({user.role.value}) created by user #{actor.user_id}")
            return UserRecord.model_validate(user)

    def update(self, user_data: UserUpdate, actor: Optional[Identity]) -> UserRecord:
        """
        Replace a user record wholesale. Owner only.

        Raises:
            NotFoundError: If no user has that ID
            InvalidStateError: If the change would demote the last owner
        """
        with self.database.session() as db:
            authorize(db, actor, owner_only=True)

            user = db.get(User, user_data.id)
            if not user:
                raise NotFoundError(f"User with ID {user_data.id} not found")

            self._check_name(user_data.name)
            self._check_pin(db, user_data.pin, exclude_id=user.id)

            if (
                user.role == UserRole.OWNER
                and user_data.role != UserRole.OWNER
                and self._owner_count(db) == 1
            ):
                raise InvalidStateError("Cannot demote the only owner account")

            user.name = user_data.name
            user.role = user_data.role
            user.pin = user_data.pin
            db.commit()
            db.refresh(user)

            logger.info(f"User #{user.id} updated by user #{actor.user_id}")
            return UserRecord.model_validate(user)

    def delete(self, user_id: int, actor: Optional[Identity]) -> None:
        """
        Delete a user. Owner only.

        Raises:
            NotFoundError: If no user has that ID
            InvalidStateError: If the user is the last owner
        """
        with self.database.session() as db:
            authorize(db, actor, owner_only=True)

            user = db.get(User, user_id)
            if not user:
                raise NotFoundError(f"User with ID {user_id} not found")

            if user.role == UserRole.OWNER and self._owner_count(db) == 1:
                raise InvalidStateError("Cannot delete the only owner account")

            db.delete(user)
            db.commit()

            logger.info(f"User #{user_id} deleted by user #{actor.user_id}")

    def _owner_count(self, db: Session) -> int:
        return db.query(User).filter(User.role == UserRole.OWNER).count()

    def _check_name(self, name: str) -> None:
        if not name or not name.strip():
            raise ValidationError("Name must not be empty")

    def _check_pin(self, db: Session, pin: str, exclude_id: int = None) -> None:
        if not isinstance(pin, str) or not _PIN_RE.fullmatch(pin):
            raise ValidationError("PIN must be exactly 4 digits")

        query = db.query(User.id).filter(User.pin == pin)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)

        if query.first() is not None:
            raise ValidationError("PIN is already in use by another user")
