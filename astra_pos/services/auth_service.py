import threading
import logging
from typing import Callable, Dict, Optional

from astra_pos.database import Database
from astra_pos.schemas.auth import Identity, SessionState, TerminalStatus
from astra_pos.schemas.user import UserRecord
from astra_pos.services.errors import (
    InvalidCredentialsError,
    InvalidStateError,
    NotAuthenticatedError,
)
from astra_pos.services.user_service import UserService

logger = logging.getLogger(__name__)


def _identity(user: UserRecord) -> Identity:
    return Identity(user_id=user.id, name=user.name, role=user.role)


class SessionAuthenticator:
    """
    Session state machine for one terminal.

    STATES:
    =======
    UNINITIALIZED   no owner exists yet; only setup() is possible
    AWAITING_LOGIN  waiting for a PIN
    AUTHENTICATED   a user is signed in until logout()

    There is no timeout and no lockout: a failed login leaves the terminal
    waiting for another attempt.
    """

    def __init__(self, database: Database, terminal_id: str = "default"):
        self.terminal_id = terminal_id
        self.users = UserService(database)
        self._lock = threading.Lock()
        self._identity: Optional[Identity] = None

        if self.users.has_owner():
            self._state = SessionState.AWAITING_LOGIN
        else:
            self._state = SessionState.UNINITIALIZED

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    def status(self) -> TerminalStatus:
        with self._lock:
            return TerminalStatus(
                terminal_id=self.terminal_id,
                state=self._state,
                identity=self._identity,
            )

    def setup(self, name: str, pin: str) -> Identity:
        """
        Create the first owner and sign them in.

        Raises:
            InvalidStateError: If the terminal is past first-run setup, or
                another terminal completed it first
            ValidationError: If the name or PIN is malformed
        """
        with self._lock:
            if self._state != SessionState.UNINITIALIZED:
                raise InvalidStateError("Setup has already been completed")

            try:
                owner = self.users.create_first_owner(name, pin)
            except InvalidStateError:
                # Lost the race to another terminal
                self._state = SessionState.AWAITING_LOGIN
                raise

            self._identity = _identity(owner)
            self._state = SessionState.AUTHENTICATED

            logger.info(f"Terminal {self.terminal_id}: setup complete, owner #{owner.id} signed in")
            return self._identity

    def login(self, pin: str) -> Identity:
        """
        Sign in the user holding ``pin``.

        Raises:
            InvalidCredentialsError: If no user holds the PIN
            InvalidStateError: If a user is already signed in
        """
        with self._lock:
            if self._state == SessionState.AUTHENTICATED:
                raise InvalidStateError("A user is already signed in; log out first")

            if self._state == SessionState.UNINITIALIZED:
                if not self.users.has_owner():
                    logger.warning(f"Terminal {self.terminal_id}: login attempted before setup")
                    raise InvalidCredentialsError("Invalid PIN")
                # Another terminal has completed setup since we started
                self._state = SessionState.AWAITING_LOGIN

            user = self.users.find_by_pin(pin)
            if user is None:
                logger.warning(f"Terminal {self.terminal_id}: failed login attempt")
                raise InvalidCredentialsError("Invalid PIN")

            self._identity = _identity(user)
            self._state = SessionState.AUTHENTICATED

            logger.info(f"Terminal {self.terminal_id}: user #{user.id} signed in")
            return self._identity

    def logout(self) -> None:
        """
        Sign out the current user.

        Raises:
            InvalidStateError: If nobody is signed in
        """
        with self._lock:
            if self._state != SessionState.AUTHENTICATED:
                raise InvalidStateError("No user is signed in")

            logger.info(f"Terminal {self.terminal_id}: user #{self._identity.user_id} signed out")
            self._identity = None
            self._state = SessionState.AWAITING_LOGIN

    def require_identity(self) -> Identity:
        """Return the signed-in identity or raise NotAuthenticatedError."""
        identity = self._identity
        if self._state != SessionState.AUTHENTICATED or identity is None:
            raise NotAuthenticatedError("Sign in required")
        return identity


class TerminalRegistry:
    """
    One SessionAuthenticator per terminal ID.

    A terminal is only remembered once a setup or login on it succeeds, so
    status checks and rejected requests for unknown IDs leave the registry
    as it was.
    """

    def __init__(self, database: Database):
        self.database = database
        self._lock = threading.Lock()
        self._terminals: Dict[str, SessionAuthenticator] = {}

    def find(self, terminal_id: str) -> Optional[SessionAuthenticator]:
        """The session of a registered terminal, or None."""
        with self._lock:
            return self._terminals.get(terminal_id)

    def status(self, terminal_id: str) -> TerminalStatus:
        terminal = self.find(terminal_id)
        if terminal is None:
            # Not stored; reflects whether first-run setup is still pending
            terminal = SessionAuthenticator(self.database, terminal_id)
        return terminal.status()

    def setup(self, terminal_id: str, name: str, pin: str) -> Identity:
        return self._run(terminal_id, lambda terminal: terminal.setup(name, pin))

    def login(self, terminal_id: str, pin: str) -> Identity:
        return self._run(terminal_id, lambda terminal: terminal.login(pin))

    def logout(self, terminal_id: str) -> None:
        """
        Raises:
            InvalidStateError: If nobody is signed in at the terminal
        """
        terminal = self.find(terminal_id)
        if terminal is None:
            raise InvalidStateError("No user is signed in")
        terminal.logout()

    def require_identity(self, terminal_id: str) -> Identity:
        """Return the identity signed in at the terminal or raise NotAuthenticatedError."""
        terminal = self.find(terminal_id)
        if terminal is None:
            raise NotAuthenticatedError("Sign in required")
        return terminal.require_identity()

    def _run(self, terminal_id: str, operation: Callable[[SessionAuthenticator], Identity]) -> Identity:
        with self._lock:
            terminal = self._terminals.get(terminal_id)
            if terminal is None:
                terminal = SessionAuthenticator(self.database, terminal_id)
                identity = operation(terminal)
                self._terminals[terminal_id] = terminal
                return identity

        return operation(terminal)

    def __len__(self) -> int:
        return len(self._terminals)
