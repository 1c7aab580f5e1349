"""Tests for the terminal session state machine."""
import pytest

from astra_pos.models.user import UserRole
from astra_pos.schemas.auth import SessionState
from astra_pos.services.auth_service import SessionAuthenticator, TerminalRegistry
from astra_pos.services.errors import (
    InvalidCredentialsError,
    InvalidStateError,
    NotAuthenticatedError,
    ValidationError,
)
from astra_pos.services.user_service import UserService


def test_fresh_directory_starts_uninitialized(database):
    terminal = SessionAuthenticator(database)

    assert terminal.state == SessionState.UNINITIALIZED
    assert terminal.identity is None


def test_login_before_setup_then_setup(database):
    """Test login fails before any owner exists and setup signs the owner in."""
    terminal = SessionAuthenticator(database)

    with pytest.raises(InvalidCredentialsError):
        terminal.login("1234")
    assert terminal.state == SessionState.UNINITIALIZED

    identity = terminal.setup("Alex", "1234")

    assert identity.name == "Alex"
    assert identity.role == UserRole.OWNER
    assert terminal.state == SessionState.AUTHENTICATED
    assert terminal.require_identity() == identity
    assert UserService(database).has_owner() is True


def test_setup_only_once(database):
    terminal = SessionAuthenticator(database)
    terminal.setup("Alex", "1234")

    with pytest.raises(InvalidStateError):
        terminal.setup("Mallory", "9999")

    terminal.logout()
    with pytest.raises(InvalidStateError):
        terminal.setup("Mallory", "9999")

    assert len(UserService(database).list_users()) == 1


def test_existing_owner_starts_awaiting_login(database, owner):
    terminal = SessionAuthenticator(database)

    assert terminal.state == SessionState.AWAITING_LOGIN
    with pytest.raises(InvalidStateError):
        terminal.setup("Mallory", "9999")


def test_setup_race_between_terminals(database):
    """Test only the first of two uninitialized terminals completes setup."""
    first = SessionAuthenticator(database, "till-1")
    second = SessionAuthenticator(database, "till-2")

    first.setup("Alex", "1234")

    with pytest.raises(InvalidStateError):
        second.setup("Mallory", "9999")

    assert second.state == SessionState.AWAITING_LOGIN
    assert second.login("1234").name == "Alex"


def test_uninitialized_terminal_can_login_after_setup_elsewhere(database):
    first = SessionAuthenticator(database, "till-1")
    second = SessionAuthenticator(database, "till-2")
    first.setup("Alex", "1234")

    identity = second.login("1234")

    assert identity.name == "Alex"
    assert second.state == SessionState.AUTHENTICATED


def test_setup_with_malformed_pin_stays_uninitialized(database):
    terminal = SessionAuthenticator(database)

    with pytest.raises(ValidationError):
        terminal.setup("Alex", "12")

    assert terminal.state == SessionState.UNINITIALIZED


def test_failed_login_can_be_retried(database, owner, cashier):
    terminal = SessionAuthenticator(database)

    for _ in range(5):
        with pytest.raises(InvalidCredentialsError):
            terminal.login("0000")
        assert terminal.state == SessionState.AWAITING_LOGIN

    identity = terminal.login("5678")
    assert identity.user_id == cashier.user_id
    assert identity.role == UserRole.CASHIER


def test_login_while_signed_in(database, owner):
    terminal = SessionAuthenticator(database)
    terminal.login("1234")

    with pytest.raises(InvalidStateError):
        terminal.login("1234")


def test_logout(database, owner):
    terminal = SessionAuthenticator(database)
    terminal.login("1234")

    terminal.logout()

    assert terminal.state == SessionState.AWAITING_LOGIN
    assert terminal.identity is None
    with pytest.raises(NotAuthenticatedError):
        terminal.require_identity()
    with pytest.raises(InvalidStateError):
        terminal.logout()


def test_registry_keeps_one_session_per_terminal(database, owner):
    terminals = TerminalRegistry(database)

    identity = terminals.login("till-1", "1234")
    till = terminals.find("till-1")

    assert till.identity == identity
    assert terminals.find("till-1") is till
    assert terminals.require_identity("till-1") == identity
    assert len(terminals) == 1

    terminals.logout("till-1")
    assert terminals.find("till-1") is till
    assert till.state == SessionState.AWAITING_LOGIN


def test_registry_only_remembers_successful_sign_ins(database, owner):
    """Test status checks and rejected requests leave the registry unchanged."""
    terminals = TerminalRegistry(database)

    assert terminals.status("ghost").state == SessionState.AWAITING_LOGIN
    with pytest.raises(InvalidCredentialsError):
        terminals.login("ghost", "0000")
    with pytest.raises(InvalidStateError):
        terminals.setup("ghost", "Mallory", "9999")
    with pytest.raises(InvalidStateError):
        terminals.logout("ghost")
    with pytest.raises(NotAuthenticatedError):
        terminals.require_identity("ghost")

    assert terminals.find("ghost") is None
    assert len(terminals) == 0


def test_unknown_terminals_do_not_grow_registry(client, owner_headers):
    terminals = client.app.state.terminals
    registered = len(terminals)

    for i in range(20):
        assert client.get(f"/api/v1/terminals/ghost-{i}").status_code == 200
        response = client.post("/api/v1/products/", json={}, headers={"X-Terminal-Id": f"junk-{i}"})
        assert response.status_code in (401, 422)
        response = client.post(
            "/api/v1/products/",
            json={"name": "Widget", "price": 1.00, "stock": 1},
            headers={"X-Terminal-Id": f"junk-{i}"}
        )
        assert response.status_code == 401

    assert len(terminals) == registered


def test_terminal_endpoints(client):
    """Test the full setup, logout and login flow over HTTP."""
    status = client.get("/api/v1/terminals/till-1").json()
    assert status["state"] == "uninitialized"

    response = client.post("/api/v1/terminals/till-1/login", json={"pin": "1234"})
    assert response.status_code == 401

    response = client.post("/api/v1/terminals/till-1/setup", json={"name": "Alex", "pin": "1234"})
    assert response.status_code == 201
    assert response.json()["role"] == "owner"

    status = client.get("/api/v1/terminals/till-1").json()
    assert status["state"] == "authenticated"
    assert status["identity"]["name"] == "Alex"

    response = client.post("/api/v1/terminals/till-2/setup", json={"name": "Eve", "pin": "9999"})
    assert response.status_code == 409

    assert client.post("/api/v1/terminals/till-1/logout").status_code == 204
    assert client.post("/api/v1/terminals/till-1/logout").status_code == 409

    response = client.post("/api/v1/terminals/till-1/login", json={"pin": "0000"})
    assert response.status_code == 401

    response = client.post("/api/v1/terminals/till-1/login", json={"pin": "1234"})
    assert response.status_code == 200
    assert response.json()["name"] == "Alex"


def test_login_rejects_malformed_pin(client, owner_headers):
    response = client.post("/api/v1/terminals/till-3/login", json={"pin": "12345"})

    assert response.status_code == 422
