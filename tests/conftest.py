import fakeredis
import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from astra_pos.database import Database
from astra_pos.main import create_app
from astra_pos.models.user import UserRole
from astra_pos.schemas.auth import Identity
from astra_pos.schemas.product import ProductCreate
from astra_pos.schemas.user import UserCreate
from astra_pos.services.product_service import ProductService
from astra_pos.services.sale_service import SaleService
from astra_pos.services.user_service import UserService
from astra_pos.utils.cache import CacheService


OWNER_TERMINAL = {"X-Terminal-Id": "till-1"}
CASHIER_TERMINAL = {"X-Terminal-Id": "till-2"}


@pytest.fixture(scope="function")
def database():
    """Fresh in-memory ledger for each test."""
    db = Database("sqlite://")
    db.create_all()

    yield db

    db.drop_all()
    db.dispose()


@pytest.fixture(scope="function")
def cache():
    """Cache backed by an in-process fake Redis."""
    client = fakeredis.FakeRedis(decode_responses=True)
    client.flushall()
    return CacheService(client=client)


@pytest.fixture
def owner(database):
    """Identity of the bootstrap owner (PIN 1234)."""
    user = UserService(database).create_first_owner("Alex", "1234")
    return Identity(user_id=user.id, name=user.name, role=user.role)


@pytest.fixture
def cashier(database, owner):
    """Identity of a cashier (PIN 5678) created by the owner."""
    user = UserService(database).create(
        UserCreate(name="Sam", role=UserRole.CASHIER, pin="5678"),
        owner
    )
    return Identity(user_id=user.id, name=user.name, role=user.role)


@pytest.fixture
def product_service(database, cache):
    return ProductService(database, cache=cache)


@pytest.fixture
def sale_service(database, cache):
    return SaleService(database, cache=cache)


@pytest.fixture
def make_product(product_service, owner):
    """Factory creating a product as the owner."""
    def _make(name="Widget", price="10.00", stock=5):
        return product_service.create(
            ProductCreate(name=name, price=Decimal(price), stock=stock),
            owner
        )
    return _make


@pytest.fixture(scope="function")
def client(database, cache):
    """Create test client around the per-test ledger."""
    app = create_app(database, cache)

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def owner_headers(client):
    """Run first-run setup on till-1 and return its headers."""
    response = client.post(
        "/api/v1/terminals/till-1/setup",
        json={"name": "Alex", "pin": "1234"}
    )
    assert response.status_code == 201
    return OWNER_TERMINAL


@pytest.fixture
def cashier_headers(client, owner_headers):
    """Create a cashier, sign them in on till-2 and return its headers."""
    response = client.post(
        "/api/v1/users/",
        json={"name": "Sam", "role": "cashier", "pin": "5678"},
        headers=owner_headers
    )
    assert response.status_code == 201

    response = client.post("/api/v1/terminals/till-2/login", json={"pin": "5678"})
    assert response.status_code == 200
    return CASHIER_TERMINAL
