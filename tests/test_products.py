"""Tests for the catalog store and the Product API endpoints."""
import pytest
from decimal import Decimal

from astra_pos.schemas.product import ProductCreate, ProductUpdate
from astra_pos.services.errors import (
    NotFoundError,
    NotAuthenticatedError,
    ProductNotFoundError,
    InsufficientStockError,
    ValidationError,
)


def test_create_product(client, owner_headers):
    """Test creating a new product."""
    response = client.post(
        "/api/v1/products/",
        json={
            "name": "Test Product",
            "price": 99.99,
            "stock": 10
        },
        headers=owner_headers
    )

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Test Product"
    assert data["price"] == 99.99
    assert data["stock"] == 10
    assert "id" in data


def test_create_product_allows_zero_price(client, owner_headers):
    """Test a free item is accepted."""
    response = client.post(
        "/api/v1/products/",
        json={"name": "Napkins", "price": 0, "stock": 100},
        headers=owner_headers
    )

    assert response.status_code == 201
    assert response.json()["price"] == 0


def test_create_product_invalid_price(client, owner_headers):
    """Test creating product with invalid price fails."""
    response = client.post(
        "/api/v1/products/",
        json={
            "name": "Test Product",
            "price": -10.00,  # Invalid: negative price
            "stock": 10
        },
        headers=owner_headers
    )

    assert response.status_code == 422  # Validation error


def test_create_product_price_too_large(client, owner_headers):
    """Test prices wider than the price column are rejected."""
    response = client.post(
        "/api/v1/products/",
        json={"name": "Yacht", "price": 100000000.00, "stock": 1},
        headers=owner_headers
    )

    assert response.status_code == 422


def test_create_product_invalid_stock(client, owner_headers):
    """Test creating product with negative stock fails."""
    response = client.post(
        "/api/v1/products/",
        json={
            "name": "Test Product",
            "price": 99.99,
            "stock": -5  # Invalid: negative stock
        },
        headers=owner_headers
    )

    assert response.status_code == 422


def test_create_product_requires_signed_in_terminal(client, owner_headers):
    """Test a terminal nobody is signed in to cannot change the catalog."""
    response = client.post(
        "/api/v1/products/",
        json={"name": "Sneaky", "price": 1.00, "stock": 1},
        headers={"X-Terminal-Id": "till-9"}
    )

    assert response.status_code == 401


def test_create_product_requires_terminal_header(client, owner_headers):
    """Test mutations must name their terminal."""
    response = client.post(
        "/api/v1/products/",
        json={"name": "Anonymous", "price": 1.00, "stock": 1}
    )

    assert response.status_code == 422


def test_cashier_can_create_product(client, cashier_headers):
    """Test any signed-in user may manage the catalog."""
    response = client.post(
        "/api/v1/products/",
        json={"name": "Gum", "price": 0.99, "stock": 40},
        headers=cashier_headers
    )

    assert response.status_code == 201


def test_get_product(client, owner_headers):
    """Test getting a product by ID."""
    create_response = client.post(
        "/api/v1/products/",
        json={"name": "Test Product", "price": 50.00, "stock": 5},
        headers=owner_headers
    )
    product_id = create_response.json()["id"]

    response = client.get(f"/api/v1/products/{product_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == product_id
    assert data["name"] == "Test Product"


def test_get_product_not_found(client):
    """Test getting non-existent product returns 404."""
    response = client.get("/api/v1/products/9999")

    assert response.status_code == 404


def test_list_products_ordered_by_name(client, owner_headers):
    """Test listing returns every product sorted by name."""
    for name in ["Coke", "Burger", "Fries", "Apple Pie"]:
        client.post(
            "/api/v1/products/",
            json={"name": name, "price": 1.00, "stock": 10},
            headers=owner_headers
        )

    response = client.get("/api/v1/products/")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 4
    assert [p["name"] for p in data["items"]] == ["Apple Pie", "Burger", "Coke", "Fries"]


def test_update_product(client, owner_headers):
    """Test replacing a product record."""
    create_response = client.post(
        "/api/v1/products/",
        json={"name": "Original Name", "price": 50.00, "stock": 10},
        headers=owner_headers
    )
    product_id = create_response.json()["id"]

    response = client.put(
        f"/api/v1/products/{product_id}",
        json={"name": "Updated Name", "price": 75.00, "stock": 3},
        headers=owner_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Updated Name"
    assert data["price"] == 75.00
    assert data["stock"] == 3


def test_update_product_requires_every_field(client, owner_headers):
    """Test updates are wholesale, not partial."""
    create_response = client.post(
        "/api/v1/products/",
        json={"name": "Original Name", "price": 50.00, "stock": 10},
        headers=owner_headers
    )
    product_id = create_response.json()["id"]

    response = client.put(
        f"/api/v1/products/{product_id}",
        json={"name": "Updated Name"},
        headers=owner_headers
    )

    assert response.status_code == 422


def test_update_product_not_found(client, owner_headers):
    """Test updating a missing product returns 404."""
    response = client.put(
        "/api/v1/products/9999",
        json={"name": "Ghost", "price": 1.00, "stock": 1},
        headers=owner_headers
    )

    assert response.status_code == 404


def test_products_cannot_be_deleted(client, owner_headers):
    """Test there is no delete endpoint for products."""
    create_response = client.post(
        "/api/v1/products/",
        json={"name": "Keeper", "price": 1.00, "stock": 1},
        headers=owner_headers
    )
    product_id = create_response.json()["id"]

    response = client.delete(f"/api/v1/products/{product_id}", headers=owner_headers)

    assert response.status_code == 405


def test_search_products(client, owner_headers):
    """Test searching products by name."""
    for name, price in [("Apple iPhone", 999.00), ("Samsung Galaxy", 899.00), ("Apple MacBook", 1999.00)]:
        client.post(
            "/api/v1/products/",
            json={"name": name, "price": price, "stock": 10},
            headers=owner_headers
        )

    response = client.get("/api/v1/products/?search=apple")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert all("Apple" in item["name"] for item in data["items"])


def test_list_products_is_idempotent(product_service, make_product):
    """Test two reads without a write in between are equal."""
    make_product("Burger", "5.99", 50)
    make_product("Fries", "2.49", 100)

    assert product_service.list_products() == product_service.list_products()


def test_list_products_returns_copies(product_service, make_product):
    """Test changing a returned snapshot does not change the store."""
    product = make_product("Burger", "5.99", 50)

    snapshot = product_service.list_products()
    snapshot[0].stock = 0
    snapshot.clear()

    assert product_service.get(product.id).stock == 50


def test_create_requires_actor(product_service):
    """Test the store itself refuses anonymous writes."""
    with pytest.raises(NotAuthenticatedError):
        product_service.create(ProductCreate(name="Burger", price=Decimal("5.99"), stock=1), None)


def test_create_rejects_negative_values_without_schema_checks(product_service, owner):
    """Test the store validates even records built without pydantic validation."""
    bad = ProductCreate.model_construct(name="Burger", price=Decimal("-1"), stock=1)

    with pytest.raises(ValidationError):
        product_service.create(bad, owner)

    assert product_service.list_products() == []


def test_create_rejects_oversized_values_without_schema_checks(product_service, owner):
    too_expensive = ProductCreate.model_construct(name="Yacht", price=Decimal("100000000.00"), stock=1)
    too_many = ProductCreate.model_construct(name="Rice", price=Decimal("1.00"), stock=2_147_483_648)

    for bad in (too_expensive, too_many):
        with pytest.raises(ValidationError):
            product_service.create(bad, owner)

    assert product_service.list_products() == []


def test_adjust_stock_cannot_overflow(product_service, make_product):
    product = make_product(stock=2_147_483_600)

    with pytest.raises(ValidationError):
        product_service.adjust_stock(product.id, 100)

    assert product_service.get(product.id).stock == 2_147_483_600


def test_update_missing_product(product_service, owner):
    with pytest.raises(NotFoundError):
        product_service.update(
            ProductUpdate(id=42, name="Ghost", price=Decimal("1.00"), stock=1),
            owner
        )


def test_adjust_stock(product_service, make_product):
    """Test stock adjustments apply and never go below zero."""
    product = make_product(stock=5)

    assert product_service.adjust_stock(product.id, -3).stock == 2
    assert product_service.adjust_stock(product.id, 4).stock == 6

    with pytest.raises(InsufficientStockError) as excinfo:
        product_service.adjust_stock(product.id, -7)

    assert excinfo.value.available == 6
    assert excinfo.value.requested == 7
    assert product_service.get(product.id).stock == 6


def test_adjust_stock_unknown_product(product_service):
    with pytest.raises(ProductNotFoundError):
        product_service.adjust_stock(123, -1)


def test_seed_demo_catalog(product_service):
    """Test the demo menu is loaded into an empty catalog only once."""
    assert product_service.seed_demo_catalog() == 5
    assert product_service.seed_demo_catalog() == 0

    names = [p.name for p in product_service.list_products()]
    assert names == ["Burger", "Coffee", "Coke", "Fries", "Iced Tea"]
