import pytest

from storefront.errors import DuplicateKeyError, NotFoundError, ValidationError
from storefront.services import catalog_service


def test_category_names_are_unique_case_insensitively(app):
    created = catalog_service.create_category({"name": "Books", "description": "Paper"})
    assert created["name"] == "Books"

    with pytest.raises(DuplicateKeyError):
        catalog_service.create_category({"name": "books"})


def test_category_rename_checks_other_categories(app, catalog):
    catalog_service.update_category(catalog.category_id, {"name": "ELECTRONICS"})  # same row, new case

    with pytest.raises(DuplicateKeyError):
        catalog_service.update_category(catalog.category_id, {"name": "accessories"})


def test_category_requires_name(app):
    with pytest.raises(ValidationError):
        catalog_service.create_category({"description": "nameless"})
    with pytest.raises(ValidationError):
        catalog_service.create_category({"name": "   "})


def test_list_categories_counts_products(app, catalog):
    rows = {row["name"]: row for row in catalog_service.list_categories()}
    assert rows["Electronics"]["product_count"] == 2
    assert rows["Accessories"]["product_count"] == 2


def test_create_product_defaults(app, catalog):
    product = catalog_service.create_product(
        {"name": "Webcam", "price": "129,90", "category_id": catalog.category_id}
    )
    assert product["price"] == "129.90"
    assert product["stock"] == 0
    assert product["is_active"] is True


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "Bad", "price": "-1", "category_id": 1},
        {"name": "Bad", "price": "10.999", "category_id": 1},
        {"name": "Bad", "price": "100000000", "category_id": 1},
        {"name": "Bad", "price": "10", "stock": -2, "category_id": 1},
        {"name": "Bad", "price": "10", "category_id": 1, "sku": "not-a-field"},
        {"price": "10", "category_id": 1},
    ],
)
def test_create_product_validation(app, catalog, payload):
    with pytest.raises(ValidationError):
        catalog_service.create_product(payload)


def test_create_product_needs_existing_category(app, catalog):
    with pytest.raises(NotFoundError):
        catalog_service.create_product({"name": "Orphan", "price": "1", "category_id": 999})


def test_update_product_partial(app, catalog):
    updated = catalog_service.update_product(
        catalog.keyboard_id,
        {"stock": 7, "is_active": "N", "category_id": catalog.other_category_id},
    )
    assert updated["stock"] == 7
    assert updated["is_active"] is False
    assert updated["category_id"] == catalog.other_category_id
    assert updated["price"] == "349.00"

    with pytest.raises(ValidationError):
        catalog_service.update_product(catalog.keyboard_id, {"stock": -1})


def test_list_products_by_category_and_active(app, catalog):
    catalog_service.update_product(catalog.keyboard_id, {"is_active": False})

    names = [p["name"] for p in catalog_service.list_products(category_id=catalog.category_id)]
    active = [p["name"] for p in catalog_service.list_products(category_id=catalog.category_id, active_only=True)]

    assert names == ["Bluetooth Headphones", "Mechanical Keyboard"]
    assert active == ["Bluetooth Headphones"]


def test_customer_email_is_normalized_and_unique(app, catalog):
    created = catalog_service.create_customer(
        {"name": "Carla Dias", "email": "Carla.Dias@Example.COM", "state": "mg", "phone": ""}
    )
    assert created["email"] == "carla.dias@example.com"
    assert created["state"] == "MG"
    assert created["phone"] is None

    with pytest.raises(DuplicateKeyError):
        catalog_service.create_customer({"name": "Copy", "email": "CARLA.dias@example.com"})


def test_customer_validation(app):
    with pytest.raises(ValidationError):
        catalog_service.create_customer({"name": "No Email"})
    with pytest.raises(ValidationError):
        catalog_service.create_customer({"name": "Bad", "email": "not-an-email"})


def test_update_customer_email_collision(app, catalog):
    with pytest.raises(DuplicateKeyError):
        catalog_service.update_customer(catalog.other_customer_id, {"email": catalog.customer_email.upper()})

    updated = catalog_service.update_customer(catalog.other_customer_id, {"city": "Niteroi"})
    assert updated["city"] == "Niteroi"


def test_list_customers_counts_orders(app, catalog, store):
    from storefront.services import order_service

    order_service.create_order(store, catalog.customer_id)
    order_service.create_order(store, catalog.customer_id)

    rows = {row["email"]: row for row in catalog_service.list_customers()}
    assert rows[catalog.customer_email]["order_count"] == 2
    assert rows["bruno.silva@example.com"]["order_count"] == 0


def test_seed_demo_catalog_only_on_empty_database(app):
    counts = catalog_service.seed_demo_catalog()
    assert counts == {"categories": 3, "products": 6, "customers": 2}
    assert len(catalog_service.list_products()) == 6

    with pytest.raises(ValidationError):
        catalog_service.seed_demo_catalog()
