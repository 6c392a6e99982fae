"""
Pytest fixtures for storefront backend tests.

Every test gets a fresh SQLite file under tmp_path. A file database (rather
than :memory:) keeps the ORM session and the SQL adapter on separate
connections, the way they run in production, and lets the concurrency tests
use real database locking.
"""

from dataclasses import dataclass
from decimal import Decimal

import pytest

from storefront import create_app
from storefront.config import TestConfig
from storefront.extensions import db
from storefront.models import Category, Customer, Product
from storefront.stores import BACKENDS, build_order_store


@pytest.fixture
def app(tmp_path):
    """Create application bound to a throwaway SQLite file."""
    config = type(
        "FileTestConfig",
        (TestConfig,),
        {
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'storefront.sqlite3'}",
            "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 10}},
        },
    )
    app = create_app(config)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@dataclass
class Catalog:
    category_id: int
    other_category_id: int
    headphones_id: int   # 199.90, stock 25
    keyboard_id: int     # 349.00, stock 0
    mousepad_id: int     # 59.90, stock 60
    last_unit_id: int    # 10.00, stock 1
    customer_id: int
    customer_email: str
    other_customer_id: int


@pytest.fixture
def catalog(app):
    """A small committed catalog shared by lifecycle tests."""
    electronics = Category(name="Electronics", description="Gadgets")
    accessories = Category(name="Accessories")
    db.session.add_all([electronics, accessories])
    db.session.flush()

    headphones = Product(name="Bluetooth Headphones", price=Decimal("199.90"), stock=25, category_id=electronics.id)
    keyboard = Product(name="Mechanical Keyboard", price=Decimal("349.00"), stock=0, category_id=electronics.id)
    mousepad = Product(name="XL Mousepad", price=Decimal("59.90"), stock=60, category_id=accessories.id)
    last_unit = Product(name="Collector Cable", price=Decimal("10.00"), stock=1, category_id=accessories.id)
    ana = Customer(name="Ana Souza", email="ana.souza@example.com", state="SP")
    bruno = Customer(name="Bruno Silva", email="bruno.silva@example.com", state="RJ")
    db.session.add_all([headphones, keyboard, mousepad, last_unit, ana, bruno])
    db.session.commit()

    return Catalog(
        category_id=electronics.id,
        other_category_id=accessories.id,
        headphones_id=headphones.id,
        keyboard_id=keyboard.id,
        mousepad_id=mousepad.id,
        last_unit_id=last_unit.id,
        customer_id=ana.id,
        customer_email=ana.email,
        other_customer_id=bruno.id,
    )


@pytest.fixture(params=BACKENDS)
def store(request, app):
    """Order store for each adapter; lifecycle tests run once per backend."""
    order_store = build_order_store(request.param)
    yield order_store
    order_store.close()
