# Overview: Service-layer catalog maintenance; categories, products and customers over the ORM session.

"""
Catalog service

Payloads are validated against the model columns plus a writable-field
policy (validation.validate_payload) before anything is added to the session.
Names and emails are unique case-insensitively; a collision that slips past
the pre-check (concurrent insert) surfaces as the unique index's
IntegrityError and is reported as DuplicateKeyError.

Stock set here is an absolute correction by an operator. Sales and restocks
never come through this module; they use the order store's conditional
UPDATE (services.inventory_service).
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import DuplicateKeyError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Category, Customer, Order, Product
from ..validation import (
    ModelValidationPolicy,
    coerce_int,
    enforce_rules_customer,
    enforce_rules_product,
    validate_payload,
)

logger = logging.getLogger(__name__)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price", "stock", "is_active", "category_id"},
    required_on_create={"name", "price", "category_id"},
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "email", "phone", "tax_id", "address", "city", "state", "postal_code", "is_active",
    },
    required_on_create={"name", "email"},
)


def _commit(conflict_message: str, details: dict) -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("%s: %s", conflict_message, exc.orig)
        raise DuplicateKeyError(conflict_message, details=details) from exc


def _apply(obj, patch: dict) -> None:
    for key, value in patch.items():
        setattr(obj, key, value)


# =============================================================================
# Categories
# =============================================================================

def _require_category(category_id) -> Category:
    category_id = coerce_int(category_id, "category_id")
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found", details={"category_id": category_id})
    return category


def _ensure_category_name_free(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Category.id).filter(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first() is not None:
        raise DuplicateKeyError("Category name already exists", details={"name": name})


def list_categories() -> list[dict]:
    counts = dict(
        db.session.query(Product.category_id, func.count(Product.id))
        .group_by(Product.category_id)
        .all()
    )
    categories = db.session.query(Category).order_by(Category.name.asc()).all()
    return [{**c.to_dict(), "product_count": counts.get(c.id, 0)} for c in categories]


def get_category(category_id) -> dict:
    return _require_category(category_id).to_dict()


def create_category(payload: dict) -> dict:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    _ensure_category_name_free(patch["name"])

    category = Category()
    _apply(category, patch)
    db.session.add(category)
    _commit("Category name already exists", {"name": patch["name"]})

    logger.info("Category %s created: %s", category.id, category.name)
    return category.to_dict()


def update_category(category_id, payload: dict) -> dict:
    category = _require_category(category_id)
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
    if patch.get("name"):
        _ensure_category_name_free(patch["name"], exclude_id=category.id)

    _apply(category, patch)
    _commit("Category name already exists", {"name": category.name})
    return category.to_dict()


# =============================================================================
# Products
# =============================================================================

def _require_product(product_id) -> Product:
    product_id = coerce_int(product_id, "product_id")
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def list_products(*, category_id=None, active_only: bool = False) -> list[dict]:
    query = db.session.query(Product)
    if category_id not in (None, ""):
        query = query.filter(Product.category_id == _require_category(category_id).id)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    products = query.order_by(Product.name.asc(), Product.id.asc()).all()
    return [p.to_dict() for p in products]


def get_product(product_id) -> dict:
    return _require_product(product_id).to_dict()


def create_product(payload: dict) -> dict:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    _require_category(patch["category_id"])

    product = Product(stock=0, is_active=True)
    _apply(product, patch)
    db.session.add(product)
    db.session.commit()

    logger.info("Product %s created: %s (stock %s)", product.id, product.name, product.stock)
    return product.to_dict()


def update_product(product_id, payload: dict) -> dict:
    product = _require_product(product_id)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)
    if "category_id" in patch:
        _require_category(patch["category_id"])

    _apply(product, patch)
    db.session.commit()
    return product.to_dict()


# =============================================================================
# Customers
# =============================================================================

def _require_customer(customer_id) -> Customer:
    customer_id = coerce_int(customer_id, "customer_id")
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return customer


def _ensure_email_free(email: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Customer.id).filter(func.lower(Customer.email) == email.lower())
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first() is not None:
        raise DuplicateKeyError("Email already registered", details={"email": email})


def list_customers() -> list[dict]:
    counts = dict(
        db.session.query(Order.customer_id, func.count(Order.id))
        .group_by(Order.customer_id)
        .all()
    )
    customers = db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc()).all()
    return [{**c.to_dict(), "order_count": counts.get(c.id, 0)} for c in customers]


def get_customer(customer_id) -> dict:
    return _require_customer(customer_id).to_dict()


def create_customer(payload: dict) -> dict:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    enforce_rules_customer(patch)
    _ensure_email_free(patch["email"])

    customer = Customer(is_active=True)
    _apply(customer, patch)
    db.session.add(customer)
    _commit("Email already registered", {"email": patch["email"]})

    logger.info("Customer %s created: %s", customer.id, customer.email)
    return customer.to_dict()


def update_customer(customer_id, payload: dict) -> dict:
    customer = _require_customer(customer_id)
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    enforce_rules_customer(patch)
    if patch.get("email"):
        _ensure_email_free(patch["email"], exclude_id=customer.id)

    _apply(customer, patch)
    _commit("Email already registered", {"email": customer.email})
    return customer.to_dict()


# =============================================================================
# Demo data
# =============================================================================

DEMO_CATEGORIES = [
    {"name": "Electronics", "description": "Gadgets and devices"},
    {"name": "Books", "description": "Fiction, non-fiction and technical"},
    {"name": "Accessories", "description": "General accessories"},
]

DEMO_PRODUCTS = [
    ("Electronics", "Bluetooth Headphones", "Wireless headphones with case", "199.90", 25),
    ("Electronics", "Mechanical Keyboard", "Blue switches", "349.00", 0),
    ("Books", "Python Essentials", "Concepts and practice", "129.90", 40),
    ("Books", "SQLAlchemy in Practice", "Mapping and queries", "149.90", 15),
    ("Accessories", "XL Mousepad", "900x400mm", "59.90", 60),
    ("Accessories", "USB-C Cable", "1.5m braided nylon", "39.90", 100),
]

DEMO_CUSTOMERS = [
    {
        "name": "Ana Souza", "email": "ana.souza@example.com", "phone": "11988887777",
        "tax_id": "11122233344", "address": "Rua A, 123", "city": "Sao Paulo",
        "state": "SP", "postal_code": "01000-000",
    },
    {
        "name": "Bruno Silva", "email": "bruno.silva@example.com", "phone": "21999996666",
        "tax_id": "55566677788", "address": "Av. B, 456", "city": "Rio de Janeiro",
        "state": "RJ", "postal_code": "20000-000",
    },
]


def seed_demo_catalog() -> dict:
    """
    Load a small demo catalog (includes one product with zero stock).

    Refuses to run on a database that already has categories.
    """
    if db.session.query(Category.id).first() is not None:
        raise ValidationError("Catalog is not empty; refusing to seed demo data")

    categories = {}
    for row in DEMO_CATEGORIES:
        category = Category(**row)
        db.session.add(category)
        categories[row["name"]] = category
    db.session.flush()

    for category_name, name, description, price, stock in DEMO_PRODUCTS:
        db.session.add(Product(
            category_id=categories[category_name].id,
            name=name,
            description=description,
            price=Decimal(price),
            stock=stock,
            is_active=True,
        ))

    for row in DEMO_CUSTOMERS:
        db.session.add(Customer(is_active=True, **row))

    db.session.commit()
    counts = {
        "categories": len(DEMO_CATEGORIES),
        "products": len(DEMO_PRODUCTS),
        "customers": len(DEMO_CUSTOMERS),
    }
    logger.info("Demo catalog loaded: %s", counts)
    return counts
