"""Order lifecycle against both order store adapters (the `store` fixture is parametrized)."""

import re
from datetime import datetime
from decimal import Decimal

import pytest

from storefront.errors import (
    AlreadyCancelledError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from storefront.models.orders import OrderStatus
from storefront.services import order_service


def stock(store, product_id):
    return store.find_product(product_id).stock


def order_count(store):
    return len(store.list_orders())


# =============================================================================
# Creation and totals
# =============================================================================

def test_create_empty_order_is_confirmed_with_zero_total(store, catalog):
    order = order_service.create_order(store, catalog.customer_id)

    assert order.status is OrderStatus.CONFIRMED
    assert order.total == Decimal("0.00")
    assert order.items == ()
    assert re.match(r"^PED-\d{8}-\d{4}$", order.order_number)


def test_customer_resolves_by_email_case_insensitively(store, catalog):
    order = order_service.create_order(store, "  ANA.Souza@Example.com ")
    assert order.customer_id == catalog.customer_id


def test_totals_accumulate_line_by_line(store, catalog):
    order = order_service.create_order(store, catalog.customer_id)

    assert order_service.append_item(store, order.id, catalog.headphones_id, 1) == Decimal("199.90")
    assert order_service.append_item(store, order.id, catalog.mousepad_id, 1) == Decimal("259.80")

    reloaded = order_service.get_order(store, order.id)
    assert reloaded.total == Decimal("259.80")
    assert [i.unit_price for i in reloaded.items] == [Decimal("199.90"), Decimal("59.90")]
    assert order_service.verify_total(store, order.id)["consistent"] is True


def test_create_with_items_debits_stock_once(store, catalog):
    order = order_service.create_order(
        store,
        catalog.customer_email,
        [(catalog.headphones_id, 2), {"product_id": catalog.mousepad_id, "quantity": 3}],
        notes="Standard delivery",
    )

    assert order.total == Decimal("579.50")  # 2 x 199.90 + 3 x 59.90
    assert order.notes == "Standard delivery"
    assert stock(store, catalog.headphones_id) == 23
    assert stock(store, catalog.mousepad_id) == 57


def test_line_and_order_discounts(store, catalog):
    order = order_service.create_order(
        store,
        catalog.customer_id,
        [{"product_id": catalog.headphones_id, "quantity": 1, "discount": "19,90"}],
        discount="10.00",
    )

    assert order.total == Decimal("180.00")
    assert order.discount == Decimal("10.00")
    assert order.net_total == Decimal("170.00")
    assert order.items[0].subtotal == Decimal("180.00")


@pytest.mark.parametrize("discount, items", [("59.91", 1), ("5.00", 0)])
def test_order_discount_cannot_exceed_items_total(store, catalog, discount, items):
    lines = [(catalog.mousepad_id, 1)] if items else []

    with pytest.raises(ValidationError) as exc:
        order_service.create_order(store, catalog.customer_id, lines, discount=discount)

    assert exc.value.details["discount"] == discount
    assert order_count(store) == 0
    assert stock(store, catalog.mousepad_id) == 60


def test_order_discount_equal_to_total_is_allowed(store, catalog):
    order = order_service.create_order(
        store, catalog.customer_id, [(catalog.mousepad_id, 1)], discount="59.90"
    )
    assert order.net_total == Decimal("0.00")


def test_unit_price_is_frozen_at_sale(store, catalog, app):
    from storefront.extensions import db
    from storefront.models import Product

    order = order_service.create_order(store, catalog.customer_id, [(catalog.headphones_id, 1)])

    product = db.session.get(Product, catalog.headphones_id)
    product.price = Decimal("249.90")
    db.session.commit()

    reloaded = order_service.get_order(store, order.id)
    assert reloaded.items[0].unit_price == Decimal("199.90")
    assert reloaded.total == Decimal("199.90")


def test_order_numbers_are_sequential_per_day(store, catalog):
    day = datetime(2026, 3, 9, 14, 30)
    first = order_service.create_order(store, catalog.customer_id, now=day)
    second = order_service.create_order(store, catalog.customer_id, now=day)
    next_day = order_service.create_order(store, catalog.customer_id, now=datetime(2026, 3, 10, 8, 0))

    assert first.order_number == "PED-20260309-0001"
    assert second.order_number == "PED-20260309-0002"
    assert next_day.order_number == "PED-20260310-0001"


# =============================================================================
# Failures leave no trace
# =============================================================================

@pytest.mark.parametrize("quantity", [0, -1, "abc", 1.5])
def test_bad_quantity_is_rejected_before_storage(store, catalog, quantity):
    order = order_service.create_order(store, catalog.customer_id)

    with pytest.raises(ValidationError):
        order_service.append_item(store, order.id, catalog.headphones_id, quantity)

    assert stock(store, catalog.headphones_id) == 25
    assert order_service.get_order(store, order.id).items == ()


def test_unknown_product_is_not_found(store, catalog):
    order = order_service.create_order(store, catalog.customer_id)

    with pytest.raises(NotFoundError):
        order_service.append_item(store, order.id, 99999, 1)

    assert order_service.get_order(store, order.id).total == Decimal("0.00")


def test_failed_append_has_no_partial_effect(store, catalog):
    order = order_service.create_order(store, catalog.customer_id, [(catalog.headphones_id, 1)])

    with pytest.raises(InsufficientStockError) as exc:
        order_service.append_item(store, order.id, catalog.keyboard_id, 1)

    assert exc.value.details["on_hand"] == 0
    reloaded = order_service.get_order(store, order.id)
    assert reloaded.total == Decimal("199.90")
    assert len(reloaded.items) == 1
    assert stock(store, catalog.keyboard_id) == 0
    assert stock(store, catalog.headphones_id) == 24


def test_failing_item_rolls_back_whole_order(store, catalog):
    with pytest.raises(InsufficientStockError):
        order_service.create_order(
            store,
            catalog.customer_id,
            [(catalog.headphones_id, 2), (catalog.keyboard_id, 1)],
        )

    assert order_count(store) == 0
    assert stock(store, catalog.headphones_id) == 25


def test_excessive_line_discount_is_rejected(store, catalog):
    with pytest.raises(ValidationError):
        order_service.create_order(
            store,
            catalog.customer_id,
            [{"product_id": catalog.mousepad_id, "quantity": 1, "discount": "60.00"}],
        )
    assert stock(store, catalog.mousepad_id) == 60
    assert order_count(store) == 0


def test_unknown_customer_is_not_found(store, catalog):
    with pytest.raises(NotFoundError):
        order_service.create_order(store, "nobody@example.com", [(catalog.headphones_id, 1)])
    assert stock(store, catalog.headphones_id) == 25


def test_items_cannot_be_added_once_work_started(store, catalog):
    order = order_service.create_order(store, catalog.customer_id)
    order_service.update_status(store, order.id, OrderStatus.IN_PROGRESS)

    with pytest.raises(InvalidTransitionError):
        order_service.append_item(store, order.id, catalog.headphones_id, 1)
    assert stock(store, catalog.headphones_id) == 25


# =============================================================================
# Status, cancel and return
# =============================================================================

def test_status_advances_along_the_machine(store, catalog):
    order = order_service.create_order(store, catalog.customer_id)

    assert order_service.update_status(store, order.id, "IN_PROGRESS").status is OrderStatus.IN_PROGRESS
    assert order_service.update_status(store, order.id, 4).status is OrderStatus.DELIVERED

    with pytest.raises(InvalidTransitionError):
        order_service.update_status(store, order.id, "CONFIRMED")


def test_status_update_cannot_cancel(store, catalog):
    order = order_service.create_order(store, catalog.customer_id, [(catalog.headphones_id, 1)])

    with pytest.raises(InvalidTransitionError):
        order_service.update_status(store, order.id, OrderStatus.CANCELLED)

    assert order_service.get_order(store, order.id).status is OrderStatus.CONFIRMED
    assert stock(store, catalog.headphones_id) == 24


def test_cancel_restocks_exactly_once(store, catalog):
    order = order_service.create_order(
        store,
        catalog.customer_id,
        [(catalog.headphones_id, 2), (catalog.mousepad_id, 1)],
    )

    cancelled = order_service.cancel_order(store, order.id, now=datetime(2026, 5, 4, 9, 5))

    assert cancelled.status is OrderStatus.CANCELLED
    assert cancelled.notes.endswith(" | Cancelled at 04/05/2026 09:05")
    assert stock(store, catalog.headphones_id) == 25
    assert stock(store, catalog.mousepad_id) == 60

    with pytest.raises(AlreadyCancelledError):
        order_service.cancel_order(store, order.id)

    assert stock(store, catalog.headphones_id) == 25
    assert stock(store, catalog.mousepad_id) == 60


def test_cancel_refused_after_work_started(store, catalog):
    order = order_service.create_order(store, catalog.customer_id, [(catalog.headphones_id, 1)])
    order_service.update_status(store, order.id, "in_progress")

    with pytest.raises(InvalidTransitionError):
        order_service.cancel_order(store, order.id)

    assert stock(store, catalog.headphones_id) == 24


def test_cancel_unknown_order(store, catalog):
    with pytest.raises(NotFoundError):
        order_service.cancel_order(store, 4242)


def test_return_delivered_order(store, catalog):
    order = order_service.create_order(
        store, catalog.customer_id, [(catalog.mousepad_id, 4)], notes="Gift"
    )
    order_service.update_status(store, order.id, "IN_PROGRESS")
    order_service.update_status(store, order.id, "DELIVERED")

    returned = order_service.return_order(store, order.order_number, now=datetime(2026, 1, 31, 23, 59))

    assert returned.status is OrderStatus.CANCELLED
    assert returned.notes == "Gift | Returned at 31/01/2026 23:59"
    assert stock(store, catalog.mousepad_id) == 60

    with pytest.raises(AlreadyCancelledError):
        order_service.return_order(store, order.order_number)
    assert stock(store, catalog.mousepad_id) == 60


def test_return_unknown_order_number(store, catalog):
    with pytest.raises(NotFoundError):
        order_service.return_order(store, "PED-19990101-0001")


def test_round_trip_keeps_last_total(store, catalog):
    order = order_service.create_order(store, catalog.customer_id)
    order_service.append_item(store, order.id, catalog.headphones_id, 1)
    last_total = order_service.append_item(store, order.id, catalog.mousepad_id, 2)

    cancelled = order_service.cancel_order(store, order.id)

    assert cancelled.total == last_total == Decimal("319.70")
    assert order_service.verify_total(store, order.id)["consistent"] is True


# =============================================================================
# Reads
# =============================================================================

def test_list_orders_filters(store, catalog):
    first = order_service.create_order(store, catalog.customer_id)
    second = order_service.create_order(store, catalog.other_customer_id)
    order_service.cancel_order(store, second.id)

    by_customer = order_service.list_orders(store, customer=catalog.customer_email)
    cancelled = order_service.list_orders(store, status="cancelled")

    assert [o.id for o in by_customer] == [first.id]
    assert [o.id for o in cancelled] == [second.id]
    assert {o.id for o in order_service.list_orders(store)} == {first.id, second.id}


def test_get_order_by_number(store, catalog):
    order = order_service.create_order(store, catalog.customer_id, [(catalog.headphones_id, 1)])
    found = order_service.get_order_by_number(store, order.order_number)

    assert found.id == order.id
    assert found.to_dict()["status"] == "CONFIRMED"
    assert found.to_dict()["items"][0]["subtotal"] == "199.90"
