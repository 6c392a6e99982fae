# Overview: Order lifecycle controller; create, append items, advance status, cancel and return.

"""
Order service

Every mutating operation below is one unit of work on the given OrderStore:
stock and the order row change together or not at all.

- Input problems (bad quantity, bad discount, unknown status name) are raised
  before a transaction is opened and never touch storage.
- Stock is debited by the store's conditional UPDATE, so two buyers of the
  last unit cannot both succeed.
- Status changes are compare-and-set on the status column. If another writer
  moved the order first, the loser gets AlreadyCancelledError or
  InvalidTransitionError instead of restocking twice.
- Nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Mapping

from ..errors import AlreadyCancelledError, InvalidTransitionError, NotFoundError, ValidationError
from ..models.orders import OrderStatus
from ..stores.base import CENT, OrderRecord, OrderStore
from ..validation import MAX_PRICE, coerce_decimal, coerce_int, require_positive_quantity
from .document_service import next_order_number
from .inventory_service import debit, restock_order
from .lifecycle_service import (
    OPEN_STATUSES,
    parse_status,
    require_cancellable,
    require_open,
    require_returnable,
    require_status_update,
)
from storefront.time_utils import audit_stamp, utcnow

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 1000


@dataclass(frozen=True)
class LineRequest:
    product_id: int
    quantity: int
    discount: Decimal = Decimal("0.00")


def _coerce_discount(value, field: str = "discount") -> Decimal:
    if value is None:
        return Decimal("0.00")
    amount = coerce_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0", details={field: str(amount)})
    if amount > MAX_PRICE:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE}")
    return amount


def _line_request(entry) -> LineRequest:
    if isinstance(entry, LineRequest):
        return entry
    if isinstance(entry, Mapping):
        if "product_id" not in entry or "quantity" not in entry:
            raise ValidationError("Each item needs product_id and quantity")
        product_id, quantity, discount = entry["product_id"], entry["quantity"], entry.get("discount")
    else:
        try:
            product_id, quantity, *rest = entry
        except (TypeError, ValueError):
            raise ValidationError("Each item needs product_id and quantity")
        discount = rest[0] if rest else None
    return LineRequest(
        product_id=coerce_int(product_id, "product_id"),
        quantity=require_positive_quantity(quantity),
        discount=_coerce_discount(discount),
    )


def parse_line_requests(items: Iterable | None) -> list[LineRequest]:
    """Validate (product_id, quantity[, discount]) pairs or dicts up front."""
    if items is None:
        return []
    if isinstance(items, (str, bytes, Mapping)):
        raise ValidationError("items must be a list")
    return [_line_request(entry) for entry in items]


def _clean_notes(notes) -> str | None:
    if notes is None:
        return None
    notes = str(notes).strip()
    if not notes:
        return None
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes exceeds max length {MAX_NOTES_LENGTH}")
    return notes


def _append_note(notes: str | None, suffix: str) -> str:
    combined = f"{notes or ''}{suffix}"
    # Keep the newest audit suffix when the column would overflow.
    return combined[-MAX_NOTES_LENGTH:]


def _require_order(order: OrderRecord | None, **ref) -> OrderRecord:
    if order is None:
        raise NotFoundError("Order not found", details=ref)
    return order


def _add_line(store: OrderStore, order: OrderRecord, line: LineRequest) -> Decimal:
    """Snapshot the price, debit stock, insert the item and raise the total. Returns the line subtotal."""
    product = store.find_product(line.product_id)
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": line.product_id})

    gross = (product.price * line.quantity).quantize(CENT)
    if line.discount > gross:
        raise ValidationError(
            "Item discount cannot exceed quantity x unit price",
            details={"product_id": line.product_id, "discount": str(line.discount), "gross": str(gross)},
        )

    debit(store, product.id, line.quantity)
    store.insert_item(
        order_id=order.id,
        product_id=product.id,
        quantity=line.quantity,
        unit_price=product.price,
        discount=line.discount,
    )
    subtotal = gross - line.discount
    if not store.increment_order_total(order.id, subtotal, open_statuses=OPEN_STATUSES):
        _raise_status_conflict(store, order.id, "add items to")
    return subtotal


def _raise_status_conflict(store: OrderStore, order_id: int, action: str) -> None:
    current = store.find_order(order_id)
    if current is None:
        raise NotFoundError("Order not found", details={"order_id": order_id})
    if current.status == OrderStatus.CANCELLED:
        raise AlreadyCancelledError("Order is already cancelled", details={"order_id": order_id})
    raise InvalidTransitionError(
        f"Order status changed concurrently; cannot {action} order",
        details={"order_id": order_id, "current": current.status.name},
    )


# =============================================================================
# Creation and items
# =============================================================================

def create_order(
    store: OrderStore,
    customer,
    items: Iterable | None = None,
    *,
    discount=None,
    notes=None,
    now: datetime | None = None,
) -> OrderRecord:
    """
    Create a CONFIRMED order for `customer` (id or email) and add `items`.

    The order number, every stock debit and every item are one unit of work:
    if any item fails, the order does not exist afterwards.
    """
    lines = parse_line_requests(items)
    order_discount = _coerce_discount(discount)
    clean_notes = _clean_notes(notes)
    if customer is None or (isinstance(customer, str) and not customer.strip()):
        raise ValidationError("customer is required")

    now = now or utcnow()
    with store.transaction():
        found = store.find_customer(customer)
        if found is None:
            raise NotFoundError("Customer not found", details={"customer": customer})

        order = store.insert_order(
            order_number=next_order_number(store, now),
            customer_id=found.id,
            order_date=now,
            status=OrderStatus.CONFIRMED,
            discount=order_discount,
            notes=clean_notes,
        )
        for line in lines:
            _add_line(store, order, line)
        created = store.find_order(order.id)
        if created.discount > created.total:
            raise ValidationError(
                "Order discount cannot exceed the items total",
                details={"discount": str(created.discount), "total": str(created.total)},
            )

    logger.info(
        "Order %s created for customer %s: %s items, total %s (%s)",
        created.order_number,
        created.customer_id,
        len(created.items),
        created.total,
        store.backend_name,
    )
    return created


def append_item(store: OrderStore, order_id, product_id, quantity, *, discount=None) -> Decimal:
    """Add one line to an open order. Returns the order's new running total."""
    order_id = coerce_int(order_id, "order_id")
    line = _line_request({"product_id": product_id, "quantity": quantity, "discount": discount})

    with store.transaction():
        order = _require_order(store.find_order(order_id, lock=True), order_id=order_id)
        require_open(order.status)
        _add_line(store, order, line)
        total = _require_order(store.find_order(order_id), order_id=order_id).total

    logger.info(
        "Order %s: added %s x product %s, total now %s",
        order.order_number,
        line.quantity,
        line.product_id,
        total,
    )
    return total


# =============================================================================
# Status changes
# =============================================================================

def update_status(store: OrderStore, order_id, status) -> OrderRecord:
    """Advance an order along the status machine (never to CANCELLED)."""
    order_id = coerce_int(order_id, "order_id")
    target = parse_status(status)

    with store.transaction():
        order = _require_order(store.find_order(order_id, lock=True), order_id=order_id)
        require_status_update(order.status, target)
        if not store.set_order_status(order.id, target, expected=order.status):
            _raise_status_conflict(store, order.id, f"move to {target.name}")
        updated = store.find_order(order.id)

    logger.info("Order %s status %s -> %s", order.order_number, order.status.name, target.name)
    return updated


def _cancel_with_restock(store: OrderStore, order: OrderRecord, suffix: str) -> tuple[OrderRecord, int]:
    """Flip the order to CANCELLED, then credit its items. Returns the order and the units restocked."""
    # Status flips first: a concurrent cancel/return of the same order fails
    # the compare-and-set here and never reaches the restock.
    if not store.set_order_status(
        order.id,
        OrderStatus.CANCELLED,
        expected=order.status,
        notes=_append_note(order.notes, suffix),
    ):
        _raise_status_conflict(store, order.id, "cancel")
    # Items are read after the status write: an append that committed since the
    # first read is included, a later one fails its open-status check.
    cancelled = store.find_order(order.id)
    units = restock_order(store, cancelled)
    return cancelled, units


def cancel_order(store: OrderStore, order_id, *, now: datetime | None = None) -> OrderRecord:
    """Cancel a PENDING or CONFIRMED order and put its items back in stock."""
    order_id = coerce_int(order_id, "order_id")
    now = now or utcnow()

    with store.transaction():
        order = _require_order(store.find_order(order_id, lock=True), order_id=order_id)
        require_cancellable(order.status)
        cancelled, units = _cancel_with_restock(store, order, f" | Cancelled at {audit_stamp(now)}")

    logger.info("Order %s cancelled: %s units restocked", cancelled.order_number, units)
    return cancelled


def return_order(store: OrderStore, order_number: str, *, now: datetime | None = None) -> OrderRecord:
    """Take back an order in any status but CANCELLED: restock its items and cancel it."""
    order_number = (order_number or "").strip()
    if not order_number:
        raise ValidationError("order_number is required")
    now = now or utcnow()

    with store.transaction():
        order = _require_order(
            store.find_order_by_number(order_number, lock=True),
            order_number=order_number,
        )
        require_returnable(order.status)
        returned, units = _cancel_with_restock(store, order, f" | Returned at {audit_stamp(now)}")

    logger.info(
        "Order %s returned from %s: %s units restocked",
        returned.order_number,
        order.status.name,
        units,
    )
    return returned


# =============================================================================
# Reads
# =============================================================================

def get_order(store: OrderStore, order_id) -> OrderRecord:
    order_id = coerce_int(order_id, "order_id")
    return _require_order(store.find_order(order_id), order_id=order_id)


def get_order_by_number(store: OrderStore, order_number: str) -> OrderRecord:
    return _require_order(store.find_order_by_number(order_number), order_number=order_number)


def list_orders(store: OrderStore, *, status=None, customer=None) -> list[OrderRecord]:
    status_filter = parse_status(status) if status not in (None, "") else None
    customer_id = None
    if customer not in (None, ""):
        found = store.find_customer(customer)
        if found is None:
            raise NotFoundError("Customer not found", details={"customer": customer})
        customer_id = found.id
    return store.list_orders(status=status_filter, customer_id=customer_id)


def verify_total(store: OrderStore, order_id) -> dict:
    """Recompute an order's total from its items and compare with the stored value."""
    order = get_order(store, order_id)
    computed = order.items_total
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "stored_total": str(order.total),
        "computed_total": str(computed),
        "consistent": computed == order.total,
    }
