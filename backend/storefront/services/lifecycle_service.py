# Overview: Order status machine; which transitions are legal and which statuses allow restocking.

"""
Order lifecycle rules.

STATE MACHINE:
    PENDING     -> CONFIRMED, CANCELLED
    CONFIRMED   -> IN_PROGRESS, CANCELLED
    IN_PROGRESS -> DELIVERED, CANCELLED
    DELIVERED   -> (terminal)
    CANCELLED   -> (terminal)

RULES:
1. update_status never moves an order to CANCELLED; cancel/return do, because
   they also put the stock back.
2. cancel is only offered while nothing has shipped (PENDING, CONFIRMED).
3. return works from any status except CANCELLED.
4. Items can only be appended while the order is still open (PENDING, CONFIRMED).
"""

from __future__ import annotations

from ..errors import AlreadyCancelledError, InvalidTransitionError, ValidationError
from ..models.orders import OrderStatus


VALID_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})
CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})
OPEN_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})


def parse_status(value) -> OrderStatus:
    """
    Accept an OrderStatus, its stored integer, or its name ("in_progress",
    "IN-PROGRESS", "InProgress" all resolve).
    """
    if isinstance(value, OrderStatus):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return OrderStatus(value)
        except ValueError:
            raise ValidationError(f"Unknown order status: {value}", details={"status": value})
    if isinstance(value, str):
        raw = value.strip()
        if raw.isdigit():
            return parse_status(int(raw))
        key = raw.upper().replace("-", "_").replace(" ", "_")
        if key == "INPROGRESS":
            key = "IN_PROGRESS"
        try:
            return OrderStatus[key]
        except KeyError:
            pass
    raise ValidationError(f"Unknown order status: {value}", details={"status": value})


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in VALID_TRANSITIONS[current]


def require_transition(current: OrderStatus, target: OrderStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot change order status from {current.name} to {target.name}",
            details={
                "current": current.name,
                "requested": target.name,
                "allowed": sorted(s.name for s in VALID_TRANSITIONS[current]),
            },
        )


def require_status_update(current: OrderStatus, target: OrderStatus) -> None:
    """Plain status advance. CANCELLED is reserved for cancel_order / return_order."""
    if target == OrderStatus.CANCELLED:
        raise InvalidTransitionError(
            "Use cancel or return to cancel an order; they restock its items",
            details={"current": current.name, "requested": target.name},
        )
    require_transition(current, target)


def require_cancellable(current: OrderStatus) -> None:
    if current == OrderStatus.CANCELLED:
        raise AlreadyCancelledError("Order is already cancelled", details={"current": current.name})
    if current not in CANCELLABLE_STATUSES:
        raise InvalidTransitionError(
            f"Only PENDING or CONFIRMED orders can be cancelled (order is {current.name})",
            details={"current": current.name, "requested": OrderStatus.CANCELLED.name},
        )


def require_returnable(current: OrderStatus) -> None:
    if current == OrderStatus.CANCELLED:
        raise AlreadyCancelledError("Order is already cancelled", details={"current": current.name})


def require_open(current: OrderStatus) -> None:
    if current not in OPEN_STATUSES:
        raise InvalidTransitionError(
            f"Items can only be added to PENDING or CONFIRMED orders (order is {current.name})",
            details={"current": current.name},
        )
