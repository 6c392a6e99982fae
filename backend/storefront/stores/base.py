# Overview: Storage-agnostic order store interface shared by the ORM and SQL adapters.

"""
Order store contract.

Both adapters (OrmOrderStore, SqlOrderStore) implement the small set of
primitives below over the same schema. Everything that carries a business
rule lives here or in the services, so the rules are enforced once:

- transaction(): one unit of work; commit on success, rollback on any
  failure, and a failed rollback is surfaced as RollbackFailedError.
- adjust_stock(): a single conditional UPDATE. The non-negative check runs
  inside the statement, so two concurrent debits of the last unit cannot both
  succeed.
- write primitives refuse to run outside a transaction.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterator

from ..errors import (
    InsufficientStockError,
    NotFoundError,
    RollbackFailedError,
    StorefrontError,
)
from ..models.orders import OrderStatus
from storefront.time_utils import to_utc_z

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Normalize a driver value (Decimal, float, int, str) to a 2-place Decimal."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT)


@dataclass(frozen=True)
class ProductRecord:
    id: int
    name: str
    price: Decimal
    stock: int
    category_id: int
    is_active: bool = True


@dataclass(frozen=True)
class CustomerRecord:
    id: int
    name: str
    email: str
    is_active: bool = True


@dataclass(frozen=True)
class OrderItemRecord:
    id: int
    order_id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    discount: Decimal = Decimal("0.00")

    @property
    def subtotal(self) -> Decimal:
        return (self.quantity * self.unit_price - self.discount).quantize(CENT)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "discount": str(self.discount),
            "subtotal": str(self.subtotal),
        }


@dataclass(frozen=True)
class OrderRecord:
    id: int
    order_number: str
    customer_id: int
    order_date: datetime
    status: OrderStatus
    total: Decimal
    discount: Decimal
    notes: str | None
    items: tuple[OrderItemRecord, ...] = field(default_factory=tuple)

    @property
    def items_total(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal("0.00"))

    @property
    def net_total(self) -> Decimal:
        return (self.total - self.discount).quantize(CENT)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "order_date": to_utc_z(self.order_date),
            "status": self.status.name,
            "status_code": int(self.status),
            "total": str(self.total),
            "discount": str(self.discount),
            "net_total": str(self.net_total),
            "notes": self.notes,
            "items": [item.to_dict() for item in self.items],
        }


class OrderStore(ABC):
    """Data-access adapter for the order lifecycle."""

    backend_name = "abstract"

    def __init__(self):
        self._in_transaction = False

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def require_transaction(self) -> None:
        if not self._in_transaction:
            raise RuntimeError(f"{type(self).__name__}: write attempted outside a transaction")

    @contextmanager
    def transaction(self) -> Iterator["OrderStore"]:
        """
        Scope one unit of work.

        Nested use joins the outer transaction; only the outermost block
        commits or rolls back.
        """
        if self._in_transaction:
            yield self
            return

        self._begin()
        self._in_transaction = True
        try:
            yield self
        except BaseException as exc:
            self._in_transaction = False
            self._rollback_or_raise(exc)
            raise

        self._in_transaction = False
        try:
            self._commit()
        except Exception as exc:
            self._rollback_or_raise(exc)
            raise

    def _rollback_or_raise(self, original: BaseException) -> None:
        try:
            self._rollback()
        except Exception as rollback_exc:
            logger.critical(
                "Rollback failed on %s after %s: %s",
                self.backend_name,
                type(original).__name__,
                rollback_exc,
                exc_info=rollback_exc,
            )
            raise RollbackFailedError(original, rollback_exc) from rollback_exc

        if isinstance(original, StorefrontError):
            logger.warning("Rolled back %s unit of work: %s", self.backend_name, original.message)
        else:
            logger.error("Rolled back %s unit of work after unexpected error: %r", self.backend_name, original)

    @abstractmethod
    def _begin(self) -> None: ...

    @abstractmethod
    def _commit(self) -> None: ...

    @abstractmethod
    def _rollback(self) -> None: ...

    # ------------------------------------------------------------------
    # Catalog lookups and stock
    # ------------------------------------------------------------------

    @abstractmethod
    def find_product(self, product_id: int) -> ProductRecord | None: ...

    @abstractmethod
    def find_customer_by_id(self, customer_id: int) -> CustomerRecord | None: ...

    @abstractmethod
    def find_customer_by_email(self, email: str) -> CustomerRecord | None: ...

    def find_customer(self, ref: int | str) -> CustomerRecord | None:
        """Resolve a customer by numeric id or by email (case-insensitive)."""
        if isinstance(ref, int) and not isinstance(ref, bool):
            return self.find_customer_by_id(ref)
        text_ref = str(ref).strip()
        if text_ref.isdigit():
            return self.find_customer_by_id(int(text_ref))
        return self.find_customer_by_email(text_ref.lower())

    @abstractmethod
    def _apply_stock_delta(self, product_id: int, delta: int) -> bool:
        """Run `stock = stock + delta` only if the result stays >= 0. True if a row changed."""

    def adjust_stock(self, product_id: int, delta: int) -> None:
        self.require_transaction()
        if self._apply_stock_delta(product_id, delta):
            return

        product = self.find_product(product_id)
        if product is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        raise InsufficientStockError(
            f"Insufficient stock for '{product.name}'",
            details={
                "product_id": product_id,
                "requested_quantity": -delta,
                "on_hand": product.stock,
            },
        )

    @abstractmethod
    def set_category_stock(self, category_id: int, product_id: int, stock: int) -> int:
        """Set absolute stock for a product of the given category. Returns rows updated."""

    @abstractmethod
    def category_exists(self, category_id: int) -> bool: ...

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    @abstractmethod
    def next_order_sequence(self, day: str) -> int:
        """Allocate the next per-day order counter (1-based) inside the open transaction."""

    @abstractmethod
    def insert_order(
        self,
        *,
        order_number: str,
        customer_id: int,
        order_date: datetime,
        status: OrderStatus,
        discount: Decimal,
        notes: str | None,
    ) -> OrderRecord: ...

    @abstractmethod
    def insert_item(
        self,
        *,
        order_id: int,
        product_id: int,
        quantity: int,
        unit_price: Decimal,
        discount: Decimal,
    ) -> OrderItemRecord: ...

    @abstractmethod
    def increment_order_total(
        self,
        order_id: int,
        amount: Decimal,
        *,
        open_statuses: frozenset[OrderStatus],
    ) -> bool:
        """
        `total = total + amount`, only while the order is in one of open_statuses.

        False means the order left those statuses (or vanished) meanwhile.
        """

    @abstractmethod
    def set_order_status(
        self,
        order_id: int,
        status: OrderStatus,
        *,
        expected: OrderStatus,
        notes: str | None = None,
    ) -> bool:
        """
        Compare-and-set the status; notes replaces the notes column when given.

        False means the stored status was no longer `expected`.
        """

    @abstractmethod
    def find_order(self, order_id: int, *, lock: bool = False) -> OrderRecord | None: ...

    @abstractmethod
    def find_order_by_number(self, order_number: str, *, lock: bool = False) -> OrderRecord | None: ...

    @abstractmethod
    def list_orders(self, *, status: OrderStatus | None = None, customer_id: int | None = None) -> list[OrderRecord]: ...

    @abstractmethod
    def delete_cancelled_before(self, cutoff: datetime) -> int: ...

    def close(self) -> None:
        """Release resources owned by the store."""
