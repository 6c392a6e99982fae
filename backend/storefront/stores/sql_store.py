# Overview: Hand-written parameterized SQL adapter for the order store.

"""
SqlOrderStore talks to the same schema as the ORM models through SQLAlchemy
Core connections and text() statements. Every value goes through a bound
parameter; money and datetime parameters carry explicit types so both
adapters read and write identical representations.

One connection is held per transaction() block and released when the block
ends. Reads outside a transaction use a short-lived connection.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Iterator

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    Numeric,
    String,
    bindparam,
    create_engine,
    text,
)
from sqlalchemy.engine import Connection, Engine

from ..config import StoreConfig
from ..models.orders import OrderStatus
from ..services.concurrency import for_update_clause
from .base import (
    CustomerRecord,
    OrderItemRecord,
    OrderRecord,
    OrderStore,
    ProductRecord,
    to_money,
)

MONEY = Numeric(10, 2)

_PRODUCT_BY_ID = text(
    "SELECT id, name, price, stock, category_id, is_active FROM products WHERE id = :id"
).columns(id=Integer, name=String, price=MONEY, stock=Integer, category_id=Integer, is_active=Boolean)

_CUSTOMER_BY_ID = text(
    "SELECT id, name, email, is_active FROM customers WHERE id = :id"
).columns(id=Integer, name=String, email=String, is_active=Boolean)

_CUSTOMER_BY_EMAIL = text(
    "SELECT id, name, email, is_active FROM customers WHERE lower(email) = :email LIMIT 1"
).columns(id=Integer, name=String, email=String, is_active=Boolean)

_CATEGORY_EXISTS = text("SELECT 1 FROM categories WHERE id = :id")

_ADJUST_STOCK = text(
    "UPDATE products SET stock = stock + :delta "
    "WHERE id = :id AND stock + :delta >= 0"
)

_SET_CATEGORY_STOCK = text(
    "UPDATE products SET stock = :stock WHERE id = :id AND category_id = :category_id"
)

_BUMP_SEQUENCE = text("UPDATE order_sequences SET next_number = next_number + 1 WHERE day = :day")
_READ_SEQUENCE = text("SELECT next_number FROM order_sequences WHERE day = :day")
_INSERT_SEQUENCE = text("INSERT INTO order_sequences (day, next_number) VALUES (:day, 2)")

_INSERT_ORDER = text(
    "INSERT INTO orders (order_number, order_date, status, total, discount, notes, customer_id) "
    "VALUES (:order_number, :order_date, :status, :total, :discount, :notes, :customer_id)"
).bindparams(
    bindparam("order_date", type_=DateTime()),
    bindparam("total", type_=MONEY),
    bindparam("discount", type_=MONEY),
)

_INSERT_ITEM = text(
    "INSERT INTO order_items (order_id, product_id, quantity, unit_price, discount) "
    "VALUES (:order_id, :product_id, :quantity, :unit_price, :discount)"
).bindparams(
    bindparam("unit_price", type_=MONEY),
    bindparam("discount", type_=MONEY),
)

_INCREMENT_TOTAL = text(
    "UPDATE orders SET total = total + :amount WHERE id = :id AND status IN :statuses"
).bindparams(
    bindparam("amount", type_=MONEY),
    bindparam("statuses", expanding=True),
)

_SET_STATUS = text(
    "UPDATE orders SET status = :status WHERE id = :id AND status = :expected"
)
_SET_STATUS_AND_NOTES = text(
    "UPDATE orders SET status = :status, notes = :notes WHERE id = :id AND status = :expected"
)

_ORDER_SELECT = (
    "SELECT id, order_number, customer_id, order_date, status, total, discount, notes FROM orders"
)
_ORDER_TYPES = dict(
    id=Integer,
    order_number=String,
    customer_id=Integer,
    order_date=DateTime,
    status=Integer,
    total=MONEY,
    discount=MONEY,
    notes=String,
)

_ITEMS_FOR_ORDERS = text(
    "SELECT id, order_id, product_id, quantity, unit_price, discount "
    "FROM order_items WHERE order_id IN :order_ids ORDER BY order_id, id"
).bindparams(
    bindparam("order_ids", expanding=True),
).columns(
    id=Integer, order_id=Integer, product_id=Integer, quantity=Integer, unit_price=MONEY, discount=MONEY,
)

_DELETE_CANCELLED_BEFORE = text(
    "DELETE FROM orders WHERE status = :status AND order_date < :cutoff"
).bindparams(bindparam("cutoff", type_=DateTime()))


class SqlOrderStore(OrderStore):
    """Order store over hand-written SQL on a Core connection."""

    backend_name = "sql"

    def __init__(self, engine: Engine, *, owns_engine: bool = False):
        super().__init__()
        self.engine = engine
        self._owns_engine = owns_engine
        self._conn: Connection | None = None
        self._tx = None

    @classmethod
    def from_config(cls, config: StoreConfig) -> "SqlOrderStore":
        """Build a store that owns its engine; call close() when done."""
        engine = create_engine(config.database_url, **config.create_engine_kwargs())
        return cls(engine, owns_engine=True)

    def close(self) -> None:
        if self._owns_engine:
            self.engine.dispose()

    # -- unit of work --------------------------------------------------

    def _begin(self) -> None:
        self._conn = self.engine.connect()
        self._tx = self._conn.begin()

    def _commit(self) -> None:
        self._tx.commit()
        self._release()

    def _rollback(self) -> None:
        try:
            self._tx.rollback()
        finally:
            self._release()

    def _release(self) -> None:
        conn, self._conn, self._tx = self._conn, None, None
        if conn is not None:
            conn.close()

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        if self._conn is not None:
            yield self._conn
            return
        with self.engine.connect() as conn:
            yield conn

    def _write(self, stmt, params: dict):
        self.require_transaction()
        return self._conn.execute(stmt, params)

    # -- mapping -------------------------------------------------------

    @staticmethod
    def _item_record(row) -> OrderItemRecord:
        return OrderItemRecord(
            id=row.id,
            order_id=row.order_id,
            product_id=row.product_id,
            quantity=row.quantity,
            unit_price=to_money(row.unit_price),
            discount=to_money(row.discount),
        )

    @staticmethod
    def _order_record(row, items) -> OrderRecord:
        return OrderRecord(
            id=row.id,
            order_number=row.order_number,
            customer_id=row.customer_id,
            order_date=row.order_date,
            status=OrderStatus(row.status),
            total=to_money(row.total),
            discount=to_money(row.discount),
            notes=row.notes,
            items=tuple(items),
        )

    def _load_orders(self, conn: Connection, rows) -> list[OrderRecord]:
        if not rows:
            return []
        items_by_order: dict[int, list[OrderItemRecord]] = {row.id: [] for row in rows}
        for item_row in conn.execute(_ITEMS_FOR_ORDERS, {"order_ids": list(items_by_order)}):
            items_by_order[item_row.order_id].append(self._item_record(item_row))
        return [self._order_record(row, items_by_order[row.id]) for row in rows]

    # -- catalog -------------------------------------------------------

    def find_product(self, product_id: int) -> ProductRecord | None:
        with self._connection() as conn:
            row = conn.execute(_PRODUCT_BY_ID, {"id": product_id}).first()
        if row is None:
            return None
        return ProductRecord(
            id=row.id,
            name=row.name,
            price=to_money(row.price),
            stock=row.stock,
            category_id=row.category_id,
            is_active=bool(row.is_active),
        )

    def _customer(self, stmt, params: dict) -> CustomerRecord | None:
        with self._connection() as conn:
            row = conn.execute(stmt, params).first()
        if row is None:
            return None
        return CustomerRecord(id=row.id, name=row.name, email=row.email, is_active=bool(row.is_active))

    def find_customer_by_id(self, customer_id: int) -> CustomerRecord | None:
        return self._customer(_CUSTOMER_BY_ID, {"id": customer_id})

    def find_customer_by_email(self, email: str) -> CustomerRecord | None:
        return self._customer(_CUSTOMER_BY_EMAIL, {"email": email.lower()})

    def _apply_stock_delta(self, product_id: int, delta: int) -> bool:
        result = self._write(_ADJUST_STOCK, {"delta": delta, "id": product_id})
        return result.rowcount == 1

    def set_category_stock(self, category_id: int, product_id: int, stock: int) -> int:
        result = self._write(
            _SET_CATEGORY_STOCK,
            {"stock": stock, "id": product_id, "category_id": category_id},
        )
        return result.rowcount

    def category_exists(self, category_id: int) -> bool:
        with self._connection() as conn:
            return conn.execute(_CATEGORY_EXISTS, {"id": category_id}).first() is not None

    # -- orders --------------------------------------------------------

    def next_order_sequence(self, day: str) -> int:
        if self._write(_BUMP_SEQUENCE, {"day": day}).rowcount:
            return self._conn.execute(_READ_SEQUENCE, {"day": day}).scalar_one() - 1
        self._write(_INSERT_SEQUENCE, {"day": day})
        return 1

    def insert_order(
        self,
        *,
        order_number: str,
        customer_id: int,
        order_date: datetime,
        status: OrderStatus,
        discount: Decimal,
        notes: str | None,
    ) -> OrderRecord:
        result = self._write(
            _INSERT_ORDER,
            {
                "order_number": order_number,
                "order_date": order_date,
                "status": int(status),
                "total": Decimal("0.00"),
                "discount": discount,
                "notes": notes,
                "customer_id": customer_id,
            },
        )
        return OrderRecord(
            id=result.lastrowid,
            order_number=order_number,
            customer_id=customer_id,
            order_date=order_date,
            status=status,
            total=Decimal("0.00"),
            discount=to_money(discount),
            notes=notes,
        )

    def insert_item(
        self,
        *,
        order_id: int,
        product_id: int,
        quantity: int,
        unit_price: Decimal,
        discount: Decimal,
    ) -> OrderItemRecord:
        result = self._write(
            _INSERT_ITEM,
            {
                "order_id": order_id,
                "product_id": product_id,
                "quantity": quantity,
                "unit_price": unit_price,
                "discount": discount,
            },
        )
        return OrderItemRecord(
            id=result.lastrowid,
            order_id=order_id,
            product_id=product_id,
            quantity=quantity,
            unit_price=to_money(unit_price),
            discount=to_money(discount),
        )

    def increment_order_total(
        self,
        order_id: int,
        amount: Decimal,
        *,
        open_statuses: frozenset[OrderStatus],
    ) -> bool:
        result = self._write(
            _INCREMENT_TOTAL,
            {"amount": amount, "id": order_id, "statuses": sorted(int(s) for s in open_statuses)},
        )
        return result.rowcount == 1

    def set_order_status(
        self,
        order_id: int,
        status: OrderStatus,
        *,
        expected: OrderStatus,
        notes: str | None = None,
    ) -> bool:
        params = {"status": int(status), "expected": int(expected), "id": order_id}
        if notes is None:
            result = self._write(_SET_STATUS, params)
        else:
            result = self._write(_SET_STATUS_AND_NOTES, {**params, "notes": notes})
        return result.rowcount == 1

    def _find_order_where(self, where: str, params: dict, lock: bool) -> OrderRecord | None:
        sql = f"{_ORDER_SELECT} WHERE {where}"
        if lock:
            sql += for_update_clause(self.engine.dialect.name)
        stmt = text(sql).columns(**_ORDER_TYPES)
        with self._connection() as conn:
            row = conn.execute(stmt, params).first()
            orders = self._load_orders(conn, [row] if row is not None else [])
        return orders[0] if orders else None

    def find_order(self, order_id: int, *, lock: bool = False) -> OrderRecord | None:
        return self._find_order_where("id = :id", {"id": order_id}, lock)

    def find_order_by_number(self, order_number: str, *, lock: bool = False) -> OrderRecord | None:
        return self._find_order_where("order_number = :order_number", {"order_number": order_number}, lock)

    def list_orders(self, *, status: OrderStatus | None = None, customer_id: int | None = None) -> list[OrderRecord]:
        clauses = []
        params: dict = {}
        if status is not None:
            clauses.append("status = :status")
            params["status"] = int(status)
        if customer_id is not None:
            clauses.append("customer_id = :customer_id")
            params["customer_id"] = customer_id

        sql = _ORDER_SELECT
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY order_date DESC, id DESC"

        with self._connection() as conn:
            rows = conn.execute(text(sql).columns(**_ORDER_TYPES), params).all()
            return self._load_orders(conn, rows)

    def delete_cancelled_before(self, cutoff: datetime) -> int:
        result = self._write(
            _DELETE_CANCELLED_BEFORE,
            {"status": int(OrderStatus.CANCELLED), "cutoff": cutoff},
        )
        return result.rowcount
