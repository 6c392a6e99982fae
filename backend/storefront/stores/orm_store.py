# Overview: ORM adapter for the order store (SQLAlchemy session + mapped models).

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, func, update
from sqlalchemy.orm import Session

from ..models import Category, Customer, Order, OrderItem, OrderSequence, Product
from ..models.orders import OrderStatus
from ..services.concurrency import lock_for_update
from .base import (
    CustomerRecord,
    OrderItemRecord,
    OrderRecord,
    OrderStore,
    ProductRecord,
    to_money,
)


class OrmOrderStore(OrderStore):
    """
    Order store over an ORM session.

    The session's own (auto-begun) transaction is the unit of work: the
    outermost transaction() block commits or rolls it back.
    """

    backend_name = "orm"

    def __init__(self, session: Session):
        super().__init__()
        self.session = session

    def _begin(self) -> None:
        # Session autobegins on first use; nothing to open explicitly.
        pass

    def _commit(self) -> None:
        self.session.commit()

    def _rollback(self) -> None:
        self.session.rollback()

    # -- mapping -------------------------------------------------------

    @staticmethod
    def _product_record(product: Product) -> ProductRecord:
        return ProductRecord(
            id=product.id,
            name=product.name,
            price=to_money(product.price),
            stock=product.stock,
            category_id=product.category_id,
            is_active=bool(product.is_active),
        )

    @staticmethod
    def _customer_record(customer: Customer) -> CustomerRecord:
        return CustomerRecord(
            id=customer.id,
            name=customer.name,
            email=customer.email,
            is_active=bool(customer.is_active),
        )

    @staticmethod
    def _item_record(item: OrderItem) -> OrderItemRecord:
        return OrderItemRecord(
            id=item.id,
            order_id=item.order_id,
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=to_money(item.unit_price),
            discount=to_money(item.discount),
        )

    def _order_record(self, order: Order) -> OrderRecord:
        items = (
            self.session.query(OrderItem)
            .filter_by(order_id=order.id)
            .order_by(OrderItem.id.asc())
            .populate_existing()
            .all()
        )
        return OrderRecord(
            id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            order_date=order.order_date,
            status=OrderStatus(order.status),
            total=to_money(order.total),
            discount=to_money(order.discount),
            notes=order.notes,
            items=tuple(self._item_record(i) for i in items),
        )

    # -- catalog -------------------------------------------------------

    def find_product(self, product_id: int) -> ProductRecord | None:
        product = self.session.get(Product, product_id, populate_existing=True)
        return self._product_record(product) if product else None

    def find_customer_by_id(self, customer_id: int) -> CustomerRecord | None:
        customer = self.session.get(Customer, customer_id)
        return self._customer_record(customer) if customer else None

    def find_customer_by_email(self, email: str) -> CustomerRecord | None:
        customer = (
            self.session.query(Customer)
            .filter(func.lower(Customer.email) == email.lower())
            .first()
        )
        return self._customer_record(customer) if customer else None

    def _apply_stock_delta(self, product_id: int, delta: int) -> bool:
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock + delta >= 0)
            .values(stock=Product.stock + delta)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def set_category_stock(self, category_id: int, product_id: int, stock: int) -> int:
        self.require_transaction()
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.category_id == category_id)
            .values(stock=stock)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount

    def category_exists(self, category_id: int) -> bool:
        return self.session.get(Category, category_id) is not None

    # -- orders --------------------------------------------------------

    def next_order_sequence(self, day: str) -> int:
        self.require_transaction()
        stmt = (
            update(OrderSequence)
            .where(OrderSequence.day == day)
            .values(next_number=OrderSequence.next_number + 1)
            .execution_options(synchronize_session=False)
        )
        if self.session.execute(stmt).rowcount:
            current = (
                self.session.query(OrderSequence.next_number)
                .filter_by(day=day)
                .scalar()
            )
            return current - 1

        self.session.add(OrderSequence(day=day, next_number=2))
        self.session.flush()
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
        self.require_transaction()
        order = Order(
            order_number=order_number,
            customer_id=customer_id,
            order_date=order_date,
            status=int(status),
            total=Decimal("0.00"),
            discount=discount,
            notes=notes,
        )
        self.session.add(order)
        self.session.flush()
        return self._order_record(order)

    def insert_item(
        self,
        *,
        order_id: int,
        product_id: int,
        quantity: int,
        unit_price: Decimal,
        discount: Decimal,
    ) -> OrderItemRecord:
        self.require_transaction()
        item = OrderItem(
            order_id=order_id,
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            discount=discount,
        )
        self.session.add(item)
        self.session.flush()
        return self._item_record(item)

    def increment_order_total(
        self,
        order_id: int,
        amount: Decimal,
        *,
        open_statuses: frozenset[OrderStatus],
    ) -> bool:
        self.require_transaction()
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status.in_([int(s) for s in open_statuses]))
            .values(total=Order.total + amount)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def set_order_status(
        self,
        order_id: int,
        status: OrderStatus,
        *,
        expected: OrderStatus,
        notes: str | None = None,
    ) -> bool:
        self.require_transaction()
        values = {"status": int(status)}
        if notes is not None:
            values["notes"] = notes
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == int(expected))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def find_order(self, order_id: int, *, lock: bool = False) -> OrderRecord | None:
        query = self.session.query(Order).filter_by(id=order_id).populate_existing()
        if lock:
            query = lock_for_update(query)
        order = query.first()
        return self._order_record(order) if order else None

    def find_order_by_number(self, order_number: str, *, lock: bool = False) -> OrderRecord | None:
        query = self.session.query(Order).filter_by(order_number=order_number).populate_existing()
        if lock:
            query = lock_for_update(query)
        order = query.first()
        return self._order_record(order) if order else None

    def list_orders(self, *, status: OrderStatus | None = None, customer_id: int | None = None) -> list[OrderRecord]:
        query = self.session.query(Order)
        if status is not None:
            query = query.filter(Order.status == int(status))
        if customer_id is not None:
            query = query.filter(Order.customer_id == customer_id)
        orders = query.order_by(Order.order_date.desc(), Order.id.desc()).all()
        return [self._order_record(o) for o in orders]

    def delete_cancelled_before(self, cutoff: datetime) -> int:
        self.require_transaction()
        stmt = (
            delete(Order)
            .where(Order.status == int(OrderStatus.CANCELLED), Order.order_date < cutoff)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount
