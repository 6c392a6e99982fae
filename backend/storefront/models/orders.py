from __future__ import annotations

import enum

from ..extensions import db
from storefront.time_utils import to_utc_z


class OrderStatus(enum.IntEnum):
    """Order status as persisted (small integer column)."""
    PENDING = 1
    CONFIRMED = 2
    IN_PROGRESS = 3
    DELIVERED = 4
    CANCELLED = 5


class Order(db.Model):
    """
    Customer order.

    total is denormalized: it always equals the sum of
    quantity * unit_price - discount over the order's items. The net amount
    payable is total - discount (order-level discount).
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_status_date", "status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(20), nullable=False)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False)
    status = db.Column(db.SmallInteger, nullable=False, default=int(OrderStatus.CONFIRMED))
    total = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    notes = db.Column(db.String(1000), nullable=True)

    customer_id = db.Column(
        db.Integer,
        db.ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer = db.relationship("Customer", back_populates="orders")
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.id",
        lazy=True,
    )

    @property
    def status_enum(self) -> OrderStatus:
        return OrderStatus(self.status)

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "order_date": to_utc_z(self.order_date),
            "status": self.status_enum.name,
            "total": str(self.total),
            "discount": str(self.discount),
            "notes": self.notes,
            "customer_id": self.customer_id,
        }


class OrderItem(db.Model):
    """
    Order line item.

    unit_price is a snapshot of the product price when the line was added.
    Products referenced by any line cannot be deleted (RESTRICT).
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "discount": str(self.discount),
        }


class OrderSequence(db.Model):
    """Per-day counter behind generated order numbers (PED-yyyyMMdd-NNNN)."""
    __tablename__ = "order_sequences"

    day = db.Column(db.String(8), primary_key=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
