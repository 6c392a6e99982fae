from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer account.

    Email is stored lower-cased so the unique index is effectively
    case-insensitive. Deleting a customer deletes their orders.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_customers_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(255), nullable=False)

    phone = db.Column(db.String(20), nullable=True)
    tax_id = db.Column(db.String(14), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(2), nullable=True)
    postal_code = db.Column(db.String(10), nullable=True)

    registered_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    orders = db.relationship(
        "Order",
        back_populates="customer",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Customer id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "tax_id": self.tax_id,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "registered_at": to_utc_z(self.registered_at),
            "is_active": self.is_active,
        }
