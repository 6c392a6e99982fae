"""Order store adapters: one interface, two data-access strategies over the same schema."""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from .base import OrderStore
from .orm_store import OrmOrderStore
from .sql_store import SqlOrderStore

BACKENDS = ("orm", "sql")


def build_order_store(backend: str) -> OrderStore:
    """Build a store for the current app context (ORM session or the app's engine)."""
    backend = (backend or "").strip().lower()
    if backend == "orm":
        return OrmOrderStore(db.session)
    if backend == "sql":
        return SqlOrderStore(db.engine)
    raise ValueError(f"Unknown ORDER_STORE_BACKEND {backend!r}; expected one of {', '.join(BACKENDS)}")


def get_order_store() -> OrderStore:
    return build_order_store(current_app.config.get("ORDER_STORE_BACKEND", "orm"))


__all__ = [
    "BACKENDS",
    "OrderStore",
    "OrmOrderStore",
    "SqlOrderStore",
    "build_order_store",
    "get_order_store",
]
