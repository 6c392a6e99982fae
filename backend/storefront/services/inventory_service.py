# Overview: Service-layer stock movements; debit/credit inside a unit of work, restock, batch levels.

"""
Inventory invariants (authoritative)

- products.stock is the on-hand quantity and never goes below zero. Every
  mutation is a single conditional UPDATE, so the check and the write cannot
  be separated by another writer.
- debit/credit only run inside an open store transaction; calling them
  without one is a programming error (RuntimeError), not a business failure.
- credit has no ceiling.
- A restock credits each line item of an order exactly once; callers flip the
  order to CANCELLED in the same transaction before crediting.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from ..errors import NotFoundError, ValidationError
from ..stores.base import OrderRecord, OrderStore
from ..validation import coerce_int, require_positive_quantity

logger = logging.getLogger(__name__)


def debit(store: OrderStore, product_id: int, quantity) -> None:
    """Take `quantity` units out of stock. InsufficientStockError if fewer are on hand."""
    qty = require_positive_quantity(quantity)
    store.require_transaction()
    store.adjust_stock(product_id, -qty)


def credit(store: OrderStore, product_id: int, quantity) -> None:
    """Put `quantity` units back into stock."""
    qty = require_positive_quantity(quantity)
    store.require_transaction()
    store.adjust_stock(product_id, qty)


def restock_order(store: OrderStore, order: OrderRecord) -> int:
    """Credit every line item of `order`. Returns the number of units put back."""
    store.require_transaction()
    units = 0
    for item in order.items:
        credit(store, item.product_id, item.quantity)
        units += item.quantity
    return units


def _normalize_levels(levels) -> list[tuple[int, int]]:
    if isinstance(levels, Mapping):
        pairs: Iterable = levels.items()
    else:
        pairs = levels

    normalized: list[tuple[int, int]] = []
    negative = []
    for entry in pairs:
        if isinstance(entry, Mapping):
            product_id, stock = entry.get("product_id"), entry.get("stock")
        else:
            try:
                product_id, stock = entry
            except (TypeError, ValueError):
                raise ValidationError("Each stock entry needs a product_id and a stock value")
        product_id = coerce_int(product_id, "product_id")
        stock = coerce_int(stock, "stock")
        if stock < 0:
            negative.append({"product_id": product_id, "stock": stock})
        normalized.append((product_id, stock))

    if not normalized:
        raise ValidationError("No stock levels given")
    if negative:
        raise ValidationError("stock must be >= 0", details={"items": negative})
    return normalized


def update_stock_batch(store: OrderStore, category_id, levels) -> int:
    """
    Set absolute stock for several products of one category, all or nothing.

    `levels` is a {product_id: stock} mapping or an iterable of
    (product_id, stock) pairs / {"product_id", "stock"} dicts. Negative
    values are rejected before any write. A product that does not belong to
    the category aborts the batch with NotFoundError.

    Returns the number of product rows updated.
    """
    category_id = coerce_int(category_id, "category_id")
    normalized = _normalize_levels(levels)

    if not store.category_exists(category_id):
        raise NotFoundError("Category not found", details={"category_id": category_id})

    updated = 0
    with store.transaction():
        for product_id, stock in normalized:
            rows = store.set_category_stock(category_id, product_id, stock)
            if rows != 1:
                raise NotFoundError(
                    "Product not found in category",
                    details={"category_id": category_id, "product_id": product_id},
                )
            updated += rows

    logger.info("Stock batch for category %s committed: %s products", category_id, updated)
    return updated
