# Overview: Order number allocation; one canonical generator backed by the order_sequences table.

from __future__ import annotations

import re
from datetime import datetime

from ..stores.base import OrderStore
from storefront.time_utils import utcnow


ORDER_NUMBER_PREFIX = "PED"
ORDER_NUMBER_PAD = 4
ORDER_NUMBER_RE = re.compile(r"^PED-\d{8}-\d{4,}$")


def format_order_number(day: datetime, number: int, *, prefix: str = ORDER_NUMBER_PREFIX) -> str:
    return f"{prefix}-{day:%Y%m%d}-{number:0{ORDER_NUMBER_PAD}d}"


def next_order_number(store: OrderStore, now: datetime | None = None) -> str:
    """
    Atomically allocate the next order number for the day: PED-yyyyMMdd-NNNN.

    Must run inside the transaction that inserts the order, so a rolled-back
    order also gives its number back. The counter row is bumped with a single
    UPDATE; concurrent writers queue on it rather than reading the same value.
    """
    store.require_transaction()
    now = now or utcnow()
    number = store.next_order_sequence(f"{now:%Y%m%d}")
    return format_order_number(now, number)


def is_order_number(value: str) -> bool:
    return bool(value) and ORDER_NUMBER_RE.match(value) is not None
