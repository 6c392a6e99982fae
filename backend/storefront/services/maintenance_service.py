# Overview: Service-layer housekeeping; purge of old cancelled orders.

from __future__ import annotations

import logging
from datetime import datetime

from ..errors import ValidationError
from ..stores.base import OrderStore
from ..validation import coerce_int
from storefront.time_utils import months_ago, utcnow

logger = logging.getLogger(__name__)

DEFAULT_PURGE_MONTHS = 6


def purge_cancelled_orders(
    store: OrderStore,
    *,
    older_than_months=DEFAULT_PURGE_MONTHS,
    now: datetime | None = None,
) -> int:
    """
    Delete CANCELLED orders dated before now - older_than_months.

    Their items go with them (FK cascade). Stock is not touched: a cancelled
    order was already restocked. Returns the number of orders deleted.
    """
    months = coerce_int(older_than_months, "older_than_months")
    if months < 1:
        raise ValidationError("older_than_months must be >= 1", details={"older_than_months": months})

    cutoff = months_ago(now or utcnow(), months)
    with store.transaction():
        deleted = store.delete_cancelled_before(cutoff)

    logger.info("Purged %s cancelled orders dated before %s", deleted, cutoff.isoformat())
    return deleted
