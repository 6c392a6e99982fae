# Overview: Read-only reporting views over committed orders, written as hand-written SQL.

"""
Reporting service

Every report is one parameterized SELECT (text()) on the Flask-SQLAlchemy
session. Nothing here writes. Revenue is always net of the order-level
discount (total - discount) and CANCELLED orders never count as revenue.
Money columns are typed as Numeric(10, 2) so SQLite's REAL sums come back
as Decimal.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import DateTime, Integer, Numeric, String, bindparam, text

from ..errors import ValidationError
from ..extensions import db
from ..models.orders import OrderStatus
from ..stores.base import to_money
from ..validation import coerce_int
from storefront.time_utils import parse_iso_datetime, to_utc_z, utcnow

MONEY = Numeric(10, 2)
CANCELLED = int(OrderStatus.CANCELLED)
LOW_STOCK_THRESHOLD = 20


def _money(value) -> str:
    return str(to_money(value))


def _pct(current: Decimal, previous: Decimal | None) -> str | None:
    if previous is None or previous == 0:
        return None
    change = (current - previous) / previous * Decimal(100)
    return str(change.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _month_label_sql() -> str:
    if db.engine.dialect.name == "sqlite":
        return "strftime('%Y-%m', o.order_date)"
    return "to_char(o.order_date, 'YYYY-MM')"


def _parse_range(start, end) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if isinstance(start, str) else start
        end_dt = parse_iso_datetime(end) if isinstance(end, str) else end
    except ValueError:
        raise ValidationError("start/end must be ISO-8601 datetimes")
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start must be before end")
    return start_dt, end_dt


# =============================================================================
# Sales detail
# =============================================================================

_SALES_DETAIL = """
SELECT
    o.id            AS order_id,
    o.order_number  AS order_number,
    o.order_date    AS order_date,
    o.status        AS status,
    c.name          AS customer_name,
    p.name          AS product_name,
    i.quantity      AS quantity,
    i.unit_price    AS unit_price,
    COALESCE(i.discount, 0) AS discount,
    (i.quantity * i.unit_price) - COALESCE(i.discount, 0) AS subtotal
FROM orders o
JOIN customers c   ON c.id = o.customer_id
JOIN order_items i ON i.order_id = o.id
JOIN products p    ON p.id = i.product_id
WHERE (:start IS NULL OR o.order_date >= :start)
  AND (:end IS NULL OR o.order_date <= :end)
ORDER BY o.order_date, o.id, i.id
"""


def sales_detail(*, start=None, end=None) -> list[dict]:
    """One row per line item, with its subtotal (qty x unit price - line discount)."""
    start_dt, end_dt = _parse_range(start, end)
    stmt = text(_SALES_DETAIL).bindparams(
        bindparam("start", type_=DateTime()),
        bindparam("end", type_=DateTime()),
    ).columns(
        order_id=Integer, order_number=String, order_date=DateTime, status=Integer,
        customer_name=String, product_name=String, quantity=Integer,
        unit_price=MONEY, discount=MONEY, subtotal=MONEY,
    )
    rows = db.session.execute(stmt, {"start": start_dt, "end": end_dt}).all()
    return [
        {
            "order_id": r.order_id,
            "order_number": r.order_number,
            "order_date": to_utc_z(r.order_date),
            "status": OrderStatus(r.status).name,
            "customer": r.customer_name,
            "product": r.product_name,
            "quantity": r.quantity,
            "unit_price": _money(r.unit_price),
            "discount": _money(r.discount),
            "subtotal": _money(r.subtotal),
        }
        for r in rows
    ]


# =============================================================================
# Revenue by customer
# =============================================================================

_REVENUE_BY_CUSTOMER = text("""
SELECT
    c.id    AS customer_id,
    c.name  AS customer_name,
    COUNT(o.id) AS order_count,
    COALESCE(SUM(o.total - COALESCE(o.discount, 0)), 0) AS revenue
FROM customers c
LEFT JOIN orders o ON o.customer_id = c.id AND o.status <> :cancelled
GROUP BY c.id, c.name
ORDER BY revenue DESC, c.name
""").columns(customer_id=Integer, customer_name=String, order_count=Integer, revenue=MONEY)


def revenue_by_customer(*, limit=None) -> list[dict]:
    """Net revenue, order count and average ticket per customer (customers without orders included)."""
    if limit not in (None, ""):
        limit = coerce_int(limit, "limit")
        if limit < 1:
            raise ValidationError("limit must be >= 1")
    else:
        limit = None
    rows = db.session.execute(_REVENUE_BY_CUSTOMER, {"cancelled": CANCELLED}).all()
    if limit is not None:
        rows = rows[:limit]

    result = []
    for r in rows:
        revenue = to_money(r.revenue)
        average = (revenue / r.order_count) if r.order_count else Decimal("0")
        result.append({
            "customer_id": r.customer_id,
            "customer": r.customer_name,
            "order_count": r.order_count,
            "revenue": str(revenue),
            "average_ticket": _money(average.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
        })
    return result


# =============================================================================
# Products: dead stock, best sellers, stock levels
# =============================================================================

_DEAD_STOCK = text("""
SELECT
    p.id    AS product_id,
    cat.name AS category,
    p.name  AS product,
    p.price AS price,
    p.stock AS stock,
    (p.price * p.stock) AS tied_up_value
FROM products p
JOIN categories cat ON cat.id = p.category_id
LEFT JOIN order_items i ON i.product_id = p.id
WHERE i.id IS NULL
ORDER BY cat.name, p.name
""").columns(product_id=Integer, category=String, product=String, price=MONEY, stock=Integer, tied_up_value=MONEY)


def dead_stock() -> list[dict]:
    """Products that never appeared on any order line, with price x stock tied up in them."""
    rows = db.session.execute(_DEAD_STOCK).all()
    return [
        {
            "product_id": r.product_id,
            "category": r.category,
            "product": r.product,
            "price": _money(r.price),
            "stock": r.stock,
            "tied_up_value": _money(r.tied_up_value),
        }
        for r in rows
    ]


_TOP_PRODUCTS = text("""
SELECT
    p.id    AS product_id,
    p.name  AS product,
    cat.name AS category,
    SUM(i.quantity) AS quantity,
    SUM((i.quantity * i.unit_price) - COALESCE(i.discount, 0)) AS revenue
FROM order_items i
JOIN orders o       ON o.id = i.order_id
JOIN products p     ON p.id = i.product_id
JOIN categories cat ON cat.id = p.category_id
WHERE o.status <> :cancelled
GROUP BY p.id, p.name, cat.name
ORDER BY quantity DESC, p.name
LIMIT :limit
""").columns(product_id=Integer, product=String, category=String, quantity=Integer, revenue=MONEY)


def top_products(*, limit=10) -> list[dict]:
    limit = coerce_int(limit, "limit")
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    rows = db.session.execute(_TOP_PRODUCTS, {"cancelled": CANCELLED, "limit": limit}).all()
    return [
        {
            "product_id": r.product_id,
            "product": r.product,
            "category": r.category,
            "quantity": r.quantity,
            "revenue": _money(r.revenue),
        }
        for r in rows
    ]


_REVENUE_BY_CATEGORY = text("""
SELECT
    cat.name AS category,
    SUM((i.quantity * i.unit_price) - COALESCE(i.discount, 0)) AS revenue,
    COUNT(DISTINCT i.product_id) AS products_sold,
    COUNT(DISTINCT i.order_id) AS order_count
FROM order_items i
JOIN orders o       ON o.id = i.order_id
JOIN products p     ON p.id = i.product_id
JOIN categories cat ON cat.id = p.category_id
WHERE o.status <> :cancelled
GROUP BY cat.name
ORDER BY revenue DESC
""").columns(category=String, revenue=MONEY, products_sold=Integer, order_count=Integer)


def revenue_by_category() -> list[dict]:
    """Line-item revenue per category (order-level discounts are not spread over categories)."""
    rows = db.session.execute(_REVENUE_BY_CATEGORY, {"cancelled": CANCELLED}).all()
    result = []
    for r in rows:
        revenue = to_money(r.revenue)
        result.append({
            "category": r.category,
            "revenue": str(revenue),
            "products_sold": r.products_sold,
            "order_count": r.order_count,
            "average_ticket": _money(revenue / r.order_count) if r.order_count else "0.00",
        })
    return result


_STOCK_BY_CATEGORY = text("""
SELECT
    cat.name AS category,
    COUNT(p.id) AS product_count,
    COALESCE(SUM(p.stock), 0) AS units,
    COALESCE(SUM(p.stock * p.price), 0) AS stock_value
FROM categories cat
LEFT JOIN products p ON p.category_id = cat.id
GROUP BY cat.name
ORDER BY cat.name
""").columns(category=String, product_count=Integer, units=Integer, stock_value=MONEY)

_LOW_STOCK = text("""
SELECT p.id AS product_id, p.name AS product, p.stock AS stock
FROM products p
WHERE p.stock < :threshold
ORDER BY p.stock, p.name
""").columns(product_id=Integer, product=String, stock=Integer)


def stock_report(*, threshold=LOW_STOCK_THRESHOLD) -> dict:
    threshold = coerce_int(threshold, "threshold")
    by_category = db.session.execute(_STOCK_BY_CATEGORY).all()
    low = db.session.execute(_LOW_STOCK, {"threshold": threshold}).all()
    return {
        "by_category": [
            {
                "category": r.category,
                "product_count": r.product_count,
                "units": r.units,
                "stock_value": _money(r.stock_value),
            }
            for r in by_category
        ],
        "out_of_stock": [r.product for r in low if r.stock == 0],
        "low_stock": [
            {"product_id": r.product_id, "product": r.product, "stock": r.stock}
            for r in low
            if r.stock > 0
        ],
        "threshold": threshold,
    }


# =============================================================================
# Trend and summary
# =============================================================================

def _month_start(dt: datetime, back: int) -> datetime:
    index = dt.year * 12 + (dt.month - 1) - back
    year, month = divmod(index, 12)
    return datetime(year, month + 1, 1)


def monthly_trend(*, months=12, now: datetime | None = None) -> list[dict]:
    """
    Net revenue per calendar month for the last `months` months (current one
    included), oldest first. Months without sales are listed with zero.
    change_pct is the month-over-month change; None when the previous month
    had no revenue.
    """
    months = coerce_int(months, "months")
    if months < 1:
        raise ValidationError("months must be >= 1")
    now = now or utcnow()
    since = _month_start(now, months - 1)

    label = _month_label_sql()
    stmt = text(f"""
SELECT
    {label} AS month,
    COUNT(o.id) AS order_count,
    COALESCE(SUM(o.total - COALESCE(o.discount, 0)), 0) AS revenue
FROM orders o
WHERE o.status <> :cancelled
  AND o.order_date >= :since
  AND o.order_date <= :now
GROUP BY {label}
ORDER BY month
""").bindparams(
        bindparam("since", type_=DateTime()),
        bindparam("now", type_=DateTime()),
    ).columns(month=String, order_count=Integer, revenue=MONEY)

    rows = {
        r.month: r
        for r in db.session.execute(stmt, {"cancelled": CANCELLED, "since": since, "now": now})
    }

    trend = []
    previous: Decimal | None = None
    for back in range(months - 1, -1, -1):
        key = f"{_month_start(now, back):%Y-%m}"
        row = rows.get(key)
        revenue = to_money(row.revenue) if row else Decimal("0.00")
        trend.append({
            "month": key,
            "order_count": row.order_count if row else 0,
            "revenue": str(revenue),
            "change_pct": _pct(revenue, previous),
        })
        previous = revenue
    return trend


_SUMMARY_ORDERS = text("""
SELECT
    COUNT(o.id) AS all_orders,
    COALESCE(SUM(CASE WHEN o.status <> :cancelled THEN 1 ELSE 0 END), 0) AS valid_orders,
    COALESCE(SUM(CASE WHEN o.status <> :cancelled THEN o.total - COALESCE(o.discount, 0) ELSE 0 END), 0) AS revenue
FROM orders o
""").columns(all_orders=Integer, valid_orders=Integer, revenue=MONEY)

_SUMMARY_CATALOG = text("""
SELECT
    (SELECT COUNT(*) FROM products WHERE is_active = :active) AS active_products,
    (SELECT COALESCE(SUM(stock), 0) FROM products) AS units_in_stock,
    (SELECT COUNT(*) FROM customers WHERE is_active = :active) AS active_customers
""").bindparams(
    bindparam("active", value=True, type_=db.Boolean()),
).columns(active_products=Integer, units_in_stock=Integer, active_customers=Integer)

_STATUS_COUNTS = text("""
SELECT o.status AS status, COUNT(o.id) AS order_count
FROM orders o
GROUP BY o.status
""").columns(status=Integer, order_count=Integer)


def summary(*, now: datetime | None = None) -> dict:
    """Dashboard: order counts, net revenue, average ticket, catalog totals, best sellers."""
    orders = db.session.execute(_SUMMARY_ORDERS, {"cancelled": CANCELLED}).one()
    catalog = db.session.execute(_SUMMARY_CATALOG).one()
    by_status = {OrderStatus(r.status).name: r.order_count for r in db.session.execute(_STATUS_COUNTS)}

    revenue = to_money(orders.revenue)
    average = revenue / orders.valid_orders if orders.valid_orders else Decimal("0")
    return {
        "orders": {
            "all": orders.all_orders,
            "valid": orders.valid_orders,
            "by_status": {s.name: by_status.get(s.name, 0) for s in OrderStatus},
        },
        "revenue": str(revenue),
        "average_ticket": _money(average.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
        "active_products": catalog.active_products,
        "units_in_stock": catalog.units_in_stock,
        "active_customers": catalog.active_customers,
        "top_products": top_products(limit=5),
        "last_6_months": monthly_trend(months=6, now=now),
        "generated_at": to_utc_z(now or utcnow()),
    }
