# Overview: Flask API routes for read-only reports; parses query params and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..errors import StorefrontError
from ..responses import error_response, internal_error
from ..services import reporting_service

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _items(rows):
    return jsonify({"items": rows, "count": len(rows)})


@reports_bp.get("/sales")
def sales_detail():
    """Query params: start, end (ISO-8601, optional)."""
    try:
        return _items(reporting_service.sales_detail(
            start=request.args.get("start"),
            end=request.args.get("end"),
        ))
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("build sales report")


@reports_bp.get("/revenue-by-customer")
def revenue_by_customer():
    try:
        return _items(reporting_service.revenue_by_customer(limit=request.args.get("limit")))
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("build revenue by customer report")


@reports_bp.get("/revenue-by-category")
def revenue_by_category():
    try:
        return _items(reporting_service.revenue_by_category())
    except Exception:
        return internal_error("build revenue by category report")


@reports_bp.get("/dead-stock")
def dead_stock():
    try:
        return _items(reporting_service.dead_stock())
    except Exception:
        return internal_error("build dead stock report")


@reports_bp.get("/top-products")
def top_products():
    try:
        return _items(reporting_service.top_products(limit=request.args.get("limit", 10)))
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("build top products report")


@reports_bp.get("/stock")
def stock():
    try:
        return jsonify(reporting_service.stock_report(
            threshold=request.args.get("threshold", reporting_service.LOW_STOCK_THRESHOLD),
        ))
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("build stock report")


@reports_bp.get("/monthly-trend")
def monthly_trend():
    try:
        return _items(reporting_service.monthly_trend(months=request.args.get("months", 12)))
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("build monthly trend report")


@reports_bp.get("/summary")
def summary():
    try:
        return jsonify(reporting_service.summary())
    except Exception:
        return internal_error("build summary report")
