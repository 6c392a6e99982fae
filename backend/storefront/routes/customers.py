# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, jsonify

from ..errors import StorefrontError
from ..responses import error_response, internal_error, json_body
from ..services import catalog_service

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers():
    try:
        items = catalog_service.list_customers()
        return jsonify({"items": items, "count": len(items)})
    except Exception:
        return internal_error("list customers")


@customers_bp.get("/<int:customer_id>")
def get_customer(customer_id: int):
    try:
        return jsonify(catalog_service.get_customer(customer_id))
    except StorefrontError as e:
        return error_response(e)


@customers_bp.post("")
def create_customer():
    try:
        return jsonify(catalog_service.create_customer(json_body())), 201
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("create customer")


@customers_bp.patch("/<int:customer_id>")
def update_customer(customer_id: int):
    try:
        return jsonify(catalog_service.update_customer(customer_id, json_body()))
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("update customer")
