# Overview: Flask API routes for categories and products; parses input and returns JSON responses.

"""
Catalog routes.

Payload validation (writable fields, types, lengths, price/stock bounds) is
done by services.catalog_service; these handlers only translate errors.
"""

from flask import Blueprint, jsonify, request

from ..errors import StorefrontError
from ..responses import error_response, internal_error, json_body
from ..services import catalog_service

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
products_bp = Blueprint("products", __name__, url_prefix="/api/products")


# -- categories ----------------------------------------------------------

@categories_bp.get("")
def list_categories():
    try:
        items = catalog_service.list_categories()
        return jsonify({"items": items, "count": len(items)})
    except Exception:
        return internal_error("list categories")


@categories_bp.get("/<int:category_id>")
def get_category(category_id: int):
    try:
        return jsonify(catalog_service.get_category(category_id))
    except StorefrontError as e:
        return error_response(e)


@categories_bp.post("")
def create_category():
    try:
        return jsonify(catalog_service.create_category(json_body())), 201
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("create category")


@categories_bp.patch("/<int:category_id>")
def update_category(category_id: int):
    try:
        return jsonify(catalog_service.update_category(category_id, json_body()))
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("update category")


# -- products ------------------------------------------------------------

@products_bp.get("")
def list_products():
    """
    Query params:
    - category_id: int (optional)
    - active: "1"/"true" to hide inactive products
    """
    try:
        items = catalog_service.list_products(
            category_id=request.args.get("category_id"),
            active_only=request.args.get("active", "").lower() in ("1", "true", "yes"),
        )
        return jsonify({"items": items, "count": len(items)})
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("list products")


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        return jsonify(catalog_service.get_product(product_id))
    except StorefrontError as e:
        return error_response(e)


@products_bp.post("")
def create_product():
    try:
        return jsonify(catalog_service.create_product(json_body())), 201
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("create product")


@products_bp.patch("/<int:product_id>")
def update_product(product_id: int):
    try:
        return jsonify(catalog_service.update_product(product_id, json_body()))
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("update product")
