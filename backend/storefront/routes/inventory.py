# Overview: Flask API routes for stock maintenance; parses input and returns JSON responses.

from flask import Blueprint, jsonify

from ..errors import StorefrontError, ValidationError
from ..responses import error_response, internal_error, json_body
from ..services.inventory_service import update_stock_batch
from ..stores import get_order_store

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/stock")


@inventory_bp.post("/batch")
def stock_batch():
    """
    Set absolute stock for several products of one category in one transaction.

    Body: {"category_id": 1, "items": [{"product_id": 1, "stock": 10}, ...]}
    """
    store = get_order_store()
    try:
        data = json_body()
        if not isinstance(data, dict) or data.get("category_id") is None:
            raise ValidationError("category_id required")
        updated = update_stock_batch(store, data["category_id"], data.get("items") or [])
        return jsonify({"updated": updated})
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("update stock batch")
    finally:
        store.close()
