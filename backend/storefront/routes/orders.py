# Overview: Flask API routes for the order lifecycle; parses input and returns JSON responses.

"""
Order API routes.

Each mutating endpoint runs exactly one unit of work on the configured order
store (ORDER_STORE_BACKEND). Business failures come back as JSON with the
status code of the domain error; stock and order rows are untouched by a
failed request.
"""

from flask import Blueprint, jsonify, request

from ..errors import StorefrontError, ValidationError
from ..responses import error_response, internal_error, json_body
from ..services import order_service
from ..stores import get_order_store

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
def create_order():
    """
    Body:
    - customer: customer id or email (customer_id / customer_email also accepted)
    - items: [{product_id, quantity, discount?}, ...] (optional)
    - discount: order-level discount (optional)
    - notes: free text (optional)
    """
    store = get_order_store()
    try:
        data = json_body()
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        customer = data.get("customer", data.get("customer_id", data.get("customer_email")))
        order = order_service.create_order(
            store,
            customer,
            data.get("items") or [],
            discount=data.get("discount"),
            notes=data.get("notes"),
        )
        return jsonify({"order": order.to_dict()}), 201
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("create order")
    finally:
        store.close()


@orders_bp.get("")
def list_orders():
    """Query params: status (name or code), customer (id or email)."""
    store = get_order_store()
    try:
        orders = order_service.list_orders(
            store,
            status=request.args.get("status"),
            customer=request.args.get("customer"),
        )
        return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)})
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("list orders")
    finally:
        store.close()


@orders_bp.get("/<int:order_id>")
def get_order(order_id: int):
    store = get_order_store()
    try:
        return jsonify({"order": order_service.get_order(store, order_id).to_dict()})
    except StorefrontError as e:
        return error_response(e)
    finally:
        store.close()


@orders_bp.get("/by-number/<string:order_number>")
def get_order_by_number(order_number: str):
    store = get_order_store()
    try:
        return jsonify({"order": order_service.get_order_by_number(store, order_number).to_dict()})
    except StorefrontError as e:
        return error_response(e)
    finally:
        store.close()


@orders_bp.get("/<int:order_id>/verify-total")
def verify_total(order_id: int):
    store = get_order_store()
    try:
        return jsonify(order_service.verify_total(store, order_id))
    except StorefrontError as e:
        return error_response(e)
    finally:
        store.close()


@orders_bp.post("/<int:order_id>/items")
def append_item(order_id: int):
    """Body: {product_id, quantity, discount?}. Returns the new running total."""
    store = get_order_store()
    try:
        data = json_body()
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        if data.get("product_id") is None or data.get("quantity") is None:
            raise ValidationError("product_id and quantity required")

        total = order_service.append_item(
            store,
            order_id,
            data["product_id"],
            data["quantity"],
            discount=data.get("discount"),
        )
        order = order_service.get_order(store, order_id)
        return jsonify({"total": str(total), "order": order.to_dict()}), 201
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("add order item")
    finally:
        store.close()


@orders_bp.post("/<int:order_id>/status")
def update_status(order_id: int):
    """Body: {status}. CANCELLED is rejected; use /cancel or /return."""
    store = get_order_store()
    try:
        data = json_body()
        if not isinstance(data, dict) or data.get("status") in (None, ""):
            raise ValidationError("status required")
        order = order_service.update_status(store, order_id, data["status"])
        return jsonify({"order": order.to_dict()})
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("update order status")
    finally:
        store.close()


@orders_bp.post("/<int:order_id>/cancel")
def cancel_order(order_id: int):
    store = get_order_store()
    try:
        order = order_service.cancel_order(store, order_id)
        return jsonify({"order": order.to_dict()})
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("cancel order")
    finally:
        store.close()


@orders_bp.post("/return")
def return_order():
    """Body: {order_number}."""
    store = get_order_store()
    try:
        data = json_body()
        order_number = data.get("order_number") if isinstance(data, dict) else None
        if not order_number:
            raise ValidationError("order_number required")
        order = order_service.return_order(store, str(order_number))
        return jsonify({"order": order.to_dict()})
    except StorefrontError as e:
        return error_response(e)
    except Exception:
        return internal_error("return order")
    finally:
        store.close()
