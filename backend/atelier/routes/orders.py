# Overview: Flask API routes for order operations; parses input and returns JSON responses.

"""
Order Routes

SECURITY:
- Customers place, list, cancel and inspect their own orders
- Admin / manager list all orders and approve or reject
- Admin / manager / supplier set production status
- Suppliers see the Approved / Processing queue
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_roles
from ..models.auth import ROLE_ADMIN, ROLE_MANAGER, ROLE_SUPPLIER
from ..services import order_service
from ..services.order_service import (
    OrderConflictError,
    OrderNotFoundError,
    OrderValidationError,
)


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/ai")
@require_auth
def create_order_route():
    """
    Place an order for a design.

    Request body:
    {
        "design_id": 1,
        "total_price_cents": 12500000,
        "shipping_address": {"address_line": "...", "city": "Colombo", "country": "Sri Lanka"},
        "custom_details": {"size": "7", "metal_type": "18K Gold", "notes": "..."},
        "payment_method": "Card",
        "is_paid": false
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.create_order(g.current_user, data)
    except OrderValidationError as e:
        return jsonify({"error": str(e)}), 400
    except OrderNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderConflictError as e:
        current_app.logger.error("Order number allocation failed: %s", e)
        return jsonify({"error": str(e)}), 409

    current_app.logger.info("Order %s placed by user %s", order.order_number, g.current_user.id)
    return jsonify({"success": True, "data": order.to_dict()}), 201


@orders_bp.get("/my")
@require_auth
def my_orders_route():
    orders = order_service.list_my_orders(g.current_user)
    return jsonify({"success": True, "count": len(orders), "data": [o.to_dict() for o in orders]})


@orders_bp.get("")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def list_orders_route():
    """
    Query parameters:
    - search: order number, customer name / email, notes (case-insensitive)
    - status: one of the order statuses, or "all"
    """
    try:
        orders = order_service.list_orders(
            search=request.args.get("search"),
            status=request.args.get("status"),
        )
    except OrderValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"success": True, "count": len(orders), "data": [o.to_dict() for o in orders]})


@orders_bp.get("/approved")
@require_auth
@require_roles(ROLE_SUPPLIER)
def supplier_orders_route():
    orders = order_service.list_supplier_orders()
    return jsonify({"success": True, "count": len(orders), "data": [o.to_dict() for o in orders]})


def _decision(order_id: int, action):
    data = request.get_json(silent=True) or {}
    try:
        order = action(
            order_id,
            user_id=g.current_user.id,
            manager_comment=str(data.get("manager_comment") or ""),
        )
    except OrderNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    current_app.logger.info("Order %s -> %s by %s", order.order_number, order.status, g.current_user.id)
    return jsonify({"success": True, "data": order.to_dict()})


@orders_bp.put("/<int:order_id>/approve")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def approve_order_route(order_id: int):
    return _decision(order_id, order_service.approve_order)


@orders_bp.put("/<int:order_id>/reject")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def reject_order_route(order_id: int):
    return _decision(order_id, order_service.reject_order)


@orders_bp.put("/<int:order_id>/status")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER, ROLE_SUPPLIER)
def update_status_route(order_id: int):
    """Request body: {status, comment?}. Any status may follow any other."""
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return jsonify({"error": "status is required"}), 400

    try:
        order = order_service.set_status(
            order_id,
            data["status"],
            user_id=g.current_user.id,
            comment=str(data.get("comment") or ""),
        )
    except OrderValidationError as e:
        return jsonify({"error": str(e)}), 400
    except OrderNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    current_app.logger.info("Order %s -> %s by %s", order.order_number, order.status, g.current_user.id)
    return jsonify({"success": True, "data": order.to_dict()})


@orders_bp.put("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    """Owner-only, Pending orders only. Request body: {reason?}"""
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.cancel_order(g.current_user, order_id, str(data.get("reason") or ""))
    except OrderNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderConflictError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"success": True, "data": order.to_dict()})


@orders_bp.get("/<int:order_id>/history")
@require_auth
def order_history_route(order_id: int):
    try:
        order = order_service.get_order_for(g.current_user, order_id)
    except OrderNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    history = order_service.list_history(order)
    return jsonify({
        "success": True,
        "order_number": order.order_number,
        "data": [h.to_dict() for h in history],
    })
