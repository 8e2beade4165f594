# Overview: Flask API routes for stock balances and the stock ledger; parses input and returns JSON responses.

"""
Stock Routes

Admin only. Balances are read straight from the Stock table; every change
goes through stock_service.apply_stock_change and leaves a StockLog.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_admin, require_auth
from ..services import stock_service
from ..services.stock_service import (
    NegativeStockError,
    StockNotFoundError,
    StockValidationError,
)


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


def _adjust(**target):
    data = request.get_json(silent=True) or {}
    try:
        stock, log = stock_service.adjust_stock(
            change_amount=data.get("change_amount"),
            note=data.get("note"),
            user_id=g.current_user.id,
            item_name=data.get("item_name") if not target else None,
            **target,
        )
    except StockValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except NegativeStockError as e:
        return jsonify({
            "error": str(e),
            "available": e.available,
            "change_amount": e.change_amount,
        }), 400

    current_app.logger.info(
        "Manual stock change %+d on %s by %s", log.change_amount, stock.item_name, g.current_user.id
    )
    return jsonify({
        "success": True,
        "message": "Stock updated",
        "before": log.quantity_before,
        "after": log.quantity_after,
        "stock": stock.to_dict(),
        "log": log.to_dict(),
    })


@stock_bp.get("")
@require_auth
@require_admin
def list_stock_route():
    items = stock_service.list_stock()
    return jsonify({"success": True, "data": [s.to_dict() for s in items], "count": len(items)})


@stock_bp.put("/<int:stock_id>")
@require_auth
@require_admin
def adjust_stock_route(stock_id: int):
    """Request body: {change_amount (non-zero int), note?}"""
    return _adjust(stock_id=stock_id)


@stock_bp.put("")
@require_auth
@require_admin
def adjust_stock_by_item_route():
    """Request body: {item_name, change_amount (non-zero int), note?}"""
    return _adjust()


@stock_bp.get("/logs/all")
@require_auth
@require_admin
def list_logs_route():
    limit = request.args.get("limit", 200, type=int)
    limit = min(max(limit, 1), 1000)
    logs = stock_service.list_logs(limit=limit)
    return jsonify({"success": True, "data": [log.to_dict() for log in logs], "count": len(logs)})


@stock_bp.get("/low")
@require_auth
@require_admin
def low_stock_route():
    threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    items = stock_service.list_low_stock(threshold)
    return jsonify({
        "success": True,
        "threshold": threshold,
        "data": [s.to_dict() for s in items],
        "count": len(items),
    })
