# Overview: Flask API routes for deliveries; parses multipart/JSON input and returns JSON responses.

"""
Delivery Routes

Admin only. Create / update accept JSON or multipart/form-data; the
optional invoice image is the multipart file field "invoice"
(jpg, jpeg, png or gif, up to 5 MB).

Every write moves stock in the same transaction (see delivery_service).
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_admin, require_auth
from ..services import delivery_service, upload_service
from ..services.delivery_service import DeliveryNotFoundError, DeliveryValidationError
from ..services.stock_service import NegativeStockError
from ..services.upload_service import UploadTooLargeError, UploadValidationError


deliveries_bp = Blueprint("deliveries", __name__, url_prefix="/api/deliveries")


def _request_data() -> dict:
    if request.mimetype == "multipart/form-data" or request.form:
        return request.form.to_dict()
    return request.get_json(silent=True) or {}


def _save_invoice():
    """Returns the stored invoice URL, or None when no file was sent."""
    file = request.files.get("invoice")
    if not file or not file.filename:
        return None
    return upload_service.save_upload(
        file,
        subdir="invoices",
        allowed=upload_service.INVOICE_EXTENSIONS,
        prefix="invoice",
    )


def _negative_stock_response(e: NegativeStockError):
    return jsonify({
        "error": f"Stock for {e.item_name} would go negative",
        "item_name": e.item_name,
        "available": e.available,
        "change_amount": e.change_amount,
    }), 409


@deliveries_bp.get("")
@require_auth
@require_admin
def list_deliveries_route():
    deliveries = delivery_service.list_deliveries()
    return jsonify({"success": True, "data": [d.to_dict() for d in deliveries], "count": len(deliveries)})


@deliveries_bp.get("/<int:delivery_id>")
@require_auth
@require_admin
def get_delivery_route(delivery_id: int):
    try:
        delivery = delivery_service.get_delivery(delivery_id)
    except DeliveryNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"success": True, "data": delivery.to_dict()})


@deliveries_bp.post("")
@require_auth
@require_admin
def create_delivery_route():
    """
    Fields: supplier_id, item_name, quantity (>= 1), delivery_date?, invoice (file)?

    Returns 201 {message, delivery, stock}
    """
    data = _request_data()

    if not all([data.get("supplier_id"), data.get("item_name"), data.get("quantity")]):
        return jsonify({"error": "supplier_id, item_name and quantity are required"}), 400

    try:
        invoice_url = _save_invoice()
    except UploadValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UploadTooLargeError as e:
        return jsonify({"error": str(e)}), 413

    try:
        delivery, stock = delivery_service.create_delivery(
            supplier_id=data.get("supplier_id"),
            item_name=data.get("item_name"),
            quantity=data.get("quantity"),
            delivery_date=data.get("delivery_date"),
            invoice_image=invoice_url,
            user_id=g.current_user.id,
        )
    except DeliveryValidationError as e:
        upload_service.delete_upload(invoice_url)
        return jsonify({"error": str(e)}), 400
    except Exception:
        upload_service.delete_upload(invoice_url)
        current_app.logger.exception("Failed to create delivery")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info(
        "Delivery %s: +%s %s (stock now %s)", delivery.id, delivery.quantity, delivery.item_name, stock.quantity
    )
    return jsonify({
        "success": True,
        "message": "Delivery recorded and stock updated",
        "delivery": delivery.to_dict(),
        "stock": stock.to_dict(),
    }), 201


@deliveries_bp.put("/<int:delivery_id>")
@require_auth
@require_admin
def update_delivery_route(delivery_id: int):
    """Any subset of: supplier_id, item_name, quantity, delivery_date, invoice (file)."""
    data = _request_data()
    changes = {
        key: data[key]
        for key in ("supplier_id", "item_name", "quantity", "delivery_date")
        if key in data
    }

    try:
        old_invoice = delivery_service.get_delivery(delivery_id).invoice_image
    except DeliveryNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    try:
        invoice_url = _save_invoice()
    except UploadValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UploadTooLargeError as e:
        return jsonify({"error": str(e)}), 413
    if invoice_url:
        changes["invoice_image"] = invoice_url

    try:
        delivery, moved = delivery_service.update_delivery(delivery_id, changes, user_id=g.current_user.id)
    except DeliveryNotFoundError as e:
        upload_service.delete_upload(invoice_url)
        return jsonify({"error": str(e)}), 404
    except DeliveryValidationError as e:
        upload_service.delete_upload(invoice_url)
        return jsonify({"error": str(e)}), 400
    except NegativeStockError as e:
        upload_service.delete_upload(invoice_url)
        return _negative_stock_response(e)

    if invoice_url and old_invoice:
        upload_service.delete_upload(old_invoice)

    return jsonify({
        "success": True,
        "message": "Delivery updated",
        "delivery": delivery.to_dict(),
        "stock": [s.to_dict() for s in moved],
    })


@deliveries_bp.delete("/<int:delivery_id>")
@require_auth
@require_admin
def delete_delivery_route(delivery_id: int):
    try:
        delivery = delivery_service.get_delivery(delivery_id)
        invoice = delivery.invoice_image
        stock = delivery_service.delete_delivery(delivery_id, user_id=g.current_user.id)
    except DeliveryNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except NegativeStockError as e:
        return _negative_stock_response(e)

    upload_service.delete_upload(invoice)
    return jsonify({"success": True, "message": "Delivery deleted", "stock": stock.to_dict()})
