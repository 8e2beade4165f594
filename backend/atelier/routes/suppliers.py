# Overview: Flask API routes for supplier operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_admin, require_auth
from ..services import supplier_service
from ..services.supplier_service import (
    SupplierInUseError,
    SupplierNotFoundError,
    SupplierValidationError,
)


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
@require_admin
def list_suppliers_route():
    """Query parameters: search (name, company, phone or email)."""
    suppliers = supplier_service.list_suppliers(request.args.get("search"))
    return jsonify({"success": True, "data": [s.to_dict() for s in suppliers], "count": len(suppliers)})


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_admin
def get_supplier_route(supplier_id: int):
    try:
        supplier = supplier_service.get_supplier(supplier_id)
    except SupplierNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"success": True, "data": supplier.to_dict()})


@suppliers_bp.post("")
@require_auth
@require_admin
def create_supplier_route():
    """Request body: {name (required), company, phone, email, address}"""
    data = request.get_json(silent=True) or {}
    try:
        supplier = supplier_service.create_supplier(data, created_by_user_id=g.current_user.id)
    except SupplierValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"success": True, "data": supplier.to_dict()}), 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_admin
def update_supplier_route(supplier_id: int):
    data = request.get_json(silent=True) or {}
    try:
        supplier = supplier_service.update_supplier(
            supplier_id, data, updated_by_user_id=g.current_user.id
        )
    except SupplierNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except SupplierValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"success": True, "data": supplier.to_dict()})


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_admin
def delete_supplier_route(supplier_id: int):
    try:
        supplier_service.delete_supplier(supplier_id)
    except SupplierNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except SupplierInUseError as e:
        return jsonify({"error": str(e)}), 409

    current_app.logger.info("Supplier %s deleted by %s", supplier_id, g.current_user.id)
    return jsonify({"success": True, "message": "Supplier deleted"})
