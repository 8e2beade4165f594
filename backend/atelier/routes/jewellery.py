# Overview: Flask API routes for the jewellery catalogue; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_roles
from ..models.auth import ROLE_ADMIN, ROLE_MANAGER
from ..services import jewellery_service
from ..services.jewellery_service import (
    JewelleryInUseError,
    JewelleryNotFoundError,
    JewelleryValidationError,
)


jewellery_bp = Blueprint("jewellery", __name__, url_prefix="/api/jewellery")


@jewellery_bp.get("")
@require_auth
def list_jewellery_route():
    """Query parameters: search (name, type or description)."""
    items = jewellery_service.list_jewellery(request.args.get("search"))
    return jsonify({"success": True, "data": [j.to_dict() for j in items], "count": len(items)})


@jewellery_bp.get("/<int:jewellery_id>")
@require_auth
def get_jewellery_route(jewellery_id: int):
    try:
        item = jewellery_service.get_jewellery(jewellery_id)
    except JewelleryNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"success": True, "data": item.to_dict()})


@jewellery_bp.post("")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def create_jewellery_route():
    """Request body: {name (required), type?, weight?, quantity?, price_cents?, description?}"""
    data = request.get_json(silent=True) or {}
    try:
        item = jewellery_service.create_jewellery(data, created_by_user_id=g.current_user.id)
    except JewelleryValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"success": True, "data": item.to_dict()}), 201


@jewellery_bp.put("/<int:jewellery_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def update_jewellery_route(jewellery_id: int):
    data = request.get_json(silent=True) or {}
    try:
        item = jewellery_service.update_jewellery(jewellery_id, data)
    except JewelleryNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except JewelleryValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"success": True, "data": item.to_dict()})


@jewellery_bp.delete("/<int:jewellery_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def delete_jewellery_route(jewellery_id: int):
    try:
        jewellery_service.delete_jewellery(jewellery_id)
    except JewelleryNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except JewelleryInUseError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"success": True, "message": "Jewellery deleted"})
