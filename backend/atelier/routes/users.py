# Overview: Flask API routes for user administration; parses input and returns JSON responses.

"""
User Routes

Mounted twice: /api/users and /api/admin/users expose the same admin
operations. GET /api/users/me is open to any authenticated user.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_admin, require_auth
from ..services import auth_service, user_service
from ..services.auth_service import (
    AuthValidationError,
    DuplicateEmailError,
    PasswordValidationError,
)
from ..services.user_service import UserNotFoundError, UserValidationError


users_bp = Blueprint("users", __name__, url_prefix="/api/users")
admin_users_bp = Blueprint("admin_users", __name__, url_prefix="/api/admin/users")


@users_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"success": True, "data": g.current_user.to_dict()})


@require_auth
@require_admin
def list_users_route():
    """Query parameters: search (name, email or role)."""
    users = user_service.list_users(request.args.get("search"))
    return jsonify({"success": True, "data": [u.to_dict() for u in users], "count": len(users)})


@require_auth
@require_admin
def create_user_route():
    """
    Request body: {name, email, password, role?, phone?, address?}

    Admin-created accounts skip the pending OTP verification flag but still
    need the OTP step at every login.
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role") or "customer",
            otp_verified=True,
            phone=data.get("phone") or "",
            address=data.get("address") or "",
        )
    except (AuthValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except DuplicateEmailError as e:
        return jsonify({"error": str(e)}), 409

    current_app.logger.info("User %s created by admin %s", user.id, g.current_user.id)
    return jsonify({"success": True, "data": user.to_dict()}), 201


@require_auth
@require_admin
def update_role_route(user_id: int):
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.set_role(user_id, data.get("role"))
    except UserValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UserNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    current_app.logger.info("Role of user %s set to %s by %s", user.id, user.role, g.current_user.id)
    return jsonify({"success": True, "data": user.to_dict()})


@require_auth
@require_admin
def toggle_active_route(user_id: int):
    try:
        user = user_service.toggle_active(user_id)
    except UserNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"success": True, "is_active": user.is_active, "data": user.to_dict()})


for _bp in (users_bp, admin_users_bp):
    _bp.add_url_rule("", view_func=list_users_route, methods=["GET"])
    _bp.add_url_rule("", view_func=create_user_route, methods=["POST"])
    _bp.add_url_rule("/<int:user_id>/role", view_func=update_role_route, methods=["PUT"])
    _bp.add_url_rule("/<int:user_id>/toggle-active", view_func=toggle_active_route, methods=["PUT"])
