# Overview: Flask API routes for customer records and self-service profile; parses input and returns JSON responses.

"""
Customer Routes

- /api/customers[...]        admin CRUD over Customer (CRM) records
- /api/customers/me/...      any authenticated user; acts on their own User
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_admin, require_auth
from ..services import auth_service, customer_service, token_service, user_service
from ..services.auth_service import AuthValidationError, PasswordValidationError
from ..services.customer_service import (
    CustomerNotFoundError,
    CustomerValidationError,
    DuplicateCustomerError,
)
from ..services.user_service import UserValidationError


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


# -- self-service profile --------------------------------------------------

@customers_bp.get("/me/profile")
@require_auth
def get_profile_route():
    return jsonify({"success": True, "data": g.current_user.to_dict()})


@customers_bp.put("/me/profile")
@require_auth
def update_profile_route():
    """Request body: any of {name, phone, address}."""
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.update_profile(g.current_user, data)
    except UserValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"success": True, "data": user.to_dict()})


@customers_bp.put("/me/password")
@require_auth
def change_password_route():
    """
    Request body: {current_password, new_password}

    Revokes every other session and returns a fresh cookie for this one.
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.change_password(
            g.current_user,
            data.get("current_password"),
            data.get("new_password"),
        )
    except (AuthValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400

    token = token_service.issue_token(user)
    response = jsonify({"success": True, "message": "Password updated", "token": token})
    return token_service.set_auth_cookie(response, token)


# -- admin CRUD -------------------------------------------------------------

@customers_bp.get("")
@require_auth
@require_admin
def list_customers_route():
    """
    Query parameters:
    - search: name, email or phone
    - status: active | blocked | all
    - page (default 1), limit (default 10, max 100)

    Returns:
        {data, total, page, limit, pages}
    """
    result = customer_service.list_customers(
        search=request.args.get("search"),
        status=request.args.get("status"),
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 10, type=int),
    )
    return jsonify({
        "success": True,
        "data": [c.to_dict() for c in result["customers"]],
        "total": result["total"],
        "page": result["page"],
        "limit": result["limit"],
        "pages": result["pages"],
    })


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_admin
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id)
    except CustomerNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"success": True, "data": customer.to_dict()})


@customers_bp.post("")
@require_auth
@require_admin
def create_customer_route():
    data = request.get_json(silent=True) or {}
    try:
        customer = customer_service.create_customer(data)
    except CustomerValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DuplicateCustomerError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"success": True, "data": customer.to_dict()}), 201


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_admin
def update_customer_route(customer_id: int):
    data = request.get_json(silent=True) or {}
    try:
        customer = customer_service.update_customer(customer_id, data)
    except CustomerNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except CustomerValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DuplicateCustomerError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"success": True, "data": customer.to_dict()})


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_admin
def delete_customer_route(customer_id: int):
    try:
        customer_service.delete_customer(customer_id)
    except CustomerNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"success": True, "message": "Customer deleted"})
