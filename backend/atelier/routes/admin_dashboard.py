# Overview: Flask API routes for the admin dashboard widgets; returns JSON aggregates.

from flask import Blueprint, current_app, jsonify

from ..decorators import require_admin, require_auth
from ..services import dashboard_service


admin_dashboard_bp = Blueprint("admin_dashboard", __name__, url_prefix="/api/admin/dashboard")


@admin_dashboard_bp.get("/stats")
@require_auth
@require_admin
def stats_route():
    return jsonify(dashboard_service.get_stats())


@admin_dashboard_bp.get("/activities")
@require_auth
@require_admin
def activities_route():
    return jsonify(dashboard_service.get_activities(current_app.config["LOW_STOCK_THRESHOLD"]))


@admin_dashboard_bp.get("/orders/recent")
@require_auth
@require_admin
def recent_orders_route():
    return jsonify(dashboard_service.get_recent_orders())


@admin_dashboard_bp.get("/notifications")
@require_auth
@require_admin
def notifications_route():
    return jsonify(dashboard_service.get_notifications(current_app.config["LOW_STOCK_THRESHOLD"]))
