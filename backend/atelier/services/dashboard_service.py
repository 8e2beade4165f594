# Overview: Read-only aggregates for the admin dashboard.

"""
Dashboard Service

All money values are integer cents. Period comparisons use rolling
30-day windows: "current" is the last 30 days, "previous" the 30 before.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Order, Stock, User
from ..models.auth import ROLE_CUSTOMER
from ..models.orders import STATUS_DELIVERED, STATUS_PENDING
from ..time_utils import time_ago, to_utc_z, utcnow


PERIOD = timedelta(days=30)


def _pct_change(current: float, previous: float) -> float:
    if not previous:
        return 0
    return round((current - previous) / previous * 100, 1)


def _revenue(*filters) -> int:
    value = (
        db.session.query(func.coalesce(func.sum(Order.total_price_cents), 0))
        .filter(Order.status == STATUS_DELIVERED, *filters)
        .scalar()
    )
    return int(value or 0)


def _count_orders(*filters) -> int:
    return db.session.query(func.count(Order.id)).filter(*filters).scalar() or 0


def _count_customers(*filters) -> int:
    return (
        db.session.query(func.count(User.id))
        .filter(User.role == ROLE_CUSTOMER, *filters)
        .scalar()
        or 0
    )


def get_stats(now: datetime | None = None) -> dict:
    now = now or utcnow()
    current_start = now - PERIOD
    previous_start = now - 2 * PERIOD

    total_orders = _count_orders()
    completed_orders = _count_orders(Order.status == STATUS_DELIVERED)
    pending_approvals = _count_orders(Order.status == STATUS_PENDING)
    active_customers = db.session.query(func.count(func.distinct(Order.user_id))).scalar() or 0
    revenue = _revenue()

    in_current = (Order.created_at >= current_start,)
    in_previous = (Order.created_at >= previous_start, Order.created_at < current_start)

    new_customers = _count_customers(User.created_at >= current_start)
    prev_customers = _count_customers(User.created_at >= previous_start, User.created_at < current_start)

    return {
        "total_orders": total_orders,
        "pending_approvals": pending_approvals,
        "completed_orders": completed_orders,
        "active_customers": active_customers,
        "new_customers": new_customers,
        "revenue": revenue,
        "avg_order_value": round(revenue / total_orders) if total_orders else 0,
        "conversion_rate": round(completed_orders / total_orders * 100, 1) if total_orders else 0,
        "revenue_change": _pct_change(_revenue(*in_current), _revenue(*in_previous)),
        "pending_change": _pct_change(
            _count_orders(Order.status == STATUS_PENDING, *in_current),
            _count_orders(Order.status == STATUS_PENDING, *in_previous),
        ),
        "customer_change": _pct_change(new_customers, prev_customers),
    }


def get_activities(low_stock_threshold: int, now: datetime | None = None) -> list[dict]:
    """Recent orders (5), low stock (3) and signups in the last 24h (3), newest first, max 10."""
    now = now or utcnow()
    activities = []

    recent_orders = (
        db.session.query(Order)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(5)
        .all()
    )
    for order in recent_orders:
        customer = order.user.name if order.user else "Unknown Customer"
        activities.append({
            "id": f"order-{order.id}",
            "action": "New Order",
            "desc": f"{customer} placed order #{order.order_number}",
            "icon": "Package",
            "occurred_at": order.created_at,
        })

    low_stock = (
        db.session.query(Stock)
        .filter(Stock.quantity < low_stock_threshold)
        .order_by(Stock.quantity.asc(), Stock.id.asc())
        .limit(3)
        .all()
    )
    for stock in low_stock:
        activities.append({
            "id": f"stock-{stock.id}",
            "action": "Stock Alert",
            "desc": f"{stock.item_name} is low on stock ({stock.quantity} left)",
            "icon": "AlertCircle",
            "occurred_at": stock.last_updated,
        })

    signups = (
        db.session.query(User)
        .filter(User.created_at >= now - timedelta(hours=24))
        .order_by(User.created_at.desc(), User.id.desc())
        .limit(3)
        .all()
    )
    for user in signups:
        activities.append({
            "id": f"user-{user.id}",
            "action": "User Signup",
            "desc": f"New {user.role} registered: {user.name}",
            "icon": "UserCheck",
            "occurred_at": user.created_at,
        })

    activities.sort(key=lambda a: a["occurred_at"], reverse=True)

    result = []
    for activity in activities[:10]:
        occurred_at = activity.pop("occurred_at")
        activity["occurred_at"] = to_utc_z(occurred_at)
        activity["time_ago"] = time_ago(occurred_at, now)
        result.append(activity)
    return result


def get_recent_orders(limit: int = 20) -> list[dict]:
    orders = (
        db.session.query(Order)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": order.id,
            "order_number": order.order_number,
            "customer_name": order.user.name if order.user else "Unknown Customer",
            "product_name": order.design.title if order.design else "Custom Design",
            "amount_cents": order.total_price_cents,
            "status": order.status.lower(),
            "created_at": to_utc_z(order.created_at),
        }
        for order in orders
    ]


def get_notifications(low_stock_threshold: int, now: datetime | None = None) -> list[dict]:
    now = now or utcnow()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    notifications = []

    pending = _count_orders(Order.status == STATUS_PENDING)
    if pending:
        notifications.append({
            "id": 1,
            "type": "order",
            "count": pending,
            "message": f"{pending} orders pending approval",
        })

    low_stock = (
        db.session.query(func.count(Stock.id))
        .filter(Stock.quantity < low_stock_threshold)
        .scalar()
        or 0
    )
    if low_stock:
        notifications.append({
            "id": 2,
            "type": "stock",
            "count": low_stock,
            "message": f"{low_stock} items running low on stock",
        })

    joined_today = _count_customers(User.created_at >= start_of_day)
    if joined_today:
        notifications.append({
            "id": 3,
            "type": "customer",
            "count": joined_today,
            "message": f"{joined_today} new customers joined today",
        })

    return notifications
