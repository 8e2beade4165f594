# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order Service

Orders are placed by customers against a Design and then moved through
ORDER_STATUSES by staff. Status is a flat enum: any status may be set from
any other (no transition table). Every status write, including creation,
appends an OrderStatusHistory row in the same commit.

Order numbers are "ORD-" + 6 random digits; collisions are retried.
"""

from __future__ import annotations

import secrets

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Design, Order, OrderStatusHistory, User
from ..models.auth import ROLE_CUSTOMER
from ..models.orders import (
    ORDER_STATUSES,
    STATUS_APPROVED,
    STATUS_CANCELLED,
    STATUS_PENDING,
    STATUS_PROCESSING,
    STATUS_REJECTED,
)
from ..time_utils import utcnow
from .design_service import is_visible_to


ORDER_NUMBER_ATTEMPTS = 5


class OrderNotFoundError(Exception):
    """Raised when an order (or its design) is not found."""
    pass


class OrderValidationError(Exception):
    """Raised when order data fails validation."""
    pass


class OrderConflictError(Exception):
    """Raised when an order is not in a state that allows the request."""
    pass


def normalize_status(value) -> str:
    """'pending' / 'PENDING' -> 'Pending'. Raises OrderValidationError outside the enum."""
    status = str(value or "").strip().capitalize()
    if status not in ORDER_STATUSES:
        raise OrderValidationError(f"Status must be one of: {', '.join(ORDER_STATUSES)}")
    return status


def generate_order_number() -> str:
    return f"ORD-{secrets.randbelow(900000) + 100000}"


def _order_number_taken(order_number: str) -> bool:
    return db.session.query(Order.id).filter_by(order_number=order_number).first() is not None


def _record_status(order: Order, status: str, comment: str, user_id: int | None) -> None:
    order.status = status
    db.session.add(OrderStatusHistory(
        order=order,
        status=status,
        comment=comment or "",
        updated_by_user_id=user_id,
    ))


def _parse_price_cents(value) -> int:
    if isinstance(value, bool):
        raise OrderValidationError("total_price_cents must be a positive integer")
    try:
        cents = int(value)
    except (TypeError, ValueError):
        raise OrderValidationError("total_price_cents must be a positive integer")
    if isinstance(value, float) and not value.is_integer():
        raise OrderValidationError("total_price_cents must be a positive integer")
    if cents <= 0:
        raise OrderValidationError("total_price_cents must be a positive integer")
    return cents


def create_order(user: User, data: dict) -> Order:
    """
    Place an order for one of the caller's designs (or any design, for staff).

    Raises:
        OrderValidationError: missing design / price / city / country
        OrderNotFoundError: design does not exist or is not visible
    """
    shipping = data.get("shipping_address") or {}
    if not isinstance(shipping, dict):
        raise OrderValidationError("shipping_address must be an object")
    city = str(shipping.get("city") or "").strip()
    country = str(shipping.get("country") or "").strip()
    design_id = data.get("design_id")

    if design_id in (None, "") or data.get("total_price_cents") in (None, "") or not city or not country:
        raise OrderValidationError(
            "design_id, total_price_cents, shipping_address.city and shipping_address.country are required"
        )
    total_price_cents = _parse_price_cents(data.get("total_price_cents"))

    try:
        design = db.session.get(Design, int(design_id))
    except (TypeError, ValueError):
        design = None
    if not design or not is_visible_to(design, user):
        raise OrderNotFoundError("Design not found")

    custom = data.get("custom_details") or {}
    if not isinstance(custom, dict):
        raise OrderValidationError("custom_details must be an object")

    is_paid = bool(data.get("is_paid", False))

    for _ in range(ORDER_NUMBER_ATTEMPTS):
        order_number = generate_order_number()
        if _order_number_taken(order_number):
            continue

        order = Order(
            user_id=user.id,
            design_id=design.id,
            order_number=order_number,
            total_price_cents=total_price_cents,
            shipping_address_line=str(shipping.get("address_line") or "").strip() or "N/A",
            shipping_city=city,
            shipping_country=country,
            size=str(custom.get("size") or "").strip() or "Standard",
            metal_type=str(custom.get("metal_type") or "").strip() or "22K Gold",
            notes=str(custom.get("notes") or "").strip(),
            payment_method=str(data.get("payment_method") or "").strip() or "Card",
            is_paid=is_paid,
            paid_at=utcnow() if is_paid else None,
        )
        db.session.add(order)
        _record_status(order, STATUS_PENDING, "Order placed", user.id)
        try:
            db.session.commit()
        except IntegrityError:
            # Another request took the same number between check and insert
            db.session.rollback()
            continue
        return order

    raise OrderConflictError("Could not allocate a unique order number")


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise OrderNotFoundError("Order not found")
    return order


def get_order_for(user: User, order_id: int) -> Order:
    """Owner or staff; customers never see other customers' orders."""
    order = get_order(order_id)
    if user.role == ROLE_CUSTOMER and order.user_id != user.id:
        raise OrderNotFoundError("Order not found")
    return order


def list_my_orders(user: User) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.user_id == user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def list_orders(*, search: str | None = None, status: str | None = None) -> list[Order]:
    query = db.session.query(Order).join(User, Order.user_id == User.id)

    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Order.order_number.ilike(pattern),
            User.name.ilike(pattern),
            User.email.ilike(pattern),
            Order.notes.ilike(pattern),
        ))

    if status and status.strip().lower() != "all":
        query = query.filter(Order.status == normalize_status(status))

    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def list_supplier_orders() -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.status.in_((STATUS_APPROVED, STATUS_PROCESSING)))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def set_status(
    order_id: int,
    status,
    *,
    user_id: int | None,
    comment: str = "",
    manager_comment: str | None = None,
) -> Order:
    """Set any enum status; records history. No transition validation."""
    status = normalize_status(status)
    order = get_order(order_id)
    if manager_comment is not None:
        order.manager_comment = str(manager_comment).strip()
    _record_status(order, status, comment or (manager_comment or ""), user_id)
    db.session.commit()
    return order


def approve_order(order_id: int, *, user_id: int | None, manager_comment: str = "") -> Order:
    return set_status(order_id, STATUS_APPROVED, user_id=user_id, manager_comment=manager_comment or "")


def reject_order(order_id: int, *, user_id: int | None, manager_comment: str = "") -> Order:
    return set_status(order_id, STATUS_REJECTED, user_id=user_id, manager_comment=manager_comment or "")


def cancel_order(user: User, order_id: int, reason: str = "") -> Order:
    """
    Customer self-cancel while the order is still Pending.

    Raises:
        OrderNotFoundError: not the caller's order
        OrderConflictError: order already left Pending
    """
    order = get_order(order_id)
    if order.user_id != user.id:
        raise OrderNotFoundError("Order not found")
    if order.status != STATUS_PENDING:
        raise OrderConflictError(f"Only pending orders can be cancelled (current status: {order.status})")

    _record_status(order, STATUS_CANCELLED, reason or "Cancelled by customer", user.id)
    db.session.commit()
    return order


def list_history(order: Order) -> list[OrderStatusHistory]:
    return (
        db.session.query(OrderStatusHistory)
        .filter(OrderStatusHistory.order_id == order.id)
        .order_by(OrderStatusHistory.created_at.asc(), OrderStatusHistory.id.asc())
        .all()
    )
