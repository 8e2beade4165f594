# Overview: Service-layer operations for supplier deliveries and their stock effect.

"""
Delivery Service

A delivery adds its quantity to the named stock item. Edits and deletes
apply compensating changes. In every case the Delivery row and the stock
movement (plus its StockLog) are committed in ONE transaction; a failure
in either rolls back both.

STOCK LOG TYPES:
- delivery:        +quantity on create
- delivery_edit:   delta on quantity change, or -old / +new on item change
- delivery_delete: -quantity on delete

A reversal that would drive the balance negative (the stock was already
consumed by manual adjustments) raises NegativeStockError and nothing is
written.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Delivery, Stock, Supplier
from ..time_utils import parse_iso_datetime
from .concurrency import run_with_retry
from .stock_service import (
    NegativeStockError,
    StockNotFoundError,
    apply_stock_change,
    normalize_item_name,
)


class DeliveryNotFoundError(Exception):
    """Raised when a delivery is not found."""
    pass


class DeliveryValidationError(Exception):
    """Raised when delivery data fails validation."""
    pass


def _parse_quantity(value) -> int:
    if isinstance(value, bool):
        raise DeliveryValidationError("Quantity must be a whole number of at least 1")
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise DeliveryValidationError("Quantity must be a whole number of at least 1")
    if isinstance(value, float) and not value.is_integer():
        raise DeliveryValidationError("Quantity must be a whole number of at least 1")
    if quantity < 1:
        raise DeliveryValidationError("Quantity must be a whole number of at least 1")
    return quantity


def _resolve_supplier(supplier_id) -> Supplier:
    try:
        supplier_id = int(supplier_id)
    except (TypeError, ValueError):
        raise DeliveryValidationError("Valid supplier_id is required")
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier:
        raise DeliveryValidationError("Supplier not found")
    return supplier


def _parse_date(value):
    if value in (None, ""):
        return None
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise DeliveryValidationError("delivery_date must be an ISO-8601 date")


def list_deliveries() -> list[Delivery]:
    return (
        db.session.query(Delivery)
        .order_by(Delivery.created_at.desc(), Delivery.id.desc())
        .all()
    )


def get_delivery(delivery_id: int) -> Delivery:
    delivery = db.session.get(Delivery, delivery_id)
    if not delivery:
        raise DeliveryNotFoundError("Delivery not found")
    return delivery


def create_delivery(
    *,
    supplier_id,
    item_name: str,
    quantity,
    delivery_date=None,
    invoice_image: str | None = None,
    user_id: int | None = None,
) -> tuple[Delivery, Stock]:
    """
    Record a delivery and add its quantity to stock, atomically.

    Raises:
        DeliveryValidationError: unknown supplier, missing item, bad quantity or date
    """
    supplier = _resolve_supplier(supplier_id)
    item_name = normalize_item_name(item_name)
    if not item_name:
        raise DeliveryValidationError("item_name is required")
    quantity = _parse_quantity(quantity)
    parsed_date = _parse_date(delivery_date)
    supplier_pk = supplier.id

    def _op():
        delivery = Delivery(
            supplier_id=supplier_pk,
            item_name=item_name,
            quantity=quantity,
            invoice_image=invoice_image,
            created_by_user_id=user_id,
        )
        if parsed_date:
            delivery.delivery_date = parsed_date
        db.session.add(delivery)
        db.session.flush()

        stock, _log = apply_stock_change(
            item_name=item_name,
            change_amount=quantity,
            log_type="delivery",
            delivery_id=delivery.id,
            user_id=user_id,
        )
        db.session.commit()
        return delivery, stock

    return run_with_retry(_op)


def update_delivery(delivery_id: int, data: dict, *, user_id: int | None = None) -> tuple[Delivery, list[Stock]]:
    """
    Apply any subset of {supplier_id, item_name, quantity, delivery_date, invoice_image}.

    Returns the delivery and the stock rows that moved.

    Raises:
        DeliveryNotFoundError
        DeliveryValidationError
        NegativeStockError: compensating change would drive a balance below zero
    """
    delivery = get_delivery(delivery_id)

    # Validate everything before touching stock
    new_supplier_id = _resolve_supplier(data["supplier_id"]).id if "supplier_id" in data else None
    new_item = None
    if "item_name" in data:
        new_item = normalize_item_name(data.get("item_name"))
        if not new_item:
            raise DeliveryValidationError("item_name cannot be empty")
    new_quantity = _parse_quantity(data["quantity"]) if "quantity" in data else None
    new_date = _parse_date(data.get("delivery_date")) if "delivery_date" in data else None
    has_invoice = "invoice_image" in data

    def _op():
        current = db.session.get(Delivery, delivery.id)
        old_item = current.item_name
        old_quantity = current.quantity
        target_item = new_item if new_item is not None else old_item
        target_quantity = new_quantity if new_quantity is not None else old_quantity

        moved: list[Stock] = []
        try:
            if target_item != old_item:
                # Move the whole delivery from one item to the other
                old_stock, _ = apply_stock_change(
                    item_name=old_item,
                    change_amount=-old_quantity,
                    log_type="delivery_edit",
                    delivery_id=current.id,
                    user_id=user_id,
                    note=f"Item changed to {target_item}",
                )
                new_stock, _ = apply_stock_change(
                    item_name=target_item,
                    change_amount=target_quantity,
                    log_type="delivery_edit",
                    delivery_id=current.id,
                    user_id=user_id,
                    note=f"Item changed from {old_item}",
                )
                moved = [old_stock, new_stock]
            elif target_quantity != old_quantity:
                stock, _ = apply_stock_change(
                    item_name=old_item,
                    change_amount=target_quantity - old_quantity,
                    log_type="delivery_edit",
                    delivery_id=current.id,
                    user_id=user_id,
                    note=f"Quantity {old_quantity} -> {target_quantity}",
                )
                moved = [stock]
        except (NegativeStockError, StockNotFoundError):
            db.session.rollback()
            raise

        current.item_name = target_item
        current.quantity = target_quantity
        if new_supplier_id is not None:
            current.supplier_id = new_supplier_id
        if new_date is not None:
            current.delivery_date = new_date
        if has_invoice:
            current.invoice_image = data.get("invoice_image")

        db.session.commit()
        return current, moved

    return run_with_retry(_op)


def delete_delivery(delivery_id: int, *, user_id: int | None = None) -> Stock:
    """
    Reverse the delivery's stock effect and delete it, atomically.

    Raises:
        DeliveryNotFoundError
        NegativeStockError: the delivered quantity was already consumed
    """
    delivery = get_delivery(delivery_id)
    delivery_pk = delivery.id

    def _op():
        current = db.session.get(Delivery, delivery_pk)
        try:
            stock, _ = apply_stock_change(
                item_name=current.item_name,
                change_amount=-current.quantity,
                log_type="delivery_delete",
                delivery_id=current.id,
                user_id=user_id,
            )
        except NegativeStockError:
            db.session.rollback()
            raise

        db.session.delete(current)
        db.session.commit()
        return stock

    return run_with_retry(_op)
