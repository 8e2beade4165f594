# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Service

Suppliers are required for every delivery. A supplier that already has
deliveries on record cannot be deleted (SupplierInUseError); the stock
ledger references those deliveries.
"""

from sqlalchemy import or_

from ..extensions import db
from ..models import Supplier, Delivery


class SupplierNotFoundError(Exception):
    """Raised when a supplier is not found."""
    pass


class SupplierValidationError(Exception):
    """Raised when supplier data fails validation."""
    pass


class SupplierInUseError(Exception):
    """Raised when deleting a supplier that still has deliveries."""
    pass


_TEXT_FIELDS = ("company", "phone", "email", "address")


def list_suppliers(search: str | None = None) -> list[Supplier]:
    query = db.session.query(Supplier)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Supplier.name.ilike(pattern),
            Supplier.company.ilike(pattern),
            Supplier.phone.ilike(pattern),
            Supplier.email.ilike(pattern),
        ))
    return query.order_by(Supplier.created_at.desc(), Supplier.id.desc()).all()


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier:
        raise SupplierNotFoundError("Supplier not found")
    return supplier


def create_supplier(data: dict, *, created_by_user_id: int | None = None) -> Supplier:
    """
    Raises:
        SupplierValidationError: name missing
    """
    name = str(data.get("name") or "").strip()
    if not name:
        raise SupplierValidationError("Supplier name is required")

    supplier = Supplier(
        name=name,
        created_by_user_id=created_by_user_id,
        updated_by_user_id=created_by_user_id,
    )
    for field in _TEXT_FIELDS:
        setattr(supplier, field, str(data.get(field) or "").strip())
    if supplier.email:
        supplier.email = supplier.email.lower()

    db.session.add(supplier)
    db.session.commit()
    return supplier


def update_supplier(supplier_id: int, data: dict, *, updated_by_user_id: int | None = None) -> Supplier:
    supplier = get_supplier(supplier_id)

    if "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise SupplierValidationError("Supplier name cannot be empty")
        supplier.name = name

    for field in _TEXT_FIELDS:
        if field in data:
            value = str(data.get(field) or "").strip()
            setattr(supplier, field, value.lower() if field == "email" else value)

    supplier.updated_by_user_id = updated_by_user_id
    db.session.commit()
    return supplier


def delete_supplier(supplier_id: int) -> None:
    """
    Raises:
        SupplierNotFoundError: no such supplier
        SupplierInUseError: supplier has deliveries
    """
    supplier = get_supplier(supplier_id)

    delivery_count = db.session.query(Delivery).filter_by(supplier_id=supplier.id).count()
    if delivery_count:
        raise SupplierInUseError(
            f"Supplier has {delivery_count} deliveries and cannot be deleted"
        )

    db.session.delete(supplier)
    db.session.commit()
