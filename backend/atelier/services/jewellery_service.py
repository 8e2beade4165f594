# Overview: Service-layer operations for the jewellery catalogue.

from sqlalchemy import or_

from ..extensions import db
from ..models import Jewellery, LockerVerification


class JewelleryNotFoundError(Exception):
    """Raised when a jewellery item is not found."""
    pass


class JewelleryValidationError(Exception):
    """Raised when jewellery data fails validation."""
    pass


class JewelleryInUseError(Exception):
    """Raised when deleting a jewellery item that has locker verifications."""
    pass


def _non_negative(data: dict, field: str, cast):
    value = data.get(field)
    if value in (None, ""):
        return cast(0)
    if isinstance(value, bool):
        raise JewelleryValidationError(f"{field} must be a non-negative number")
    try:
        number = cast(value)
    except (TypeError, ValueError):
        raise JewelleryValidationError(f"{field} must be a non-negative number")
    if number < 0:
        raise JewelleryValidationError(f"{field} must be a non-negative number")
    return number


def list_jewellery(search: str | None = None) -> list[Jewellery]:
    query = db.session.query(Jewellery)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Jewellery.name.ilike(pattern),
            Jewellery.type.ilike(pattern),
            Jewellery.description.ilike(pattern),
        ))
    return query.order_by(Jewellery.created_at.desc(), Jewellery.id.desc()).all()


def get_jewellery(jewellery_id: int) -> Jewellery:
    item = db.session.get(Jewellery, jewellery_id)
    if not item:
        raise JewelleryNotFoundError("Jewellery not found")
    return item


def create_jewellery(data: dict, *, created_by_user_id: int | None = None) -> Jewellery:
    name = str(data.get("name") or "").strip()
    if not name:
        raise JewelleryValidationError("Name is required")

    item = Jewellery(
        name=name,
        type=str(data.get("type") or "").strip() or "Other",
        weight=_non_negative(data, "weight", float),
        quantity=_non_negative(data, "quantity", int) if "quantity" in data else 1,
        price_cents=_non_negative(data, "price_cents", int),
        description=str(data.get("description") or "").strip(),
        created_by_user_id=created_by_user_id,
    )
    db.session.add(item)
    db.session.commit()
    return item


def update_jewellery(jewellery_id: int, data: dict) -> Jewellery:
    item = get_jewellery(jewellery_id)

    if "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise JewelleryValidationError("Name cannot be empty")
        item.name = name
    if "type" in data:
        item.type = str(data.get("type") or "").strip() or "Other"
    if "description" in data:
        item.description = str(data.get("description") or "").strip()

    if "weight" in data:
        item.weight = _non_negative(data, "weight", float)
    if "quantity" in data:
        item.quantity = _non_negative(data, "quantity", int)
    if "price_cents" in data:
        item.price_cents = _non_negative(data, "price_cents", int)

    db.session.commit()
    return item


def delete_jewellery(jewellery_id: int) -> None:
    """
    Raises:
        JewelleryNotFoundError: no such item
        JewelleryInUseError: item has locker verifications on record
    """
    item = get_jewellery(jewellery_id)

    audit_count = db.session.query(LockerVerification).filter_by(jewellery_id=item.id).count()
    if audit_count:
        raise JewelleryInUseError(
            f"Jewellery has {audit_count} locker verifications and cannot be deleted"
        )

    db.session.delete(item)
    db.session.commit()
