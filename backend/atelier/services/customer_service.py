# Overview: Service-layer operations for the admin-managed customer records.

"""
Customer Service

Customers here are CRM records maintained by admins. They are not login
identities; self-service profile edits act on User (see user_service).
"""

import math

from sqlalchemy import or_

from ..extensions import db
from ..models import Customer
from ..models.customers import CUSTOMER_STATUSES
from .auth_service import PasswordValidationError, hash_password, normalize_email


class CustomerNotFoundError(Exception):
    """Raised when a customer is not found."""
    pass


class CustomerValidationError(Exception):
    """Raised when customer data fails validation."""
    pass


class DuplicateCustomerError(Exception):
    """Raised when a customer email is already taken."""
    pass


def _email_in_use(email: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Customer).filter(Customer.email == email)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    return query.first() is not None


def list_customers(
    *,
    search: str | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    """
    Paginated list.

    Returns:
        {customers, total, page, limit, pages}
    """
    page = max(page, 1)
    limit = min(max(limit, 1), 100)

    query = db.session.query(Customer)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Customer.name.ilike(pattern),
            Customer.email.ilike(pattern),
            Customer.phone.ilike(pattern),
        ))
    if status and status != "all":
        query = query.filter(Customer.status == status)

    total = query.count()
    customers = (
        query.order_by(Customer.created_at.desc(), Customer.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "customers": customers,
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if total else 0,
    }


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise CustomerNotFoundError("Customer not found")
    return customer


def _validate_status(status: str) -> str:
    if status not in CUSTOMER_STATUSES:
        raise CustomerValidationError(f"Status must be one of: {', '.join(CUSTOMER_STATUSES)}")
    return status


def create_customer(data: dict) -> Customer:
    name = str(data.get("name") or "").strip()
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""
    if not name or not email or not password:
        raise CustomerValidationError("Name, email and password are required")

    try:
        password_hash = hash_password(password)
    except PasswordValidationError as e:
        raise CustomerValidationError(str(e))

    if _email_in_use(email):
        raise DuplicateCustomerError("Email already exists")

    role = data.get("role") or "customer"
    if role not in ("customer", "admin"):
        raise CustomerValidationError("Role must be customer or admin")

    customer = Customer(
        name=name,
        email=email,
        password_hash=password_hash,
        phone=str(data.get("phone") or "").strip(),
        address=str(data.get("address") or "").strip(),
        status=_validate_status(data.get("status") or "active"),
        role=role,
    )
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(customer_id: int, data: dict) -> Customer:
    customer = get_customer(customer_id)

    if "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise CustomerValidationError("Name cannot be empty")
        customer.name = name

    if "email" in data:
        email = normalize_email(data.get("email"))
        if not email:
            raise CustomerValidationError("Email cannot be empty")
        if _email_in_use(email, exclude_id=customer.id):
            raise DuplicateCustomerError("Email already exists")
        customer.email = email

    for field in ("phone", "address"):
        if field in data:
            setattr(customer, field, str(data.get(field) or "").strip())

    if "status" in data:
        customer.status = _validate_status(data.get("status"))

    if data.get("password"):
        try:
            customer.password_hash = hash_password(data["password"])
        except PasswordValidationError as e:
            raise CustomerValidationError(str(e))

    db.session.commit()
    return customer


def delete_customer(customer_id: int) -> None:
    customer = get_customer(customer_id)
    db.session.delete(customer)
    db.session.commit()
