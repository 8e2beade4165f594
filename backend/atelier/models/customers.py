from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


CUSTOMER_STATUSES = ("active", "blocked")


class Customer(db.Model):
    """
    Admin-managed customer record (CRM side).

    Separate from User: staff maintain these by hand, and they are never
    used to log in. The password is kept only so a record can later be
    promoted to a login without asking the customer again.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    phone = db.Column(db.String(64), nullable=False, default="")
    address = db.Column(db.Text, nullable=False, default="")

    status = db.Column(db.String(16), nullable=False, default="active")
    role = db.Column(db.String(16), nullable=False, default="customer")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Customer id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "status": self.status,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
