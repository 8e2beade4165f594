from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_SUPPLIER = "supplier"
ROLE_CUSTOMER = "customer"
ROLES = (ROLE_ADMIN, ROLE_CUSTOMER, ROLE_SUPPLIER, ROLE_MANAGER)

PLAN_FREE = "free"
PLAN_PRO = "pro"


class User(db.Model):
    """
    Login identity for customers and staff.

    Email is globally unique and stored lower-cased. Sessions are only issued
    after the password step AND the emailed OTP step both succeed; see
    services/auth_service.py and services/otp_service.py.

    token_version is embedded in every issued JWT ("tv" claim). Bumping it
    revokes all outstanding tokens for the user.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role", "role"),
        db.Index("ix_users_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_CUSTOMER)

    # Optional profile fields
    phone = db.Column(db.String(64), nullable=False, default="")
    company_name = db.Column(db.String(255), nullable=False, default="")
    category = db.Column(db.String(128), nullable=False, default="")
    address = db.Column(db.Text, nullable=False, default="")
    status = db.Column(db.String(16), nullable=False, default="active")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # OTP second factor (only the bcrypt hash of the code is stored)
    otp_hash = db.Column(db.String(255), nullable=True)
    otp_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    otp_verified = db.Column(db.Boolean, nullable=False, default=False)
    otp_failed_attempts = db.Column(db.Integer, nullable=False, default=0)
    # Set by a successful password login; OTP may only be requested inside it
    login_challenge_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    token_version = db.Column(db.Integer, nullable=False, default=0)

    # AI design quota
    plan = db.Column(db.String(16), nullable=False, default=PLAN_FREE)
    generation_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "phone": self.phone,
            "company_name": self.company_name,
            "category": self.category,
            "address": self.address,
            "status": self.status,
            "is_active": self.is_active,
            "otp_verified": self.otp_verified,
            "plan": self.plan,
            "generation_count": self.generation_count,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
