# Overview: Service-layer operations for user administration and profiles.

from sqlalchemy import or_

from ..extensions import db
from ..models import User
from ..models.auth import ROLES
from .token_service import revoke_all_tokens


class UserNotFoundError(Exception):
    """Raised when a user is not found."""
    pass


class UserValidationError(Exception):
    """Raised when user data fails validation."""
    pass


def get_user(user_id) -> User:
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise UserNotFoundError("User not found")
    user = db.session.get(User, user_id)
    if not user:
        raise UserNotFoundError("User not found")
    return user


def list_users(search: str | None = None) -> list[User]:
    query = db.session.query(User)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            User.name.ilike(pattern),
            User.email.ilike(pattern),
            User.role.ilike(pattern),
        ))
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


def set_role(user_id, role: str) -> User:
    """
    Raises:
        UserValidationError: role is not one of ROLES
        UserNotFoundError: no such user
    """
    if role not in ROLES:
        raise UserValidationError(f"Invalid role. Must be one of: {', '.join(ROLES)}")
    user = get_user(user_id)
    user.role = role
    db.session.commit()
    return user


def toggle_active(user_id) -> User:
    """Flip is_active. Deactivation also revokes every outstanding token."""
    user = get_user(user_id)
    user.is_active = not user.is_active
    user.status = "active" if user.is_active else "inactive"
    if not user.is_active:
        revoke_all_tokens(user, commit=False)
    db.session.commit()
    return user


def update_profile(user: User, data: dict) -> User:
    """Self-service edit of the caller's own name / phone / address."""
    if "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise UserValidationError("Name cannot be empty")
        user.name = name
    for field in ("phone", "address"):
        if field in data:
            setattr(user, field, str(data.get(field) or "").strip())
    db.session.commit()
    return user
