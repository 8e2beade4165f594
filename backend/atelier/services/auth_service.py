# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Passwords are hashed with bcrypt. Login is the first of three steps:

1. login (password)  -> opens a short login challenge window
2. send-otp          -> emails a 6-digit code (see otp_service.py)
3. verify-otp        -> issues the session token (see token_service.py)

SECURITY NOTES:
- Cost factor comes from BCRYPT_ROUNDS (12 by default)
- Minimum 6 characters
- Email is the login identifier; stored lower-cased and trimmed
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..models.auth import ROLES, ROLE_CUSTOMER
from ..time_utils import utcnow


MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthValidationError(Exception):
    """Raised when required registration / login input is missing or malformed."""
    pass


class DuplicateEmailError(Exception):
    """Raised when an email is already registered."""
    pass


class AccountDisabledError(Exception):
    """Raised when a deactivated account tries to log in."""
    pass


def normalize_email(email: str | None) -> str:
    return str(email or "").strip().lower()


def validate_password_strength(password: str) -> None:
    """Raises PasswordValidationError if the password is too short."""
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def _rounds() -> int:
    return int(current_app.config.get("BCRYPT_ROUNDS", 12))


def hash_secret(secret: str) -> str:
    """bcrypt-hash an arbitrary secret (password or OTP code) for storage."""
    salt = bcrypt.gensalt(rounds=_rounds())
    hashed = bcrypt.hashpw(secret.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt-hash the password."""
    validate_password_strength(password)
    return hash_secret(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password (or OTP code) against a bcrypt hash.

    bcrypt.checkpw() is constant-time. Malformed hashes verify as False.
    """
    if not isinstance(password, str) or not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def email_taken(email: str) -> bool:
    return db.session.query(User).filter_by(email=normalize_email(email)).first() is not None


def create_user(
    *,
    name: str,
    email: str,
    password: str,
    role: str = ROLE_CUSTOMER,
    is_active: bool = True,
    otp_verified: bool = False,
    phone: str = "",
    address: str = "",
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        AuthValidationError: missing name/email or unknown role
        PasswordValidationError: password too short
        DuplicateEmailError: email already registered
    """
    name = str(name or "").strip()
    email = normalize_email(email)
    if not name or not email or not password:
        raise AuthValidationError("Name, email and password are required")
    if role not in ROLES:
        raise AuthValidationError(f"Role must be one of: {', '.join(ROLES)}")

    password_hash = hash_password(password)

    if email_taken(email):
        raise DuplicateEmailError("Email already exists")

    user = User(
        name=name,
        email=email,
        password_hash=password_hash,
        role=role,
        is_active=is_active,
        status="active" if is_active else "inactive",
        otp_verified=otp_verified,
        phone=phone or "",
        address=address or "",
    )
    db.session.add(user)
    db.session.commit()
    return user


def register_customer(name: str, email: str, password: str) -> User:
    """Self-registration. Always creates a customer that still needs the OTP step."""
    return create_user(name=name, email=email, password=password, role=ROLE_CUSTOMER)


def authenticate(email: str, password: str) -> User | None:
    """
    Check email + password.

    Returns the User when the credentials match, None otherwise.
    Raises AccountDisabledError for a correct password on a deactivated account.
    """
    user = db.session.query(User).filter_by(email=normalize_email(email)).first()
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    if not user.is_active:
        raise AccountDisabledError("Account is deactivated")

    return user


def begin_login_challenge(user: User) -> User:
    """
    First factor passed: require a fresh OTP before a token is issued.

    Resets otp_verified and opens the window in which send-otp is allowed.
    """
    user.otp_verified = False
    user.login_challenge_expires_at = utcnow() + current_app.config["LOGIN_CHALLENGE_EXPIRES"]
    user.otp_failed_attempts = 0
    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str) -> User:
    """
    Raises:
        AuthValidationError: missing input or wrong current password
        PasswordValidationError: new password too short
    """
    if not current_password or not new_password:
        raise AuthValidationError("current_password and new_password required")
    if not verify_password(current_password, user.password_hash):
        raise AuthValidationError("Current password incorrect")

    user.password_hash = hash_password(new_password)
    # Password change revokes every outstanding token
    user.token_version = (user.token_version or 0) + 1
    db.session.commit()
    return user
