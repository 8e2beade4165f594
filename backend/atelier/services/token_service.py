# Overview: Service-layer operations for session tokens; encapsulates JWT issue/verify and cookie handling.

"""
Session Token Service

Tokens are stateless HS256 JWTs issued after the OTP step.

CLAIMS:
- sub: user id (string, as required by RFC 7519)
- role: user role at issue time (informational; the DB role is authoritative)
- tv:  user.token_version at issue time
- iat / exp: issued-at and expiry (JWT_EXPIRES, 7 days by default)

REVOCATION: bumping user.token_version invalidates every token issued
before the bump (logout-all, password change, deactivation).
"""

from __future__ import annotations

import jwt
from flask import current_app

from ..extensions import db
from ..models import User
from ..time_utils import utcnow


class TokenError(Exception):
    """Raised when a token is missing, malformed, expired or revoked."""
    pass


def issue_token(user: User) -> str:
    now = utcnow()
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "tv": user.token_version or 0,
        "iat": now,
        "exp": now + current_app.config["JWT_EXPIRES"],
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("Invalid token") from exc


def resolve_user(token: str) -> User:
    """
    Validate a token and return its active user.

    Raises TokenError for bad signature, expiry, unknown user, stale
    token_version, or a deactivated account.
    """
    claims = decode_token(token)

    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError) as exc:
        raise TokenError("Invalid token") from exc

    user = db.session.get(User, user_id)
    if not user:
        raise TokenError("User not found")
    if claims.get("tv") != (user.token_version or 0):
        raise TokenError("Token revoked")
    if not user.is_active:
        raise TokenError("Account is deactivated")
    return user


def revoke_all_tokens(user: User, *, commit: bool = True) -> None:
    user.token_version = (user.token_version or 0) + 1
    if commit:
        db.session.commit()


def set_auth_cookie(response, token: str):
    """HTTP-only, SameSite=Strict; Secure outside development."""
    response.set_cookie(
        current_app.config["AUTH_COOKIE_NAME"],
        token,
        max_age=int(current_app.config["JWT_EXPIRES"].total_seconds()),
        httponly=True,
        secure=bool(current_app.config.get("AUTH_COOKIE_SECURE")),
        samesite="Strict",
    )
    return response


def clear_auth_cookie(response):
    response.delete_cookie(
        current_app.config["AUTH_COOKIE_NAME"],
        httponly=True,
        secure=bool(current_app.config.get("AUTH_COOKIE_SECURE")),
        samesite="Strict",
    )
    return response
