# Overview: Authentication and role decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .models.auth import ROLE_ADMIN
from .services import token_service
from .services.token_service import TokenError


def _extract_token() -> str | None:
    """Authorization: Bearer <token> first, then the auth cookie."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get(current_app.config["AUTH_COOKIE_NAME"]) or None


def optional_user():
    """The authenticated User if the request carries a valid token, else None."""
    token = _extract_token()
    if not token:
        return None
    try:
        return token_service.resolve_user(token)
    except TokenError:
        return None


def require_auth(f):
    """
    Require a valid session token.

    Sets g.current_user to the authenticated User.

    SECURITY: Returns 401 if:
    - No bearer token and no auth cookie
    - Bad signature or expired token
    - User no longer exists
    - Token issued before the user's last revocation (token_version)
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _extract_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        try:
            user = token_service.resolve_user(token)
        except TokenError as e:
            return jsonify({"error": str(e)}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_roles(*roles):
    """Require the authenticated user to hold one of roles. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role not in roles:
                current_app.logger.info(
                    "Role denied: user=%s role=%s path=%s required=%s",
                    g.current_user.id, g.current_user.role, request.path, ",".join(roles),
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_admin(f):
    return require_roles(ROLE_ADMIN)(f)
