# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

FLOW:
1. POST /register    -> customer account, not yet OTP-verified
2. POST /login       -> password check, opens the OTP challenge
3. POST /send-otp    -> emails a 6-digit code (call again to resend)
4. POST /verify-otp  -> issues the JWT (cookie + body)

SECURITY FEATURES:
- bcrypt password and OTP hashes
- OTP only after a successful password login
- HTTP-only SameSite=Strict session cookie
- logout {"all": true} revokes every outstanding token
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import optional_user, require_auth
from ..services import auth_service, otp_service, token_service, user_service
from ..services.auth_service import (
    AccountDisabledError,
    AuthValidationError,
    DuplicateEmailError,
    PasswordValidationError,
)
from ..services.mail_service import MailDeliveryError
from ..services.otp_service import (
    LoginChallengeRequiredError,
    OtpInvalidError,
    OtpNotRequestedError,
)
from ..services.user_service import UserNotFoundError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Self-registration (customers only).

    Request body: {name, email, password}
    Returns 201 {message, user_id}
    """
    data = request.get_json(silent=True) or {}

    if not all([data.get("name"), data.get("email"), data.get("password")]):
        return jsonify({"error": "Name, email and password are required"}), 400

    try:
        user = auth_service.register_customer(data["name"], data["email"], data["password"])
    except (AuthValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except DuplicateEmailError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Registered customer %s", user.id)
    return jsonify({"message": "Registration successful. Please login.", "user_id": user.id}), 201


@auth_bp.post("/login")
def login_route():
    """
    Password step. Does NOT issue a token.

    Request body: {email, password}
    Returns 200 {message, user_id}; the client then calls /send-otp.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "Email and password are required"}), 400

    try:
        user = auth_service.authenticate(email, password)
    except AccountDisabledError as e:
        return jsonify({"error": str(e)}), 403

    if not user:
        current_app.logger.info("Failed login for %s", auth_service.normalize_email(email))
        return jsonify({"error": "Invalid credentials"}), 401

    auth_service.begin_login_challenge(user)
    return jsonify({"message": "Login success. OTP required.", "user_id": user.id}), 200


@auth_bp.post("/send-otp")
def send_otp_route():
    """Email a fresh OTP. Body: {user_id}. Calling again re-sends."""
    data = request.get_json(silent=True) or {}
    if not data.get("user_id"):
        return jsonify({"error": "user_id is required"}), 400

    try:
        user = user_service.get_user(data["user_id"])
        otp_service.send_otp(user)
    except UserNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LoginChallengeRequiredError as e:
        return jsonify({"error": str(e)}), 400
    except MailDeliveryError as e:
        return jsonify({"error": str(e)}), 502

    return jsonify({"success": True, "message": "OTP sent to your email"}), 200


@auth_bp.post("/verify-otp")
def verify_otp_route():
    """
    Verify the emailed code and start a session.

    Request body: {user_id, otp}
    Returns 200 {success, token, user} and sets the auth cookie.
    """
    data = request.get_json(silent=True) or {}
    if not data.get("user_id") or not data.get("otp"):
        return jsonify({"error": "user_id and otp are required"}), 400

    try:
        user = user_service.get_user(data["user_id"])
        otp_service.verify_otp(user, data["otp"])
    except UserNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OtpNotRequestedError as e:
        return jsonify({"error": str(e)}), 400
    except OtpInvalidError as e:
        return jsonify({"error": str(e)}), 401

    token = token_service.issue_token(user)
    current_app.logger.info("Session issued for user %s", user.id)

    response = jsonify({"success": True, "token": token, "user": user.to_dict()})
    return token_service.set_auth_cookie(response, token), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"success": True, "data": g.current_user.to_dict()})


@auth_bp.post("/logout")
def logout_route():
    """
    Clear the session cookie.

    With {"all": true} and a valid token, also revokes every token the
    user holds (all devices).
    """
    data = request.get_json(silent=True) or {}
    revoked = False

    if data.get("all"):
        user = optional_user()
        if user:
            token_service.revoke_all_tokens(user)
            revoked = True

    response = jsonify({"success": True, "message": "Logged out", "revoked_all": revoked})
    return token_service.clear_auth_cookie(response), 200
