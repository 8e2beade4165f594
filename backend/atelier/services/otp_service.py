# Overview: Service-layer operations for the OTP second factor.

"""
OTP Service

Second step of login. A password login opens a challenge window
(auth_service.begin_login_challenge); inside that window a 6-digit code can
be sent (and re-sent) and then verified once.

SECURITY:
- Codes come from the secrets module
- Only the bcrypt hash is stored, never the code
- Codes expire after OTP_EXPIRES (5 minutes)
- A verified code is cleared, so it cannot be replayed
- OTP_MAX_ATTEMPTS wrong codes discard the code and the login challenge;
  the user has to log in with the password again
"""

import secrets

from flask import current_app

from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from .auth_service import hash_secret, verify_password
from .mail_service import send_otp_email


OTP_DIGITS = 6
OTP_MAX_ATTEMPTS = 5  # Wrong codes allowed per login challenge


class OtpError(Exception):
    """Base class for OTP failures."""
    pass


class LoginChallengeRequiredError(OtpError):
    """Raised when send-otp is called without a recent password login."""
    pass


class OtpNotRequestedError(OtpError):
    """Raised when verify-otp is called but no code is stored."""
    pass


class OtpInvalidError(OtpError):
    """Raised for a wrong or expired code."""
    pass


class OtpAttemptsExceededError(OtpInvalidError):
    """Raised when too many wrong codes were submitted for one challenge."""
    pass


def generate_otp() -> str:
    # 100000..999999, so the code always has 6 digits
    return str(secrets.randbelow(9 * 10 ** (OTP_DIGITS - 1)) + 10 ** (OTP_DIGITS - 1))


def _challenge_open(user: User) -> bool:
    expires_at = user.login_challenge_expires_at
    return expires_at is not None and expires_at > utcnow()


def send_otp(user: User) -> str:
    """
    Issue a fresh code for user and email it.

    Replaces any previously issued code. The hash is committed before the
    email goes out; if sending fails the stored code is useless but
    harmless (the caller gets MailDeliveryError and can retry).

    Raises:
        LoginChallengeRequiredError: no open login challenge
        MailDeliveryError: SMTP failure (from mail_service)
    """
    if not _challenge_open(user):
        raise LoginChallengeRequiredError("Login required before requesting an OTP")

    otp = generate_otp()
    user.otp_hash = hash_secret(otp)
    user.otp_expires_at = utcnow() + current_app.config["OTP_EXPIRES"]
    db.session.commit()

    send_otp_email(user.email, otp)
    current_app.logger.info("OTP issued for user %s", user.id)
    return otp


def verify_otp(user: User, otp: str) -> User:
    """
    Check a submitted code. On success marks the user verified, clears the
    code and the challenge, and stamps last_login_at.

    Raises:
        OtpNotRequestedError: no code stored
        OtpInvalidError: wrong or expired code
        OtpAttemptsExceededError: OTP_MAX_ATTEMPTS reached; challenge closed
    """
    if not user.otp_hash or not user.otp_expires_at:
        raise OtpNotRequestedError("No OTP requested")

    if user.otp_expires_at <= utcnow():
        raise OtpInvalidError("OTP expired")

    if not verify_password(str(otp).strip(), user.otp_hash):
        user.otp_failed_attempts = (user.otp_failed_attempts or 0) + 1
        if user.otp_failed_attempts >= OTP_MAX_ATTEMPTS:
            user.otp_hash = None
            user.otp_expires_at = None
            user.login_challenge_expires_at = None
            db.session.commit()
            current_app.logger.warning("OTP attempts exhausted for user %s", user.id)
            raise OtpAttemptsExceededError("Too many invalid OTP attempts. Please log in again.")
        db.session.commit()
        raise OtpInvalidError("Invalid OTP")

    now = utcnow()
    user.otp_verified = True
    user.otp_hash = None
    user.otp_failed_attempts = 0
    user.otp_expires_at = None
    user.login_challenge_expires_at = None
    user.last_login_at = now
    db.session.commit()
    return user
