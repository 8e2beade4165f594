# Overview: Outbound mail (OTP codes) through Flask-Mail.

import logging
from smtplib import SMTPException

from flask import current_app
from flask_mail import Message

from ..extensions import mail


logger = logging.getLogger(__name__)


class MailDeliveryError(Exception):
    """Raised when the SMTP server rejects or cannot be reached."""
    pass


def send_otp_email(recipient: str, otp: str) -> None:
    """
    Email a one-time code.

    With MAIL_SUPPRESS_SEND (no SMTP credentials configured, or TESTING) the
    message is dispatched to Flask-Mail's signal only; the code is then
    logged at DEBUG so local development can still complete the login.
    """
    expires_minutes = int(current_app.config["OTP_EXPIRES"].total_seconds() // 60)

    msg = Message("Your verification code", recipients=[recipient])
    msg.body = (
        f"Your verification code is: {otp}\n\n"
        f"It expires in {expires_minutes} minutes. If you did not try to sign in, ignore this email."
    )
    msg.html = f"<h1>{otp}</h1><p>Expires in {expires_minutes} minutes.</p>"

    try:
        mail.send(msg)
    except (SMTPException, OSError) as exc:
        logger.error("OTP email to %s failed: %s", recipient, exc)
        raise MailDeliveryError("Failed to send OTP email") from exc

    if current_app.config.get("MAIL_SUPPRESS_SEND"):
        logger.debug("Mail suppressed; OTP for %s is %s", recipient, otp)
    else:
        logger.info("OTP email sent to %s", recipient)
