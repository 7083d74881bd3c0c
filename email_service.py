import logging
import smtplib
import ssl
from email.message import EmailMessage

from config import (
    EMAIL_HOST,
    EMAIL_PORT,
    EMAIL_SECURE,
    EMAIL_USER,
    EMAIL_PASS,
    FRONTEND_URL,
    RESET_TOKEN_EXPIRE_MINUTES,
)

logger = logging.getLogger(__name__)


def build_password_reset_email(to: str, reset_token: str) -> EmailMessage:
    reset_url = f"{FRONTEND_URL.rstrip('/')}/reset-password/{reset_token}"
    message = EmailMessage()
    message["Subject"] = "Password Reset Request"
    message["From"] = f"Book Finder <{EMAIL_USER or 'no-reply@localhost'}>"
    message["To"] = to
    message.set_content(
        "You requested a password reset for your Book Finder account.\n\n"
        f"Open this link to choose a new password:\n{reset_url}\n\n"
        f"This link will expire in {RESET_TOKEN_EXPIRE_MINUTES} minutes.\n"
        "If you didn't request this reset, please ignore this email.\n"
    )
    message.add_alternative(
        f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2>Password Reset Request</h2>
          <p>You requested a password reset for your Book Finder account.</p>
          <p><a href="{reset_url}">Reset Password</a></p>
          <p>If the link doesn't work, copy and paste this address into your browser:</p>
          <p>{reset_url}</p>
          <p>This link will expire in {RESET_TOKEN_EXPIRE_MINUTES} minutes.</p>
          <p>If you didn't request this reset, please ignore this email.</p>
        </div>
        """,
        subtype="html",
    )
    return message


def send_password_reset_email(to: str, reset_token: str) -> bool:
    """Deliver the reset link over SMTP. Runs as a background task, so it never raises."""
    if not EMAIL_HOST:
        logger.warning("EMAIL_HOST is not configured; password reset email not sent")
        return False

    message = build_password_reset_email(to, reset_token)
    try:
        if EMAIL_SECURE:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(EMAIL_HOST, EMAIL_PORT, timeout=30, context=context) as server:
                if EMAIL_USER and EMAIL_PASS:
                    server.login(EMAIL_USER, EMAIL_PASS)
                server.send_message(message)
        else:
            with smtplib.SMTP(EMAIL_HOST, EMAIL_PORT, timeout=30) as server:
                server.starttls(context=ssl.create_default_context())
                if EMAIL_USER and EMAIL_PASS:
                    server.login(EMAIL_USER, EMAIL_PASS)
                server.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send password reset email: %s", e)
        return False

    logger.info("Password reset email sent")
    return True
