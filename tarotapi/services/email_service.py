"""EMAIL SERVICE"""

import logging
import os

import rollbar
from sparkpost import SparkPost

from tarotapi.config import SETTINGS
from tarotapi.errors import EmailDeliveryError

logger = logging.getLogger(__name__)

APP_NAME = "Tarot Tracker"


def _base_url():
    return SETTINGS.get("BASE_URL", "").rstrip("/")


def _wrap(title, body_html):
    return (
        '<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #6b46c1;">{title}</h2>'
        f"{body_html}"
        '<p style="color: #888; font-size: 12px;">'
        f"{APP_NAME}: your personal tarot journal</p>"
        "</div>"
    )


def _button(url, label):
    return (
        f'<p><a href="{url}" style="display: inline-block; padding: 12px 24px; '
        'background: #6b46c1; color: #fff; text-decoration: none; '
        f'border-radius: 6px;">{label}</a></p>'
        f'<p>Or copy this link into your browser:<br><a href="{url}">{url}</a></p>'
    )


class EmailService:
    """MailService Class"""

    @staticmethod
    def send_html_email(
        recipients=None,
        html="",
        text=None,
        subject=f"[{APP_NAME}] Undefined Subject",
        from_email=None,
    ):
        if recipients is None:
            recipients = []
        from_email = from_email or SETTINGS.get("EMAIL_FROM")

        sparkpost_api_key = SETTINGS.get("environment", {}).get(
            "SPARKPOST_API_KEY"
        ) or os.getenv("SPARKPOST_API_KEY")
        if not sparkpost_api_key:
            logger.warning(
                f"Cannot send email with subject '{subject}' to {len(recipients)} "
                "recipients: SPARKPOST_API_KEY is not configured. Email "
                "functionality is disabled."
            )
            return {"errors": ["Email disabled: SPARKPOST_API_KEY not configured"]}

        logger.debug(f"Sending email with subject {subject}")
        try:
            sp = SparkPost(sparkpost_api_key)
            kwargs = {
                "recipients": recipients,
                "html": html,
                "from_email": from_email,
                "subject": subject,
            }
            if text:
                kwargs["text"] = text
            return sp.transmissions.send(**kwargs)
        except Exception as error:
            logger.error(f"Failed to send email with subject '{subject}': {error}")
            rollbar.report_exc_info()
            raise EmailDeliveryError(f"Failed to send email: {error}") from error

    @staticmethod
    def send_verification_email(email, token, username):
        url = f"{_base_url()}/verify-email?token={token}"
        html = _wrap(
            f"Welcome to {APP_NAME}, {username}!",
            "<p>Please verify your email address to activate your account.</p>"
            + _button(url, "Verify Email")
            + "<p>This link expires in 24 hours.</p>"
            "<p>If you didn't create an account, you can ignore this email.</p>",
        )
        text = (
            f"Welcome to {APP_NAME}, {username}!\n\n"
            "Please verify your email address by visiting:\n"
            f"{url}\n\n"
            "This link expires in 24 hours.\n\n"
            "If you didn't create an account, you can ignore this email."
        )
        logger.info(f"[SERVICE]: Sending verification email for {username}")
        return EmailService.send_html_email(
            recipients=[email],
            html=html,
            text=text,
            subject=f"Verify your {APP_NAME} account",
        )

    @staticmethod
    def send_password_reset_email(email, token, username):
        url = f"{_base_url()}/reset-password?token={token}"
        html = _wrap(
            "Password Reset Request",
            f"<p>Hi {username},</p>"
            "<p>We received a request to reset your password.</p>"
            + _button(url, "Reset Password")
            + "<p>This link expires in 1 hour.</p>"
            "<p>If you didn't request a password reset, you can ignore this "
            "email. Your password will not change.</p>",
        )
        text = (
            f"Hi {username},\n\n"
            "We received a request to reset your password. Visit:\n"
            f"{url}\n\n"
            "This link expires in 1 hour.\n\n"
            "If you didn't request a password reset, you can ignore this email."
        )
        logger.info(f"[SERVICE]: Sending password reset email for {username}")
        return EmailService.send_html_email(
            recipients=[email],
            html=html,
            text=text,
            subject=f"Reset your {APP_NAME} password",
        )

    @staticmethod
    def send_admin_verified_email(email, username):
        url = _base_url() or "/"
        html = _wrap(
            "Your account has been verified!",
            f"<p>Hi {username},</p>"
            f"<p>An administrator has verified your {APP_NAME} account. "
            "You can now sign in.</p>" + _button(url, "Sign In"),
        )
        text = (
            f"Hi {username},\n\n"
            f"An administrator has verified your {APP_NAME} account. "
            f"You can now sign in at {url}"
        )
        logger.info(f"[SERVICE]: Sending admin verification notice for {username}")
        return EmailService.send_html_email(
            recipients=[email],
            html=html,
            text=text,
            subject=f"Your {APP_NAME} account has been verified!",
        )
