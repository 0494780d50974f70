import logging
from typing import Optional

import httpx

from core.config import settings
from services import email_templates

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailService:
    """
    Centralized email utility for Orbita Capital.
    Sends purchase, waitlist and account emails via the Resend HTTP API.

    Every send is best effort: failures are logged and reported as False,
    never raised, so a broken mail provider cannot fail a payment or signup.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        sender_email: Optional[str] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.resend_api_key = api_key
        self.sender_email = sender_email
        self.http = http

        self.enabled = bool(self.resend_api_key and self.sender_email)
        if not self.enabled:
            logger.warning("📧 Email service not configured. Missing RESEND_API_KEY or MAIL_FROM.")
        else:
            logger.info(f"📧 Email service configured and ready. Sender: {self.sender_email}")

    # ============================================================
    # ✅ Generic send (synchronous for BackgroundTasks)
    # ============================================================
    def send(self, to_email: str, subject: str, html_content: str) -> bool:
        if not self.enabled:
            # Development fallback (no Resend setup)
            logger.info(f"📨 [Mock Email] To: {to_email} | Subject: {subject}")
            return True

        payload = {
            "from": self.sender_email,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        headers = {"Authorization": f"Bearer {self.resend_api_key}"}
        try:
            if self.http is not None:
                response = self.http.post(RESEND_API_URL, json=payload, headers=headers)
            else:
                response = httpx.post(RESEND_API_URL, json=payload, headers=headers, timeout=10.0)
            response.raise_for_status()
            logger.info(f"✅ Email '{subject}' sent to {to_email}. Status: {response.status_code}")
            return True
        except Exception as e:
            logger.exception("❌ Failed to send email to %s: %s", to_email, e)
            return False

    # ============================================================
    # ✅ Templated sends
    # ============================================================
    def send_purchase_confirmation(self, to_email: str, nombre: str, product) -> bool:
        """``product`` is a ``services.catalog.Product``."""
        return self.send(to_email, product.email_subject, product.email_template(nombre))

    def send_waitlist_confirmation(self, to_email: str, nombre: str) -> bool:
        return self.send(
            to_email,
            "¡Estás en la lista! — Orbita Capital",
            email_templates.waitlist_confirmation_email(nombre),
        )

    def send_account_confirmation(self, to_email: str, nombre: str, link: str) -> bool:
        return self.send(
            to_email,
            "Confirmá tu cuenta — Orbita Capital",
            email_templates.account_confirmation_email(nombre, link),
        )

    def send_password_reset(self, to_email: str, nombre: str, link: str) -> bool:
        return self.send(
            to_email,
            "Restablecé tu contraseña — Orbita Capital",
            email_templates.password_reset_email(nombre, link),
        )


# ============================================================
# ✅ Global instance for app-wide import
# ============================================================
email_service = EmailService(settings.RESEND_API_KEY, settings.MAIL_FROM)


def get_email_service() -> EmailService:
    """FastAPI dependency so tests can swap in a recording service."""
    return email_service
