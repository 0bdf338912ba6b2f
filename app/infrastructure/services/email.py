"""Transactional email through the Resend HTTP API.

Message bodies are Jinja2 templates under ``app/templates/email``. Without
an API key (local development, tests) messages are logged, not sent.
"""
import logging
from datetime import datetime
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ...config import EMAIL_FROM, RESEND_API_KEY, SITE_NAME, TEMPLATES_DIR
from ...errors import ExternalServiceError

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

_templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR / "email")),
    autoescape=select_autoescape(["html"])
)


class EmailSender:
    """Render and deliver transactional messages."""

    def __init__(
        self,
        api_key: str = RESEND_API_KEY,
        sender: str = EMAIL_FROM,
        http_client: Optional[httpx.Client] = None
    ):
        self.api_key = api_key
        self.sender = sender
        self._http = http_client

    def render(self, template: str, **context) -> str:
        return _templates.get_template(template).render(site_name=SITE_NAME, **context)

    def send(self, to: str, subject: str, html: str) -> bool:
        """Deliver one message.

        Raises:
            ExternalServiceError: Resend rejected the message or was unreachable

        Returns:
            True once the message was accepted (or logged without an API key)
        """
        if not self.api_key:
            logger.info("Email not sent (no RESEND_API_KEY)", extra={"to": to, "subject": subject})
            return True

        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            if self._http is not None:
                response = self._http.post(RESEND_API_URL, json=payload, headers=headers)
            else:
                with httpx.Client(timeout=10.0) as client:
                    response = client.post(RESEND_API_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ExternalServiceError("Resend", str(e))

        if response.is_error:
            raise ExternalServiceError("Resend", f"HTTP {response.status_code}: {response.text[:200]}")

        logger.info("Email sent", extra={"to": to, "subject": subject})
        return True

    def send_password_reset(self, to: str, reset_url: str, expires_at: datetime) -> bool:
        html = self.render("password_reset.html", reset_url=reset_url, expires_at=expires_at)
        return self.send(to, f"Reset your {SITE_NAME} password", html)

    def send_password_changed(self, to: str) -> bool:
        html = self.render("password_changed.html")
        return self.send(to, f"Your {SITE_NAME} password was changed", html)

    def send_email_verification(self, to: str, name: str, verification_url: str, expires_hours: int) -> bool:
        html = self.render(
            "email_verification.html",
            name=name,
            verification_url=verification_url,
            expires_hours=expires_hours
        )
        return self.send(to, f"Verify your {SITE_NAME} email", html)

    def send_order_confirmation(
        self,
        to: str,
        customer_name: str,
        order: dict,
        items: list[dict],
        order_url: str
    ) -> bool:
        """Receipt for a paid order: items, subtotal, tax and total."""
        html = self.render(
            "order_confirmation.html",
            customer_name=customer_name,
            order=order,
            items=items,
            order_url=order_url
        )
        return self.send(to, f"Your {SITE_NAME} order #{order['id']}", html)
