"""Transactional email delivery using the Resend API."""

import logging
from pathlib import Path
from typing import Any

import httpx
from jinja2 import Environment, FileSystemLoader

from openletter.core.config import settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"
_jinja_env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), autoescape=True)


def build_confirmation_url(token: str) -> str:
    return f"{settings.api_url}{settings.api_v1_prefix}/signatures/confirm?token={token}"


class EmailService:
    """Sends signature confirmation emails via the Resend API."""

    async def send_signature_confirmation(
        self,
        to_email: str,
        name: str,
        letter_title: str,
        confirm_url: str,
        locale: str = "en",
    ) -> str | None:
        """Send the link a signer follows to verify their signature.

        Returns the Resend email ID on success, None on failure.
        """
        html_content = _jinja_env.get_template("confirm_signature.html").render(
            name=name,
            letter_title=letter_title,
            confirm_url=confirm_url,
            locale=locale,
        )
        payload: dict[str, Any] = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": f"Confirm your signature: {letter_title}",
            "html": html_content,
            "tags": [{"name": "category", "value": "signature_confirmation"}],
        }

        if not settings.resend_api_key:
            logger.warning("Resend API key not configured, email not sent to %s", to_email)
            return None

        try:
            async with httpx.AsyncClient(timeout=15.0) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {settings.resend_api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
                if response.is_success:
                    email_id = response.json().get("id")
                    logger.info("Confirmation email sent: to=%s id=%s", to_email, email_id)
                    return str(email_id) if email_id else None

                logger.error(
                    "Failed to send confirmation email: to=%s status=%s body=%s",
                    to_email,
                    response.status_code,
                    response.text[:500],
                )
                return None
        except httpx.HTTPError:
            logger.exception("Error sending confirmation email to %s", to_email)
            return None
