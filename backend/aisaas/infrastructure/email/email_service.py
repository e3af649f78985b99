"""
Email Service

Transactional email through the Resend REST API.

Every public method returns True/False and never raises: email is a side
channel and must not break the request that triggered it.
"""

import html
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from aisaas.config.settings import get_settings
from aisaas.infrastructure.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)


class EmailService:
    """
    Resend email client.

    Args:
        api_key: Resend API key (defaults to RESEND_API_KEY)
        sender: From address (defaults to RESEND_SENDER_EMAIL)
        transport: Optional httpx transport, used to stub the network
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.sender = sender or settings.resend_sender_email
        self.api_url = api_url or settings.resend_api_url
        self.timeout = timeout or settings.email_timeout_seconds
        self._transport = transport

        if not self.api_key:
            logger.warning("RESEND_API_KEY not configured, emails will be skipped")

    async def _deliver(self, to: str, subject: str, body_html: str) -> Dict[str, Any]:
        """POST one message to Resend; raises EmailDeliveryError on failure."""
        payload = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": body_html,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as e:
            raise EmailDeliveryError(
                "Email provider rejected the message",
                recipient=to,
                status_code=e.response.status_code,
                original_error=e,
            )
        except httpx.HTTPError as e:
            raise EmailDeliveryError(
                f"Email transport error: {e}",
                recipient=to,
                original_error=e,
            )

    async def send(self, to: str, subject: str, body_html: str) -> bool:
        """Send a message. Returns False when skipped or failed."""
        if not self.api_key:
            logger.warning(f"Skipping email to {to}: RESEND_API_KEY not configured")
            return False

        try:
            data = await self._deliver(to, subject, body_html)
        except EmailDeliveryError as e:
            logger.error(f"Failed to send email '{subject}' to {to}: {e.message} {e.details}")
            return False

        logger.info(f"Email sent to {to} (id={data.get('id')}): {subject}")
        return True

    # =========================================================================
    # Transactional messages
    # =========================================================================

    async def send_quota_warning(
        self,
        to: str,
        username: str,
        usage_percentage: int,
        current_usage: int,
        limit: int,
        plan_name: str,
        reset_at: Optional[datetime] = None,
    ) -> bool:
        if usage_percentage >= 100:
            subject = "⚠️ Usage Limit Reached"
        else:
            subject = f"⚠️ {usage_percentage}% of Your Quota Used"

        reset_line = ""
        if reset_at is not None:
            reset_line = f"<p>Your quota resets on {reset_at.date().isoformat()}.</p>"

        body = (
            f"<p>Hi {html.escape(username)},</p>"
            f"<p>You have used {current_usage} of {limit} AI requests "
            f"({usage_percentage}%) on the {html.escape(plan_name)} plan.</p>"
            f"{reset_line}"
            "<p>Upgrade your plan to keep going without interruption.</p>"
        )
        return await self.send(to, subject, body)

    async def send_subscription_confirmation(
        self,
        to: str,
        username: str,
        plan_name: str,
        next_billing_date: Optional[datetime] = None,
    ) -> bool:
        billing_line = ""
        if next_billing_date is not None:
            billing_line = f"<p>Next billing date: {next_billing_date.date().isoformat()}.</p>"

        body = (
            f"<p>Hi {html.escape(username)},</p>"
            f"<p>Your {html.escape(plan_name)} subscription is active.</p>"
            f"{billing_line}"
        )
        return await self.send(to, f"Welcome to {plan_name}! 🎉", body)

    async def send_subscription_cancelled(
        self,
        to: str,
        username: str,
        plan_name: str,
        end_date: Optional[datetime] = None,
    ) -> bool:
        end_line = ""
        if end_date is not None:
            end_line = f"<p>You keep access until {end_date.date().isoformat()}.</p>"

        body = (
            f"<p>Hi {html.escape(username)},</p>"
            f"<p>Your {html.escape(plan_name)} subscription has been cancelled.</p>"
            f"{end_line}"
        )
        return await self.send(to, "Your subscription has been cancelled", body)


# =============================================================================
# Singleton Instance
# =============================================================================

_email_service_instance: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create email service singleton."""
    global _email_service_instance

    if _email_service_instance is None:
        _email_service_instance = EmailService()

    return _email_service_instance
