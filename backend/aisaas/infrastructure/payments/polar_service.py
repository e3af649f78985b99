"""
Polar Payment Service

Infrastructure service for the Polar payment provider: webhook signature
verification and the static product-id to plan mapping.

Checkout and the customer portal are hosted by Polar and are not handled
here.
"""

import base64
import binascii
import hashlib
import hmac
import logging
from typing import Dict, Optional

from aisaas.config.settings import get_settings
from aisaas.domain.plans import PlanName
from aisaas.infrastructure.exceptions import (
    ConfigurationError,
    WebhookVerificationError,
)


logger = logging.getLogger(__name__)


SIGNATURE_PREFIX = "v1,"


def compute_signature(payload: bytes, secret: str) -> str:
    """Header value (`v1,<base64>`) for a payload signed with `secret`."""
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()
    return SIGNATURE_PREFIX + base64.b64encode(digest).decode("ascii")


class PolarService:
    """
    Polar webhook and product mapping service.

    Stateless; safe to share as a singleton.
    """

    def __init__(
        self,
        webhook_secret: Optional[str] = None,
        product_plan_map: Optional[Dict[str, str]] = None,
    ):
        settings = get_settings()
        self._webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.polar_webhook_secret
        )
        self._product_plan_map = (
            product_plan_map if product_plan_map is not None else settings.product_plan_map
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._webhook_secret)

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(self, payload: bytes, signature_header: str) -> None:
        """
        Verify a webhook signature over the exact raw request body.

        The header holds one or more space-separated `v1,<base64>` values;
        any one matching is enough.

        Args:
            payload: Raw request body
            signature_header: Value of the webhook-signature header

        Raises:
            ConfigurationError: if no signing secret is configured
            WebhookVerificationError: if no signature matches
        """
        if not self._webhook_secret:
            raise ConfigurationError(
                "Webhook signing secret is not configured",
                missing_keys=["POLAR_WEBHOOK_SECRET"],
            )

        if not signature_header or not signature_header.strip():
            raise WebhookVerificationError("Missing webhook signature")

        expected = hmac.new(
            self._webhook_secret.encode("utf-8"),
            payload,
            hashlib.sha256,
        ).digest()

        for candidate in signature_header.split():
            if not candidate.startswith(SIGNATURE_PREFIX):
                continue
            try:
                received = base64.b64decode(candidate[len(SIGNATURE_PREFIX):], validate=True)
            except (binascii.Error, ValueError):
                continue
            if hmac.compare_digest(expected, received):
                return

        raise WebhookVerificationError("Invalid webhook signature")

    # =========================================================================
    # Product Mapping
    # =========================================================================

    def resolve_plan(self, product_id: Optional[str]) -> Optional[PlanName]:
        """
        Plan for a Polar product id.

        Exact match only; returns None for unknown or missing ids.
        """
        if not product_id:
            return None

        plan = self._product_plan_map.get(product_id)
        if plan is None:
            logger.warning(f"Unknown Polar product id: {product_id}")
            return None

        return PlanName(plan)


# =============================================================================
# Singleton Instance (Dependency Injection Ready)
# =============================================================================

_polar_service_instance: Optional[PolarService] = None


def get_polar_service() -> PolarService:
    """Get or create Polar service singleton."""
    global _polar_service_instance

    if _polar_service_instance is None:
        _polar_service_instance = PolarService()

    return _polar_service_instance
