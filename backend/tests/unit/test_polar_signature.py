"""
Unit tests for Polar webhook signature verification and product mapping.
"""

import pytest

from aisaas.domain.plans import PlanName
from aisaas.infrastructure.exceptions import ConfigurationError, WebhookVerificationError
from aisaas.infrastructure.payments.polar_service import PolarService, compute_signature


SECRET = "whsec_unit"
PAYLOAD = b'{"type":"subscription.created","data":{"id":"sub_1"}}'


@pytest.fixture
def service():
    return PolarService(
        webhook_secret=SECRET,
        product_plan_map={"prod_pro": "pro", "prod_startup": "startup"},
    )


class TestVerifyWebhookSignature:
    """Tests for HMAC-SHA256 verification over the raw body."""

    def test_valid_signature(self, service):
        service.verify_webhook_signature(PAYLOAD, compute_signature(PAYLOAD, SECRET))

    def test_tampered_body_rejected(self, service):
        signature = compute_signature(PAYLOAD, SECRET)
        tampered = PAYLOAD.replace(b"sub_1", b"sub_2")

        with pytest.raises(WebhookVerificationError):
            service.verify_webhook_signature(tampered, signature)

    def test_wrong_secret_rejected(self, service):
        with pytest.raises(WebhookVerificationError):
            service.verify_webhook_signature(PAYLOAD, compute_signature(PAYLOAD, "other"))

    def test_any_of_several_signatures_matches(self, service):
        header = f"v1,bm90LWl0 {compute_signature(PAYLOAD, SECRET)}"
        service.verify_webhook_signature(PAYLOAD, header)

    def test_missing_prefix_rejected(self, service):
        signature = compute_signature(PAYLOAD, SECRET)[len("v1,"):]
        with pytest.raises(WebhookVerificationError):
            service.verify_webhook_signature(PAYLOAD, signature)

    def test_garbage_base64_rejected(self, service):
        with pytest.raises(WebhookVerificationError):
            service.verify_webhook_signature(PAYLOAD, "v1,***not-base64***")

    def test_missing_secret_is_configuration_error(self):
        service = PolarService(webhook_secret="", product_plan_map={})
        assert service.is_configured is False

        with pytest.raises(ConfigurationError):
            service.verify_webhook_signature(PAYLOAD, compute_signature(PAYLOAD, SECRET))


class TestResolvePlan:

    def test_known_product(self, service):
        assert service.resolve_plan("prod_pro") == PlanName.PRO

    def test_unknown_product_is_none(self, service):
        assert service.resolve_plan("prod_pro_v2") is None
        assert service.resolve_plan(None) is None
