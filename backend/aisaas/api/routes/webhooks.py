"""
Polar Webhook Handler

Receives Polar subscription events. The signature over the raw body is the
hard gate: nothing in the payload is read before it verifies.

Responses:
- 400: missing signature header or body that is not a JSON event
- 401: signature mismatch
- 500: signing secret not configured
- 200 "OK": event verified; handler failures are logged, not returned
"""

import json
import logging

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError as PydanticValidationError

from aisaas.domain.webhook import PolarWebhookEvent
from aisaas.infrastructure.exceptions import (
    ConfigurationError,
    WebhookVerificationError,
)
from aisaas.infrastructure.payments.polar_service import get_polar_service
from aisaas.infrastructure.services.subscription_webhook_processor import (
    get_subscription_webhook_processor,
)


logger = logging.getLogger(__name__)

router = APIRouter()

SIGNATURE_HEADER = "webhook-signature"


@router.post("/webhooks/polar", response_class=PlainTextResponse)
async def polar_webhook(request: Request):
    """
    Handle Polar webhook events.

    Verifies the signature, then dispatches to the subscription processor.
    Returns 200 OK once verified so Polar does not retry payloads that
    fail permanently.
    """
    polar_service = get_polar_service()

    # Get raw payload and signature
    payload = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    if not signature:
        logger.error("Polar webhook rejected: missing signature header")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing signature",
        )

    # Verify signature
    try:
        polar_service.verify_webhook_signature(payload, signature)
    except ConfigurationError as e:
        logger.error(f"Polar webhook rejected: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook secret not configured",
        )
    except WebhookVerificationError as e:
        logger.error(f"Polar webhook signature verification failed: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid signature",
        )

    try:
        event = PolarWebhookEvent.model_validate(json.loads(payload))
    except (ValueError, PydanticValidationError) as e:
        logger.error(f"Polar webhook rejected: unparseable body: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload",
        )

    logger.info(f"Processing Polar webhook event: {event.type}")

    await get_subscription_webhook_processor().process(event)

    return PlainTextResponse("OK", status_code=status.HTTP_200_OK)
