"""
Polar Webhook Payload Models

Only the fields the subscription handlers read are declared; everything
else in the payload is ignored.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class WebhookEventType(str, Enum):
    """Polar subscription events this service acts on."""
    SUBSCRIPTION_CREATED = "subscription.created"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    SUBSCRIPTION_CANCELED = "subscription.canceled"


class WebhookEventStatus(str, Enum):
    """Ledger status of a received webhook event."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class PolarCustomer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None


class PolarSubscriptionData(BaseModel):
    """The `data` object of a Polar subscription.* event."""
    model_config = ConfigDict(extra="ignore")

    id: str
    status: str = "active"
    product_id: Optional[str] = None
    customer_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    customer: Optional[PolarCustomer] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def customer_email(self) -> Optional[str]:
        if self.customer and self.customer.email:
            return self.customer.email.strip().lower()
        return None

    @property
    def resolved_customer_id(self) -> Optional[str]:
        if self.customer_id:
            return self.customer_id
        if self.customer:
            return self.customer.id
        return None

    @property
    def workspace_id(self) -> Optional[str]:
        value = self.metadata.get("workspace_id") or self.metadata.get("workspaceId")
        return str(value) if value else None


class PolarWebhookEvent(BaseModel):
    """Envelope of a Polar webhook delivery."""
    model_config = ConfigDict(extra="ignore")

    type: str
    data: Dict[str, Any] = Field(default_factory=dict)

    def subscription(self) -> PolarSubscriptionData:
        """Parse `data` as a subscription (raises pydantic.ValidationError)."""
        payload = self.data.get("subscription", self.data)
        if "customer" not in payload and "customer" in self.data:
            payload = {**payload, "customer": self.data["customer"]}
        return PolarSubscriptionData.model_validate(payload)
