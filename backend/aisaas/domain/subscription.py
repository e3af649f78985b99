"""
Subscription Domain Models

Domain models for subscription management following Clean Architecture.
Enums, DTOs, and domain entities for the subscription bounded context.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

from aisaas.domain.plans import PlanFeatures, PlanName


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status as reported by Polar."""
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"


class SubscriptionScope(str, Enum):
    """Who a subscription belongs to."""
    USER = "user"
    WORKSPACE = "workspace"


# =============================================================================
# Domain Entities
# =============================================================================

class Subscription(BaseModel):
    """
    Core subscription domain entity.

    Belongs to exactly one scope: user_id or workspace_id, never both.
    The id is the provider's subscription id.
    """
    id: str
    user_id: Optional[str] = None
    workspace_id: Optional[str] = None
    polar_subscription_id: str
    polar_customer_id: str
    status: str = SubscriptionStatus.ACTIVE.value
    plan: str = PlanName.FREE.value
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def scope(self) -> SubscriptionScope:
        if self.workspace_id:
            return SubscriptionScope.WORKSPACE
        return SubscriptionScope.USER

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE.value


class AuditEntry(BaseModel):
    """Append-only audit record."""
    id: Optional[str] = None
    user_id: Optional[str] = None
    action: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    changes: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Request/Response DTOs
# =============================================================================

class EffectivePlanResponse(BaseModel):
    """Response DTO for the caller's effective plan."""
    plan: PlanName
    features: PlanFeatures
    upgrade_to: Optional[PlanName] = Field(
        default=None,
        description="Next plan up, or null on the highest plan"
    )


class AllowedModelsResponse(BaseModel):
    """Response DTO for allowed AI models."""
    plan: PlanName
    models: list[str]
