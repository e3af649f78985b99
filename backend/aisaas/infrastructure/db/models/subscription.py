"""
Subscription Database Model

SQLModel table for subscription data persistence.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index
from sqlmodel import Field

from aisaas.infrastructure.db.models.base import TimestampMixin


class SubscriptionModel(TimestampMixin, table=True):
    """
    Subscription table keyed by the Polar subscription id.

    Rows are never deleted; canceled subscriptions stay as history.
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (workspace_id IS NULL)",
            name="ck_subscriptions_single_scope",
        ),
        Index("ix_subscriptions_workspace_status", "workspace_id", "status"),
        Index("ix_subscriptions_user_status", "user_id", "status"),
    )

    id: str = Field(primary_key=True)

    # Scope: exactly one of these is set
    user_id: Optional[str] = Field(default=None, foreign_key="users.id")
    workspace_id: Optional[str] = Field(default=None, foreign_key="workspaces.id")

    # Polar IDs
    polar_subscription_id: str = Field(unique=True, index=True, nullable=False)
    polar_customer_id: str = Field(index=True, nullable=False)

    # Subscription details
    status: str = Field(default="active", max_length=30)
    plan: str = Field(default="free", max_length=30)

    # Billing period dates
    current_period_start: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    current_period_end: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    cancel_at_period_end: bool = Field(default=False)
