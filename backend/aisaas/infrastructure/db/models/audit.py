"""
Audit and Webhook Ledger Models

Both tables are append-mostly records for operators; nothing in the
entitlement path reads them back.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from aisaas.domain.webhook import WebhookEventStatus
from aisaas.infrastructure.db.models.base import new_id, utc_now
from aisaas.infrastructure.db.models.usage import JSONType


class AuditLogModel(SQLModel, table=True):
    """Append-only audit trail."""

    __tablename__ = "audit_logs"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: Optional[str] = Field(default=None, foreign_key="users.id", index=True)
    action: str = Field(index=True, max_length=50, nullable=False)
    resource_type: Optional[str] = Field(default=None, max_length=50)
    resource_id: Optional[str] = Field(default=None, max_length=255)
    changes: Optional[dict] = Field(default=None, sa_column=Column(JSONType, nullable=True))
    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None)
    timestamp: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        nullable=False,
        index=True,
    )


class WebhookEventModel(SQLModel, table=True):
    """Ledger of verified webhook deliveries and their processing outcome."""

    __tablename__ = "webhook_events"

    id: str = Field(default_factory=new_id, primary_key=True)
    source: str = Field(max_length=30, nullable=False)
    event_type: str = Field(max_length=100, nullable=False)
    payload: Optional[dict] = Field(default=None, sa_column=Column(JSONType, nullable=True))
    status: str = Field(default=WebhookEventStatus.PENDING.value, index=True, max_length=20)
    last_error: Optional[str] = Field(default=None)
    processed_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        nullable=False,
    )
