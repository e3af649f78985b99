"""
Usage Database Models

Per-user quota counters and the append-only usage log.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Column, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from aisaas.infrastructure.db.models.base import TimestampMixin, new_id, utc_now


JSONType = JSON().with_variant(JSONB(), "postgresql")


class UsageQuotaModel(TimestampMixin, table=True):
    """
    One row per user (user_id is the primary key, so duplicates are impossible).

    ai_requests_limit uses -1 for unlimited. Only the quota store writes here.
    """

    __tablename__ = "usage_quotas"

    user_id: str = Field(foreign_key="users.id", primary_key=True)
    ai_requests_used: int = Field(default=0, nullable=False)
    ai_requests_limit: int = Field(nullable=False)
    reset_at: datetime = Field(sa_type=DateTime(timezone=True), nullable=False, index=True)

    warning_80_sent: bool = Field(default=False, nullable=False)
    warning_90_sent: bool = Field(default=False, nullable=False)
    warning_100_sent: bool = Field(default=False, nullable=False)


class UsageLogModel(SQLModel, table=True):
    """Append-only usage event."""

    __tablename__ = "usage_logs"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True, nullable=False)
    resource_type: str = Field(index=True, max_length=30, nullable=False)
    resource_id: Optional[str] = Field(default=None, max_length=255)
    quantity: int = Field(default=1, nullable=False)

    # "metadata" is reserved on declarative classes, hence the attribute name
    event_metadata: Optional[dict] = Field(
        default=None,
        sa_column=Column("metadata", JSONType, nullable=True),
    )

    timestamp: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        nullable=False,
        index=True,
    )
