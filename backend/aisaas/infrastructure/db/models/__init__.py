"""
SQLModel ORM Models for the AI SaaS backend

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from aisaas.infrastructure.db.models.base import (
    TimestampMixin,
    new_id,
    utc_now,
)
from aisaas.infrastructure.db.models.user import UserModel
from aisaas.infrastructure.db.models.workspace import (
    WorkspaceModel,
    WorkspaceMemberModel,
)
from aisaas.infrastructure.db.models.subscription import SubscriptionModel
from aisaas.infrastructure.db.models.usage import (
    UsageQuotaModel,
    UsageLogModel,
)
from aisaas.infrastructure.db.models.audit import (
    AuditLogModel,
    WebhookEventModel,
)


__all__ = [
    # Base
    "TimestampMixin",
    "new_id",
    "utc_now",
    # Identity
    "UserModel",
    "WorkspaceModel",
    "WorkspaceMemberModel",
    # Billing
    "SubscriptionModel",
    # Usage
    "UsageQuotaModel",
    "UsageLogModel",
    # Audit
    "AuditLogModel",
    "WebhookEventModel",
]
