"""
Repository Layer for the AI SaaS backend

Exports all repository classes for dependency injection.
"""

from aisaas.infrastructure.db.repositories.base_repository import BaseRepository
from aisaas.infrastructure.db.repositories.user_repository import UserRepository
from aisaas.infrastructure.db.repositories.workspace_repository import (
    WorkspaceRepository,
)
from aisaas.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from aisaas.infrastructure.db.repositories.usage_quota_repository import (
    UsageQuotaRepository,
)
from aisaas.infrastructure.db.repositories.usage_log_repository import (
    UsageLogRepository,
)
from aisaas.infrastructure.db.repositories.audit_log_repository import (
    AuditLogRepository,
)
from aisaas.infrastructure.db.repositories.webhook_event_repository import (
    WebhookEventRepository,
)


__all__ = [
    # Base
    "BaseRepository",
    # Identity
    "UserRepository",
    "WorkspaceRepository",
    # Billing
    "SubscriptionRepository",
    # Usage
    "UsageQuotaRepository",
    "UsageLogRepository",
    # Audit
    "AuditLogRepository",
    "WebhookEventRepository",
]
