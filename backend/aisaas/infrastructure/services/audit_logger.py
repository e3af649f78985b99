"""
Audit Logger

Append-only audit sink with operator queries. Writing never raises:
a failed audit write must not break the request that caused it.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from aisaas.domain.subscription import AuditEntry
from aisaas.infrastructure.db.database import SessionFactory, get_session_context
from aisaas.infrastructure.db.repositories import AuditLogRepository


logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    """Audit actions recorded by this service."""
    SUBSCRIPTION_CREATED = "subscription.created"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    SUBSCRIPTION_CANCELED = "subscription.canceled"
    ADMIN_ACCESS = "admin.access"


class AuditLogger:
    """Writes and queries audit_logs."""

    def __init__(self, session_factory: SessionFactory = get_session_context):
        self._session_factory = session_factory

    async def log_audit(self, entry: AuditEntry) -> None:
        try:
            async with self._session_factory() as session:
                await AuditLogRepository(session).append(entry)
        except Exception as e:
            logger.error(f"Failed to create audit log '{entry.action}': {e}")

    async def log_subscription_change(
        self,
        user_id: Optional[str],
        action: AuditAction,
        subscription_data: Dict[str, Any],
        changes: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record a subscription lifecycle event with its plan/status snapshot."""
        await self.log_audit(
            AuditEntry(
                user_id=user_id,
                action=action.value,
                resource_type="subscription",
                resource_id=subscription_data.get("subscriptionId"),
                changes={**subscription_data, **(changes or {})},
            )
        )

    async def log_admin_access(
        self,
        user_id: Optional[str],
        resource: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        await self.log_audit(
            AuditEntry(
                user_id=user_id,
                action=AuditAction.ADMIN_ACCESS.value,
                resource_type="admin",
                resource_id=resource,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_user_audit_logs(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AuditEntry]:
        async with self._session_factory() as session:
            return await AuditLogRepository(session).search(
                limit=limit,
                offset=offset,
                user_id=user_id,
            )

    async def get_all_audit_logs(
        self,
        limit: int = 100,
        offset: int = 0,
        user_id: Optional[str] = None,
        action: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[AuditEntry]:
        """Newest-first audit entries with optional filters."""
        async with self._session_factory() as session:
            return await AuditLogRepository(session).search(
                limit=limit,
                offset=offset,
                user_id=user_id,
                action=action,
                start_date=start_date,
                end_date=end_date,
            )


# =============================================================================
# Singleton Instance
# =============================================================================

_audit_logger_instance: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get or create audit logger singleton."""
    global _audit_logger_instance

    if _audit_logger_instance is None:
        _audit_logger_instance = AuditLogger()

    return _audit_logger_instance
