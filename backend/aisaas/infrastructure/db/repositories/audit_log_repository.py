"""
Audit Log Repository

Append and paginated query access to audit_logs.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aisaas.domain.subscription import AuditEntry
from aisaas.infrastructure.db.models.audit import AuditLogModel
from aisaas.infrastructure.db.repositories.base_repository import BaseRepository


class AuditLogRepository(BaseRepository[AuditLogModel]):
    """Repository for the audit trail."""

    def __init__(self, session: AsyncSession):
        super().__init__(AuditLogModel, session)

    async def append(self, entry: AuditEntry) -> AuditEntry:
        model = AuditLogModel(
            user_id=entry.user_id,
            action=entry.action,
            resource_type=entry.resource_type,
            resource_id=entry.resource_id,
            changes=entry.changes,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
        )
        await self.add(model)
        return AuditEntry.model_validate(model)

    async def search(
        self,
        limit: int = 50,
        offset: int = 0,
        user_id: Optional[str] = None,
        action: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[AuditEntry]:
        """Newest-first audit entries matching every given filter."""
        stmt = select(AuditLogModel)

        if user_id:
            stmt = stmt.where(AuditLogModel.user_id == user_id)
        if action:
            stmt = stmt.where(AuditLogModel.action == action)
        if start_date:
            stmt = stmt.where(AuditLogModel.timestamp >= start_date)
        if end_date:
            stmt = stmt.where(AuditLogModel.timestamp <= end_date)

        stmt = stmt.order_by(AuditLogModel.timestamp.desc()).offset(offset).limit(limit)
        result = await self._session.execute(stmt)
        return [AuditEntry.model_validate(m) for m in result.scalars().all()]
