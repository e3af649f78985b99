"""
Usage Log Repository

Append-only access to usage_logs plus the aggregate reads behind usage
statistics and workspace totals.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from aisaas.domain.usage import ResourceType, UsageLogEntry, ensure_utc
from aisaas.infrastructure.db.models.usage import UsageLogModel
from aisaas.infrastructure.db.repositories.base_repository import BaseRepository


class UsageLogRepository(BaseRepository[UsageLogModel]):
    """Repository for usage log entries."""

    def __init__(self, session: AsyncSession):
        super().__init__(UsageLogModel, session)

    async def append(
        self,
        user_id: str,
        resource_type: str,
        quantity: int = 1,
        resource_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> UsageLogEntry:
        model = UsageLogModel(
            user_id=user_id,
            resource_type=resource_type,
            resource_id=resource_id,
            quantity=quantity,
            event_metadata=metadata,
        )
        await self.add(model)
        return self._to_domain(model)

    async def list_since(self, user_id: str, since: datetime) -> List[UsageLogEntry]:
        """Entries for a user at or after `since`, newest first."""
        stmt = (
            select(UsageLogModel)
            .where(
                UsageLogModel.user_id == user_id,
                UsageLogModel.timestamp >= since,
            )
            .order_by(UsageLogModel.timestamp.desc())
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(m) for m in result.scalars().all()]

    async def sum_quantity_for_users(
        self,
        user_ids: Sequence[str],
        since: datetime,
        resource_type: str = ResourceType.AI_REQUEST.value,
    ) -> int:
        """Total quantity of `resource_type` logged by any of `user_ids` since a date."""
        if not user_ids:
            return 0

        stmt = select(func.coalesce(func.sum(UsageLogModel.quantity), 0)).where(
            UsageLogModel.user_id.in_(list(user_ids)),
            UsageLogModel.resource_type == resource_type,
            UsageLogModel.timestamp >= since,
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    def _to_domain(self, model: UsageLogModel) -> UsageLogEntry:
        return UsageLogEntry(
            id=model.id,
            user_id=model.user_id,
            resource_type=model.resource_type,
            resource_id=model.resource_id,
            quantity=model.quantity,
            metadata=model.event_metadata,
            timestamp=ensure_utc(model.timestamp),
        )
