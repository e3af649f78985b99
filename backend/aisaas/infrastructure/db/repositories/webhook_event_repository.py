"""
Webhook Event Repository

Ledger of received webhook deliveries. Nothing on the processing path
reads it back; it exists for operators.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from aisaas.domain.webhook import WebhookEventStatus
from aisaas.infrastructure.db.models.audit import WebhookEventModel
from aisaas.infrastructure.db.models.base import utc_now
from aisaas.infrastructure.db.repositories.base_repository import BaseRepository


class WebhookEventRepository(BaseRepository[WebhookEventModel]):
    """Repository for webhook_events."""

    def __init__(self, session: AsyncSession):
        super().__init__(WebhookEventModel, session)

    async def record(
        self,
        source: str,
        event_type: str,
        payload: Optional[Dict[str, Any]],
    ) -> str:
        """Insert a pending ledger row and return its id."""
        model = WebhookEventModel(
            source=source,
            event_type=event_type,
            payload=payload,
            status=WebhookEventStatus.PENDING.value,
        )
        await self.add(model)
        return model.id

    async def mark(
        self,
        event_id: str,
        status: WebhookEventStatus,
        error: Optional[str] = None,
    ) -> None:
        stmt = (
            update(WebhookEventModel)
            .where(WebhookEventModel.id == event_id)
            .values(status=status.value, last_error=error, processed_at=utc_now())
        )
        await self._session.execute(stmt)

    async def list_by_status(
        self,
        status: Optional[WebhookEventStatus] = None,
        limit: int = 50,
    ) -> List[WebhookEventModel]:
        stmt = select(WebhookEventModel)
        if status is not None:
            stmt = stmt.where(WebhookEventModel.status == status.value)
        stmt = stmt.order_by(WebhookEventModel.created_at.desc()).limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
