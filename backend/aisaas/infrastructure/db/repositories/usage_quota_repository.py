"""
Usage Quota Repository

All writes to usage_quotas are single statements: insert-if-absent,
arithmetic increment in SQL, and conditional flag updates.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from aisaas.domain.usage import UsageQuota
from aisaas.infrastructure.db.models.base import utc_now
from aisaas.infrastructure.db.models.usage import UsageQuotaModel
from aisaas.infrastructure.db.repositories.base_repository import BaseRepository


# Rows are always re-read with populate_existing, so ORM updates skip
# identity-map synchronization
_NO_SYNC = {"synchronize_session": False}

_WARNING_COLUMNS = {
    80: UsageQuotaModel.warning_80_sent,
    90: UsageQuotaModel.warning_90_sent,
    100: UsageQuotaModel.warning_100_sent,
}


def _warning_column(threshold: int):
    try:
        return _WARNING_COLUMNS[threshold]
    except KeyError:
        raise ValueError(f"Unsupported warning threshold: {threshold}")


class UsageQuotaRepository(BaseRepository[UsageQuotaModel]):
    """Repository for per-user quota rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(UsageQuotaModel, session)

    async def get(self, user_id: str) -> Optional[UsageQuota]:
        # Bypass the identity map so concurrent writers are visible
        stmt = (
            select(UsageQuotaModel)
            .where(UsageQuotaModel.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return UsageQuota.model_validate(model) if model else None

    async def insert_if_absent(self, user_id: str, limit: int, reset_at: datetime) -> bool:
        """
        Create the quota row unless one already exists.

        Returns:
            True if this call inserted the row
        """
        now = utc_now()
        stmt = self._insert().values(
            user_id=user_id,
            ai_requests_used=0,
            ai_requests_limit=limit,
            reset_at=reset_at,
            warning_80_sent=False,
            warning_90_sent=False,
            warning_100_sent=False,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_nothing(index_elements=["user_id"])
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def reset(
        self,
        user_id: str,
        limit: int,
        reset_at: datetime,
        due_before: Optional[datetime] = None,
    ) -> int:
        """
        Zero the counter, refresh the limit, advance reset_at and clear warnings.

        With `due_before`, only a row whose period ended by then is reset, so
        two requests racing on a rollover reset it once.
        """
        stmt = update(UsageQuotaModel).where(UsageQuotaModel.user_id == user_id)
        if due_before is not None:
            stmt = stmt.where(UsageQuotaModel.reset_at <= due_before)
        stmt = (
            stmt
            .values(
                ai_requests_used=0,
                ai_requests_limit=limit,
                reset_at=reset_at,
                warning_80_sent=False,
                warning_90_sent=False,
                warning_100_sent=False,
                updated_at=utc_now(),
            )
        )
        result = await self._session.execute(stmt, execution_options=_NO_SYNC)
        return result.rowcount

    async def increment(self, user_id: str, count: int = 1) -> int:
        """
        Atomically add `count` to ai_requests_used.

        Returns:
            Number of rows updated (0 when the user has no quota row)
        """
        stmt = (
            update(UsageQuotaModel)
            .where(UsageQuotaModel.user_id == user_id)
            .values(
                ai_requests_used=UsageQuotaModel.ai_requests_used + count,
                updated_at=utc_now(),
            )
        )
        result = await self._session.execute(stmt, execution_options=_NO_SYNC)
        return result.rowcount

    async def set_limit(self, user_id: str, limit: int) -> int:
        stmt = (
            update(UsageQuotaModel)
            .where(UsageQuotaModel.user_id == user_id)
            .values(ai_requests_limit=limit, updated_at=utc_now())
        )
        result = await self._session.execute(stmt, execution_options=_NO_SYNC)
        return result.rowcount

    async def claim_warning(self, user_id: str, threshold: int) -> bool:
        """
        Flip warning_<threshold>_sent from false to true.

        Only one concurrent caller can win the claim.
        """
        column = _warning_column(threshold)
        stmt = (
            update(UsageQuotaModel)
            .where(UsageQuotaModel.user_id == user_id, column.is_(False))
            .values({column.key: True})
        )
        result = await self._session.execute(stmt, execution_options=_NO_SYNC)
        return result.rowcount == 1

    async def release_warning(self, user_id: str, threshold: int) -> None:
        column = _warning_column(threshold)
        stmt = (
            update(UsageQuotaModel)
            .where(UsageQuotaModel.user_id == user_id)
            .values({column.key: False})
        )
        await self._session.execute(stmt, execution_options=_NO_SYNC)

    async def get_expired_user_ids(
        self,
        now: datetime,
        limit: Optional[int] = None,
    ) -> List[str]:
        """Users whose reset_at has passed."""
        stmt = (
            select(UsageQuotaModel.user_id)
            .where(UsageQuotaModel.reset_at <= now)
            .order_by(UsageQuotaModel.reset_at)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
