"""
Quota Store

Owns the usage_quotas rows: atomic get-or-create, lazy monthly reset,
atomic increments and limit refreshes after plan changes.

Each operation runs in its own short unit of work; nothing holds a lock
across awaits.
"""

import logging
from datetime import datetime
from typing import Optional

from aisaas.domain.usage import UsageQuota, next_reset_date, utcnow
from aisaas.infrastructure.db.database import SessionFactory, get_session_context
from aisaas.infrastructure.db.repositories import UsageQuotaRepository
from aisaas.infrastructure.exceptions import DatabaseError
from aisaas.infrastructure.services.plan_resolver import PlanResolver, get_plan_resolver
from aisaas.infrastructure.services.quota_warning_notifier import (
    QuotaWarningNotifier,
    get_quota_warning_notifier,
)


logger = logging.getLogger(__name__)


class QuotaStore:
    """
    Per-user AI request counters.

    Args:
        session_factory: Committing session context
        plan_resolver: Source of the current plan limit
        notifier: Warning notifier run after each increment
    """

    def __init__(
        self,
        session_factory: SessionFactory = get_session_context,
        plan_resolver: Optional[PlanResolver] = None,
        notifier: Optional[QuotaWarningNotifier] = None,
    ):
        self._session_factory = session_factory
        self._plan_resolver = plan_resolver or get_plan_resolver()
        self._notifier = notifier or get_quota_warning_notifier()

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_quota(self, user_id: str) -> Optional[UsageQuota]:
        async with self._session_factory() as session:
            return await UsageQuotaRepository(session).get(user_id)

    async def get_or_create_quota(self, user_id: str) -> UsageQuota:
        """
        Return the user's quota row, creating it on first use.

        Existing rows are returned unchanged. Creation is a single
        insert-if-absent, so concurrent first requests produce one row.
        """
        existing = await self.get_quota(user_id)
        if existing:
            return existing

        limit = await self._plan_resolver.resolve_plan_limit(user_id)

        async with self._session_factory() as session:
            repo = UsageQuotaRepository(session)
            created = await repo.insert_if_absent(user_id, limit, next_reset_date())
            quota = await repo.get(user_id)

        if created:
            logger.info(f"Created quota for user {user_id} (limit={limit})")

        return quota

    async def ensure_current_quota(
        self,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> UsageQuota:
        """
        Quota for the current period.

        When the stored period has ended the row is reset first, so the
        action that triggered the check counts against the new period.
        """
        now = now or utcnow()
        quota = await self.get_or_create_quota(user_id)

        if quota.is_due_for_reset(now):
            logger.info(f"Quota period ended for user {user_id}, resetting")
            quota = await self._reset(user_id, due_before=now)

        return quota

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def reset_quota(self, user_id: str) -> UsageQuota:
        """
        Start a new period: used 0, limit from the current plan, next
        reset date, warning flags cleared. Safe to call repeatedly.
        """
        return await self._reset(user_id)

    async def _reset(self, user_id: str, due_before: Optional[datetime] = None) -> UsageQuota:
        limit = await self._plan_resolver.resolve_plan_limit(user_id)
        reset_at = next_reset_date()

        async with self._session_factory() as session:
            repo = UsageQuotaRepository(session)
            updated = await repo.reset(user_id, limit, reset_at, due_before=due_before)
            if not updated and due_before is None:
                await repo.insert_if_absent(user_id, limit, reset_at)
            quota = await repo.get(user_id)

        if updated:
            logger.info(f"Reset quota for user {user_id} (limit={limit}, next reset {reset_at.isoformat()})")

        return quota

    async def increment_ai_requests(self, user_id: str, count: int = 1) -> UsageQuota:
        """
        Add `count` to the user's counter as one SQL arithmetic update.

        Raises:
            DatabaseError: if the counter could not be updated
        """
        await self.ensure_current_quota(user_id)

        async with self._session_factory() as session:
            repo = UsageQuotaRepository(session)
            updated = await repo.increment(user_id, count)
            if not updated:
                raise DatabaseError(
                    f"No quota row to increment for user {user_id}",
                    operation="increment",
                    table="usage_quotas",
                )
            quota = await repo.get(user_id)

        try:
            await self._notifier.check_and_notify(quota)
        except Exception as e:
            logger.error(f"Quota warning check failed for user {user_id}: {e}")

        return quota

    async def refresh_limit(self, user_id: str, limit: Optional[int] = None) -> Optional[UsageQuota]:
        """Overwrite the stored limit (from the current plan when not given)."""
        if limit is None:
            limit = await self._plan_resolver.resolve_plan_limit(user_id)

        async with self._session_factory() as session:
            repo = UsageQuotaRepository(session)
            await repo.set_limit(user_id, limit)
            return await repo.get(user_id)

    async def reinitialize_quota(self, user_id: str) -> UsageQuota:
        """
        Apply a plan change to the user's quota.

        Creates the row when absent; otherwise only the limit is refreshed
        and the counters of the running period are kept.
        """
        limit = await self._plan_resolver.resolve_plan_limit(user_id)

        async with self._session_factory() as session:
            repo = UsageQuotaRepository(session)
            created = await repo.insert_if_absent(user_id, limit, next_reset_date())
            if not created:
                await repo.set_limit(user_id, limit)
            quota = await repo.get(user_id)

        logger.info(f"Reinitialized quota for user {user_id} (limit={limit}, created={created})")
        return quota

    async def reset_expired_quotas(self, now: Optional[datetime] = None) -> int:
        """
        Eagerly reset every quota whose period has ended.

        Optional batch job; the lazy reset in ensure_current_quota does not
        depend on it.

        Returns:
            Number of quotas reset
        """
        now = now or utcnow()

        async with self._session_factory() as session:
            user_ids = await UsageQuotaRepository(session).get_expired_user_ids(now)

        count = 0
        for user_id in user_ids:
            try:
                await self._reset(user_id, due_before=now)
                count += 1
            except Exception as e:
                logger.error(f"Failed to reset expired quota for user {user_id}: {e}")

        logger.info(f"Reset {count} of {len(user_ids)} expired quotas")
        return count


# =============================================================================
# Singleton Instance
# =============================================================================

_quota_store_instance: Optional[QuotaStore] = None


def get_quota_store() -> QuotaStore:
    """Get or create quota store singleton."""
    global _quota_store_instance

    if _quota_store_instance is None:
        _quota_store_instance = QuotaStore()

    return _quota_store_instance
