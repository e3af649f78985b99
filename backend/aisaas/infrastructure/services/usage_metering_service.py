"""
Usage Metering Service

Check-then-log-then-increment for every metered AI request, plus the
usage reads behind the billing dashboard.
"""

import logging
from collections import defaultdict
from datetime import timedelta
from typing import Any, Dict, Optional, Union

from aisaas.domain.plans import UNLIMITED, get_plan_features
from aisaas.domain.usage import (
    QuotaStatus,
    ResourceType,
    TrackResult,
    UsageLogEntry,
    UsageMetadata,
    UsageStats,
    WorkspaceUsage,
    month_start,
    next_reset_date,
    usage_percentage,
    utcnow,
)
from aisaas.infrastructure.db.database import SessionFactory, get_session_context
from aisaas.infrastructure.db.repositories import UsageLogRepository, WorkspaceRepository
from aisaas.infrastructure.services.plan_resolver import PlanResolver, get_plan_resolver
from aisaas.infrastructure.services.quota_store import QuotaStore, get_quota_store


logger = logging.getLogger(__name__)


NEAR_LIMIT_PERCENTAGE = 80
RECENT_LOG_COUNT = 10


class UsageMeteringService:
    """
    Metering entry point for callers of metered actions.

    Args:
        session_factory: Committing session context
        plan_resolver: Entitlement source
        quota_store: Counter storage
    """

    def __init__(
        self,
        session_factory: SessionFactory = get_session_context,
        plan_resolver: Optional[PlanResolver] = None,
        quota_store: Optional[QuotaStore] = None,
    ):
        self._session_factory = session_factory
        self._plan_resolver = plan_resolver or get_plan_resolver()
        self._quota_store = quota_store or get_quota_store()

    # =========================================================================
    # Metering
    # =========================================================================

    async def log_usage(
        self,
        user_id: str,
        resource_type: ResourceType,
        quantity: int = 1,
        resource_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[UsageLogEntry]:
        """Append a usage log entry. Failures are logged, never raised."""
        try:
            async with self._session_factory() as session:
                return await UsageLogRepository(session).append(
                    user_id=user_id,
                    resource_type=resource_type.value,
                    quantity=quantity,
                    resource_id=resource_id,
                    metadata=metadata,
                )
        except Exception as e:
            logger.error(f"Failed to log {resource_type.value} usage for user {user_id}: {e}")
            return None

    async def check_ai_request_quota(self, user_id: str) -> QuotaStatus:
        """
        Current quota status for a user.

        Unlimited plans are reported without touching the quota row.
        """
        limit = await self._plan_resolver.resolve_plan_limit(user_id)
        if limit == UNLIMITED:
            return QuotaStatus.unlimited_status()

        quota = await self._quota_store.ensure_current_quota(user_id)

        if quota.is_unlimited:
            # Row created while the user was on an unlimited plan
            logger.info(f"Refreshing stale unlimited quota for user {user_id} (limit={limit})")
            quota = await self._quota_store.refresh_limit(user_id, limit)

        return QuotaStatus.from_quota(quota)

    async def track_and_check_ai_request(
        self,
        user_id: str,
        metadata: Optional[Union[UsageMetadata, Dict[str, Any]]] = None,
    ) -> TrackResult:
        """
        Gate and count one AI request.

        A denied request is returned without logging or counting. An
        allowed one is logged (best effort) and then counted; increment
        failures propagate. The returned quota is the pre-increment status.
        """
        status = await self.check_ai_request_quota(user_id)

        if status.unlimited:
            return TrackResult(allowed=True, quota=status)

        if not status.allowed:
            logger.info(f"AI request denied for user {user_id}: {status.used}/{status.limit}")
            return TrackResult(allowed=False, quota=status)

        if isinstance(metadata, UsageMetadata):
            metadata = metadata.model_dump(exclude_none=True)

        await self.log_usage(
            user_id,
            ResourceType.AI_REQUEST,
            quantity=1,
            resource_id=(metadata or {}).get("model"),
            metadata=metadata,
        )

        await self._quota_store.increment_ai_requests(user_id, 1)

        return TrackResult(allowed=True, quota=status)

    # =========================================================================
    # Usage reads
    # =========================================================================

    async def get_usage_percentage(self, user_id: str) -> int:
        status = await self.check_ai_request_quota(user_id)
        if status.unlimited:
            return 0
        return usage_percentage(status.used, status.limit)

    async def is_near_quota_limit(self, user_id: str) -> bool:
        return await self.get_usage_percentage(user_id) >= NEAR_LIMIT_PERCENTAGE

    async def get_user_usage_stats(self, user_id: str, days: int = 30) -> UsageStats:
        """Quota status plus per-type and per-day totals over the last `days` days."""
        since = utcnow() - timedelta(days=days)

        async with self._session_factory() as session:
            logs = await UsageLogRepository(session).list_since(user_id, since)

        quota = await self.check_ai_request_quota(user_id)

        by_type: Dict[str, int] = defaultdict(int)
        by_day: Dict[str, int] = defaultdict(int)
        for log in logs:
            quantity = log.quantity or 1
            by_type[log.resource_type] += quantity
            by_day[log.timestamp.date().isoformat()] += quantity

        return UsageStats(
            quota=quota,
            total_requests=sum(by_type.values()),
            by_type=dict(by_type),
            by_day=dict(by_day),
            recent_logs=logs[:RECENT_LOG_COUNT],
        )

    async def get_workspace_usage(self, workspace_id: str) -> WorkspaceUsage:
        """AI requests logged this month by all workspace members, against the workspace plan."""
        now = utcnow()

        async with self._session_factory() as session:
            member_ids = await WorkspaceRepository(session).get_member_ids(workspace_id)
            total = await UsageLogRepository(session).sum_quantity_for_users(
                member_ids,
                since=month_start(now),
            )

        plan = await self._plan_resolver.resolve_workspace_plan(workspace_id)
        limit = get_plan_features(plan).ai_requests

        if limit == UNLIMITED:
            remaining = UNLIMITED
            percentage = 0.0
        elif limit <= 0:
            remaining = 0
            percentage = 100.0
        else:
            remaining = max(0, limit - total)
            percentage = total / limit * 100

        return WorkspaceUsage(
            workspace_id=workspace_id,
            total_ai_requests=total,
            ai_requests_limit=limit,
            remaining_requests=remaining,
            usage_percentage=percentage,
            reset_at=next_reset_date(now),
            member_count=len(member_ids),
        )

    async def has_workspace_reached_limit(self, workspace_id: str) -> bool:
        """Whether workspace members used up the workspace plan; True on errors."""
        try:
            usage = await self.get_workspace_usage(workspace_id)
        except Exception as e:
            logger.error(f"Failed to check workspace limit for {workspace_id}: {e}")
            return True

        if usage.ai_requests_limit == UNLIMITED:
            return False
        return usage.total_ai_requests >= usage.ai_requests_limit


# =============================================================================
# Singleton Instance
# =============================================================================

_metering_service_instance: Optional[UsageMeteringService] = None


def get_usage_metering_service() -> UsageMeteringService:
    """Get or create usage metering service singleton."""
    global _metering_service_instance

    if _metering_service_instance is None:
        _metering_service_instance = UsageMeteringService()

    return _metering_service_instance
