"""
Quota Warning Notifier

Sends one email per threshold (80/90/100%) per billing period.

The warning flag is claimed with a conditional update before the email goes
out, so concurrent increments cannot both send the same warning. If delivery
fails the claim is released and a later request may retry.
"""

import logging
from typing import Optional

from aisaas.domain.plans import get_plan_features
from aisaas.domain.usage import UsageQuota, usage_percentage, warning_threshold_for
from aisaas.infrastructure.db.database import SessionFactory, get_session_context
from aisaas.infrastructure.db.repositories import UsageQuotaRepository, UserRepository
from aisaas.infrastructure.email.email_service import EmailService, get_email_service
from aisaas.infrastructure.services.plan_resolver import PlanResolver, get_plan_resolver


logger = logging.getLogger(__name__)


class QuotaWarningNotifier:
    """Best-effort usage warnings. Never raises."""

    def __init__(
        self,
        session_factory: SessionFactory = get_session_context,
        email_service: Optional[EmailService] = None,
        plan_resolver: Optional[PlanResolver] = None,
    ):
        self._session_factory = session_factory
        self._email_service = email_service or get_email_service()
        self._plan_resolver = plan_resolver or get_plan_resolver()

    async def check_and_notify(self, quota: UsageQuota) -> Optional[int]:
        """
        Send the warning due for a freshly incremented quota, if any.

        Returns:
            The threshold that was sent, or None
        """
        if quota.is_unlimited:
            return None

        percentage = usage_percentage(quota.ai_requests_used, quota.ai_requests_limit)
        threshold = warning_threshold_for(percentage, quota.warnings_sent())
        if threshold is None:
            return None

        user_id = quota.user_id
        claimed = False

        try:
            async with self._session_factory() as session:
                user = await UserRepository(session).get_by_id(user_id)

            if user is None:
                logger.warning(f"Cannot send {threshold}% warning: user {user_id} not found")
                return None

            async with self._session_factory() as session:
                claimed = await UsageQuotaRepository(session).claim_warning(user_id, threshold)

            if not claimed:
                # Another request already sent this warning
                return None

            plan = await self._plan_resolver.resolve_effective_plan(user_id)
            sent = await self._email_service.send_quota_warning(
                to=user.email,
                username=user.name or user.email,
                usage_percentage=percentage,
                current_usage=quota.ai_requests_used,
                limit=quota.ai_requests_limit,
                plan_name=get_plan_features(plan).display_name,
                reset_at=quota.reset_at,
            )

            if not sent:
                await self._release(user_id, threshold)
                return None

            logger.info(f"Sent {threshold}% quota warning to user {user_id}")
            return threshold

        except Exception as e:
            logger.error(f"Failed to send {threshold}% quota warning to user {user_id}: {e}")
            if claimed:
                await self._release(user_id, threshold)
            return None

    async def _release(self, user_id: str, threshold: int) -> None:
        try:
            async with self._session_factory() as session:
                await UsageQuotaRepository(session).release_warning(user_id, threshold)
        except Exception as e:
            logger.error(f"Failed to release {threshold}% warning claim for user {user_id}: {e}")


# =============================================================================
# Singleton Instance
# =============================================================================

_notifier_instance: Optional[QuotaWarningNotifier] = None


def get_quota_warning_notifier() -> QuotaWarningNotifier:
    """Get or create quota warning notifier singleton."""
    global _notifier_instance

    if _notifier_instance is None:
        _notifier_instance = QuotaWarningNotifier()

    return _notifier_instance
