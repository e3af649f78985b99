"""
Subscription Repository

Data access layer for subscription persistence.
Rows are keyed by the Polar subscription id. Creation is insert-only so a
redelivered created event cannot overwrite later state.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aisaas.domain.subscription import Subscription, SubscriptionStatus
from aisaas.infrastructure.db.models.base import utc_now
from aisaas.infrastructure.db.models.subscription import SubscriptionModel
from aisaas.infrastructure.db.repositories.base_repository import BaseRepository


logger = logging.getLogger(__name__)


class SubscriptionRepository(BaseRepository[SubscriptionModel]):
    """
    Repository for subscription data access.

    Implements lookups and writes with domain model mapping.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(SubscriptionModel, session)

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_polar_subscription_id(
        self,
        polar_subscription_id: str,
    ) -> Optional[Subscription]:
        """
        Get subscription by Polar subscription ID.

        Args:
            polar_subscription_id: Provider subscription ID

        Returns:
            Subscription domain model or None
        """
        statement = select(SubscriptionModel).where(
            SubscriptionModel.polar_subscription_id == polar_subscription_id
        )
        result = await self._session.execute(statement)
        model = result.scalar_one_or_none()

        if model:
            return self._to_domain(model)

        return None

    async def get_active_personal(self, user_id: str) -> Optional[Subscription]:
        """Most recent active subscription owned by the user without workspace scope."""
        statement = (
            select(SubscriptionModel)
            .where(
                SubscriptionModel.user_id == user_id,
                SubscriptionModel.workspace_id.is_(None),
                SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
            )
            .order_by(SubscriptionModel.created_at.desc())
        )
        result = await self._session.execute(statement)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    async def get_active_for_workspaces(
        self,
        workspace_ids: Sequence[str],
    ) -> List[Subscription]:
        """Active workspace-scoped subscriptions for any of the given workspaces."""
        if not workspace_ids:
            return []

        statement = select(SubscriptionModel).where(
            SubscriptionModel.workspace_id.in_(list(workspace_ids)),
            SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
        )
        result = await self._session.execute(statement)
        return [self._to_domain(m) for m in result.scalars().all()]

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def create_if_absent(self, subscription: Subscription) -> Optional[Subscription]:
        """
        Insert a subscription unless its polar_subscription_id already exists.

        An existing row is never touched here; later events own its
        status, plan and billing period.

        Args:
            subscription: Subscription domain model

        Returns:
            The inserted subscription, or None when the row already existed
        """
        now = utc_now()

        values = {
            "id": subscription.id,
            "user_id": subscription.user_id,
            "workspace_id": subscription.workspace_id,
            "polar_subscription_id": subscription.polar_subscription_id,
            "polar_customer_id": subscription.polar_customer_id,
            "status": subscription.status,
            "plan": subscription.plan,
            "current_period_start": subscription.current_period_start,
            "current_period_end": subscription.current_period_end,
            "cancel_at_period_end": subscription.cancel_at_period_end,
            "created_at": now,
            "updated_at": now,
        }

        stmt = self._insert().values(**values)
        stmt = stmt.on_conflict_do_nothing()

        result = await self._session.execute(stmt)
        await self._session.flush()

        if result.rowcount != 1:
            return None

        return await self.get_by_polar_subscription_id(subscription.polar_subscription_id)

    async def update(self, subscription: Subscription) -> Optional[Subscription]:
        """
        Update mutable fields of an existing subscription in place.

        Returns:
            Updated subscription, or None when no row has that Polar id
        """
        statement = select(SubscriptionModel).where(
            SubscriptionModel.polar_subscription_id == subscription.polar_subscription_id
        )
        result = await self._session.execute(statement)
        model = result.scalar_one_or_none()

        if not model:
            return None

        model.status = subscription.status
        model.plan = subscription.plan
        model.current_period_start = subscription.current_period_start
        model.current_period_end = subscription.current_period_end
        model.cancel_at_period_end = subscription.cancel_at_period_end
        model.updated_at = utc_now()

        await self._session.flush()
        await self._session.refresh(model)

        logger.info(f"Updated subscription {subscription.polar_subscription_id}")
        return self._to_domain(model)

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, model: SubscriptionModel) -> Subscription:
        """Convert database model to domain entity."""
        return Subscription(
            id=model.id,
            user_id=model.user_id,
            workspace_id=model.workspace_id,
            polar_subscription_id=model.polar_subscription_id,
            polar_customer_id=model.polar_customer_id,
            status=model.status,
            plan=model.plan,
            current_period_start=model.current_period_start,
            current_period_end=model.current_period_end,
            cancel_at_period_end=model.cancel_at_period_end or False,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
