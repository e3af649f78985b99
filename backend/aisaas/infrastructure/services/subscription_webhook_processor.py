"""
Subscription Webhook Processor

Applies verified Polar subscription events to local subscription rows and
pushes plan changes into user quotas.

Every handler is idempotent: rows are keyed by the Polar subscription id,
and a created event for a row that already exists changes nothing.
Handler errors are logged and recorded in the webhook ledger; they never
reach the HTTP response.
"""

import logging
from typing import Awaitable, Callable, Dict, List, Optional

from aisaas.domain.plans import get_plan_features, parse_plan_name
from aisaas.domain.subscription import Subscription, SubscriptionStatus
from aisaas.domain.webhook import (
    PolarSubscriptionData,
    PolarWebhookEvent,
    WebhookEventStatus,
    WebhookEventType,
)
from aisaas.infrastructure.db.database import SessionFactory, get_session_context
from aisaas.infrastructure.db.repositories import (
    SubscriptionRepository,
    UserRepository,
    WebhookEventRepository,
    WorkspaceRepository,
)
from aisaas.infrastructure.email.email_service import EmailService, get_email_service
from aisaas.infrastructure.payments.polar_service import PolarService, get_polar_service
from aisaas.infrastructure.services.audit_logger import (
    AuditAction,
    AuditLogger,
    get_audit_logger,
)
from aisaas.infrastructure.services.quota_store import QuotaStore, get_quota_store


logger = logging.getLogger(__name__)


WEBHOOK_SOURCE = "polar"

# A handler returns None on success or a reason when it skipped the event
Handler = Callable[[PolarSubscriptionData], Awaitable[Optional[str]]]


class SubscriptionWebhookProcessor:
    """
    State machine over Polar subscription events.

    none -> active -> (active | past_due | ...) -> canceled
    """

    def __init__(
        self,
        session_factory: SessionFactory = get_session_context,
        polar_service: Optional[PolarService] = None,
        quota_store: Optional[QuotaStore] = None,
        audit_logger: Optional[AuditLogger] = None,
        email_service: Optional[EmailService] = None,
    ):
        self._session_factory = session_factory
        self._polar = polar_service or get_polar_service()
        self._quota_store = quota_store or get_quota_store()
        self._audit = audit_logger or get_audit_logger()
        self._email = email_service or get_email_service()

        self._handlers: Dict[str, Handler] = {
            WebhookEventType.SUBSCRIPTION_CREATED.value: self.handle_subscription_created,
            WebhookEventType.SUBSCRIPTION_UPDATED.value: self.handle_subscription_updated,
            WebhookEventType.SUBSCRIPTION_CANCELED.value: self.handle_subscription_canceled,
        }

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def process(self, event: PolarWebhookEvent) -> WebhookEventStatus:
        """
        Dispatch one verified event. Never raises.

        Returns:
            Ledger status recorded for the event
        """
        ledger_id = await self._record(event)

        handler = self._handlers.get(event.type)
        if handler is None:
            logger.debug(f"Ignoring Polar event type {event.type}")
            await self._mark(ledger_id, WebhookEventStatus.SUCCESS)
            return WebhookEventStatus.SUCCESS

        try:
            data = event.subscription()
            problem = await handler(data)
        except Exception as e:
            logger.error(f"Error handling Polar event {event.type}: {e}", exc_info=True)
            await self._mark(ledger_id, WebhookEventStatus.FAILED, str(e))
            return WebhookEventStatus.FAILED

        if problem:
            await self._mark(ledger_id, WebhookEventStatus.FAILED, problem)
            return WebhookEventStatus.FAILED

        await self._mark(ledger_id, WebhookEventStatus.SUCCESS)
        return WebhookEventStatus.SUCCESS

    # =========================================================================
    # Handlers
    # =========================================================================

    async def handle_subscription_created(self, data: PolarSubscriptionData) -> Optional[str]:
        """
        Insert the subscription and set up quotas.

        Aborts without writing when the product or customer is unknown. A
        redelivered event whose row already exists is acknowledged as is,
        even if later events have since changed that row.
        """
        plan = self._polar.resolve_plan(data.product_id)
        if plan is None:
            logger.error(f"subscription.created {data.id}: unknown product {data.product_id}")
            return f"Unknown product id: {data.product_id}"

        email = data.customer_email
        if not email:
            logger.error(f"subscription.created {data.id}: payload has no customer email")
            return "Missing customer email"

        async with self._session_factory() as session:
            user = await UserRepository(session).get_by_email(email)

        if user is None:
            logger.error(f"subscription.created {data.id}: no user with email {email}")
            return f"No user for customer email {email}"

        workspace_id = data.workspace_id
        if workspace_id:
            async with self._session_factory() as session:
                membership = await WorkspaceRepository(session).get_membership(workspace_id, user.id)
            if membership is None:
                logger.error(
                    f"subscription.created {data.id}: user {user.id} is not a member "
                    f"of workspace {workspace_id}"
                )
                return f"User is not a member of workspace {workspace_id}"

        subscription = Subscription(
            id=data.id,
            user_id=None if workspace_id else user.id,
            workspace_id=workspace_id,
            polar_subscription_id=data.id,
            polar_customer_id=data.resolved_customer_id or "",
            status=data.status,
            plan=plan.value,
            current_period_start=data.current_period_start,
            current_period_end=data.current_period_end,
            cancel_at_period_end=data.cancel_at_period_end,
        )

        async with self._session_factory() as session:
            saved = await SubscriptionRepository(session).create_if_absent(subscription)
            if saved is not None and workspace_id:
                await WorkspaceRepository(session).set_plan_display(
                    workspace_id, get_plan_features(plan).display_name
                )

        if saved is None:
            logger.info(f"subscription.created {data.id}: already recorded, nothing to do")
            return None

        await self._reinitialize_quotas(saved)

        await self._audit.log_subscription_change(
            user.id,
            AuditAction.SUBSCRIPTION_CREATED,
            {"plan": plan.value, "status": data.status, "subscriptionId": data.id},
            {"workspaceId": workspace_id} if workspace_id else None,
        )

        await self._email.send_subscription_confirmation(
            to=user.email,
            username=user.name or user.email,
            plan_name=get_plan_features(plan).display_name,
            next_billing_date=data.current_period_end,
        )

        logger.info(f"Subscription {data.id} created: plan={plan.value}, status={data.status}")
        return None

    async def handle_subscription_updated(self, data: PolarSubscriptionData) -> Optional[str]:
        """
        Update status, plan and billing period in place.

        An unknown product keeps the stored plan. Quotas are refreshed when
        the plan or status changed.
        """
        async with self._session_factory() as session:
            existing = await SubscriptionRepository(session).get_by_polar_subscription_id(data.id)

        if existing is None:
            logger.warning(f"subscription.updated {data.id}: subscription not found, skipping")
            return "Subscription not found"

        new_plan = self._polar.resolve_plan(data.product_id)
        if new_plan is None:
            logger.warning(
                f"subscription.updated {data.id}: unknown product {data.product_id}, "
                f"keeping plan {existing.plan}"
            )
        plan_value = new_plan.value if new_plan else existing.plan

        changed = existing.model_copy(
            update={
                "status": data.status,
                "plan": plan_value,
                "current_period_start": data.current_period_start or existing.current_period_start,
                "current_period_end": data.current_period_end or existing.current_period_end,
                "cancel_at_period_end": data.cancel_at_period_end,
            }
        )

        plan_changed = plan_value != existing.plan
        status_changed = data.status != existing.status

        async with self._session_factory() as session:
            saved = await SubscriptionRepository(session).update(changed)
            if saved is None:
                return "Subscription not found"
            if saved.workspace_id and plan_changed:
                plan = parse_plan_name(plan_value)
                if plan is not None:
                    await WorkspaceRepository(session).set_plan_display(
                        saved.workspace_id, get_plan_features(plan).display_name
                    )

        if plan_changed or status_changed:
            await self._reinitialize_quotas(saved)

        await self._audit.log_subscription_change(
            existing.user_id,
            AuditAction.SUBSCRIPTION_UPDATED,
            {"plan": plan_value, "status": data.status, "subscriptionId": data.id},
            {
                "before": {"plan": existing.plan, "status": existing.status},
                "after": {"plan": plan_value, "status": data.status},
            },
        )

        logger.info(
            f"Subscription {data.id} updated: plan {existing.plan} -> {plan_value}, "
            f"status {existing.status} -> {data.status}"
        )
        return None

    async def handle_subscription_canceled(self, data: PolarSubscriptionData) -> Optional[str]:
        """
        Mark the subscription canceled at period end; the row is kept.

        Quotas are refreshed like any other status change, so the stored
        limit follows the plan the resolver now reports.
        """
        async with self._session_factory() as session:
            existing = await SubscriptionRepository(session).get_by_polar_subscription_id(data.id)

        if existing is None:
            logger.warning(f"subscription.canceled {data.id}: subscription not found, skipping")
            return "Subscription not found"

        canceled = existing.model_copy(
            update={
                "status": SubscriptionStatus.CANCELED.value,
                "cancel_at_period_end": True,
                "current_period_end": data.current_period_end or existing.current_period_end,
            }
        )

        async with self._session_factory() as session:
            saved = await SubscriptionRepository(session).update(canceled)
            if saved is None:
                return "Subscription not found"

        await self._reinitialize_quotas(saved)

        await self._audit.log_subscription_change(
            existing.user_id,
            AuditAction.SUBSCRIPTION_CANCELED,
            {
                "plan": existing.plan,
                "status": SubscriptionStatus.CANCELED.value,
                "subscriptionId": data.id,
            },
            {"before": {"status": existing.status}},
        )

        await self._send_cancellation_email(existing, data)

        logger.info(f"Subscription {data.id} canceled")
        return None

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _reinitialize_quotas(self, subscription: Subscription) -> None:
        """Refresh the quota of the subscriber, or of every workspace member."""
        if subscription.workspace_id:
            async with self._session_factory() as session:
                user_ids: List[str] = await WorkspaceRepository(session).get_member_ids(
                    subscription.workspace_id
                )
        else:
            user_ids = [subscription.user_id] if subscription.user_id else []

        for user_id in user_ids:
            await self._quota_store.reinitialize_quota(user_id)

    async def _send_cancellation_email(
        self,
        subscription: Subscription,
        data: PolarSubscriptionData,
    ) -> None:
        recipient = data.customer_email
        username = recipient

        if subscription.user_id:
            async with self._session_factory() as session:
                user = await UserRepository(session).get_by_id(subscription.user_id)
            if user is not None:
                recipient = user.email
                username = user.name or user.email

        if not recipient:
            logger.warning(f"No recipient for cancellation email of subscription {data.id}")
            return

        plan = parse_plan_name(subscription.plan)
        plan_name = get_plan_features(plan).display_name if plan else subscription.plan

        await self._email.send_subscription_cancelled(
            to=recipient,
            username=username,
            plan_name=plan_name,
            end_date=data.current_period_end or subscription.current_period_end,
        )

    async def _record(self, event: PolarWebhookEvent) -> Optional[str]:
        try:
            async with self._session_factory() as session:
                return await WebhookEventRepository(session).record(
                    WEBHOOK_SOURCE,
                    event.type,
                    event.model_dump(mode="json"),
                )
        except Exception as e:
            logger.error(f"Failed to record webhook event {event.type} in ledger: {e}")
            return None

    async def _mark(
        self,
        ledger_id: Optional[str],
        status: WebhookEventStatus,
        error: Optional[str] = None,
    ) -> None:
        if ledger_id is None:
            return
        try:
            async with self._session_factory() as session:
                await WebhookEventRepository(session).mark(ledger_id, status, error)
        except Exception as e:
            logger.error(f"Failed to update webhook ledger entry {ledger_id}: {e}")


# =============================================================================
# Singleton Instance
# =============================================================================

_processor_instance: Optional[SubscriptionWebhookProcessor] = None


def get_subscription_webhook_processor() -> SubscriptionWebhookProcessor:
    """Get or create webhook processor singleton."""
    global _processor_instance

    if _processor_instance is None:
        _processor_instance = SubscriptionWebhookProcessor()

    return _processor_instance
