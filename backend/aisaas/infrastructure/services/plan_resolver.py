"""
Plan Resolver

Maps a user to an effective plan by looking at the user's personal
subscription and the subscriptions of every workspace they belong to.
The most generous plan wins as a whole bundle; features are not merged.

All reads fail closed: on any storage error the user gets the free plan.
"""

import logging
from typing import List, Optional

from aisaas.domain.plans import (
    FREE_TIER_MODELS,
    UNLIMITED,
    PlanFeatures,
    PlanName,
    allows_model,
    get_plan_features,
    highest_plan,
    parse_plan_name,
)
from aisaas.infrastructure.db.database import SessionFactory, get_session_context
from aisaas.infrastructure.db.repositories import (
    SubscriptionRepository,
    WorkspaceRepository,
)


logger = logging.getLogger(__name__)


class PlanResolver:
    """
    Read-only entitlement resolution.

    Args:
        session_factory: Committing session context (defaults to the app database)
    """

    def __init__(self, session_factory: SessionFactory = get_session_context):
        self._session_factory = session_factory

    # =========================================================================
    # Plan resolution
    # =========================================================================

    async def resolve_effective_plan(self, user_id: str) -> PlanName:
        """
        Effective plan for a user.

        Unknown plan strings are dropped before the comparison; no
        subscriptions at all means free.
        """
        try:
            async with self._session_factory() as session:
                subscriptions = SubscriptionRepository(session)
                workspaces = WorkspaceRepository(session)

                stored_plans: List[str] = []

                personal = await subscriptions.get_active_personal(user_id)
                if personal:
                    stored_plans.append(personal.plan)

                workspace_ids = await workspaces.get_workspace_ids_for_user(user_id)
                for subscription in await subscriptions.get_active_for_workspaces(workspace_ids):
                    stored_plans.append(subscription.plan)

        except Exception as e:
            logger.error(f"Failed to resolve plan for user {user_id}, falling back to free: {e}")
            return PlanName.FREE

        plans = {p for p in (parse_plan_name(s) for s in stored_plans) if p is not None}
        return highest_plan(plans)

    async def resolve_workspace_plan(self, workspace_id: str) -> PlanName:
        """Plan of a workspace from its active workspace-scoped subscriptions."""
        try:
            async with self._session_factory() as session:
                subscriptions = await SubscriptionRepository(session).get_active_for_workspaces(
                    [workspace_id]
                )
        except Exception as e:
            logger.error(f"Failed to resolve plan for workspace {workspace_id}: {e}")
            return PlanName.FREE

        plans = {p for p in (parse_plan_name(s.plan) for s in subscriptions) if p is not None}
        return highest_plan(plans)

    async def resolve_plan_features(self, user_id: str) -> PlanFeatures:
        plan = await self.resolve_effective_plan(user_id)
        return get_plan_features(plan)

    async def resolve_plan_limit(self, user_id: str) -> int:
        """Monthly AI request limit for the user (-1 for unlimited)."""
        features = await self.resolve_plan_features(user_id)
        return features.ai_requests

    async def has_unlimited_ai_requests(self, user_id: str) -> bool:
        return await self.resolve_plan_limit(user_id) == UNLIMITED

    # =========================================================================
    # Feature checks
    # =========================================================================

    async def resolve_allowed_models(self, user_id: str) -> List[str]:
        """Model identifiers the user may call; free-tier models on failure."""
        try:
            features = await self.resolve_plan_features(user_id)
            return list(features.models)
        except Exception as e:
            logger.error(f"Failed to resolve allowed models for user {user_id}: {e}")
            return list(FREE_TIER_MODELS)

    async def user_can_use_model(self, user_id: str, model_id: str) -> bool:
        try:
            features = await self.resolve_plan_features(user_id)
            return allows_model(features, model_id)
        except Exception as e:
            logger.error(f"Failed to check model access for user {user_id}: {e}")
            return model_id in FREE_TIER_MODELS

    async def user_can_use_feature(self, user_id: str, feature_key: str) -> bool:
        """
        Whether a feature of the user's plan is enabled.

        Numbers count when unlimited or positive, lists when non-empty,
        booleans are taken as-is. Unknown keys and any other value type are
        denied.
        """
        try:
            features = await self.resolve_plan_features(user_id)
            value = features.model_dump().get(feature_key)

            # bool before int: bool is an int subclass
            if isinstance(value, bool):
                return value
            if isinstance(value, (int, float)):
                return value == UNLIMITED or value > 0
            if isinstance(value, (list, tuple)):
                return len(value) > 0

            logger.warning(f"Feature '{feature_key}' has no boolean reading, denying")
            return False

        except Exception as e:
            logger.error(f"Failed to check feature '{feature_key}' for user {user_id}: {e}")
            return False

    async def can_create_api_key(self, user_id: str, current_count: int) -> bool:
        """Whether the user may create one more API key."""
        try:
            features = await self.resolve_plan_features(user_id)
        except Exception as e:
            logger.error(f"Failed to check API key allowance for user {user_id}: {e}")
            return False

        if features.api_keys == UNLIMITED:
            return True
        return current_count < features.api_keys


# =============================================================================
# Singleton Instance
# =============================================================================

_plan_resolver_instance: Optional[PlanResolver] = None


def get_plan_resolver() -> PlanResolver:
    """Get or create plan resolver singleton."""
    global _plan_resolver_instance

    if _plan_resolver_instance is None:
        _plan_resolver_instance = PlanResolver()

    return _plan_resolver_instance
