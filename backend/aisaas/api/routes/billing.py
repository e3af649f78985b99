"""
Billing Routes

Plan catalogue, the caller's effective plan, and quota/usage reads for
the dashboard.
"""

import logging

from fastapi import APIRouter, Depends, Query

from aisaas.api.dependencies import get_current_user
from aisaas.domain.identity import AuthenticatedUser
from aisaas.domain.plans import PlanInfo, get_all_plans, get_plan_features, get_upgrade_plan
from aisaas.domain.subscription import AllowedModelsResponse, EffectivePlanResponse
from aisaas.domain.usage import QuotaResponse, UsageStats
from aisaas.infrastructure.services.plan_resolver import get_plan_resolver
from aisaas.infrastructure.services.usage_metering_service import (
    get_usage_metering_service,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["billing"])


@router.get("/billing/plans", response_model=list[PlanInfo])
async def list_plans():
    """All plans, cheapest first."""
    return get_all_plans()


@router.get("/billing/plan", response_model=EffectivePlanResponse)
async def get_effective_plan(
    user: AuthenticatedUser = Depends(get_current_user),
):
    """The caller's effective plan across personal and workspace subscriptions."""
    plan = await get_plan_resolver().resolve_effective_plan(user.user_id)
    return EffectivePlanResponse(
        plan=plan,
        features=get_plan_features(plan),
        upgrade_to=get_upgrade_plan(plan),
    )


@router.get("/billing/usage", response_model=QuotaResponse)
async def get_usage(
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Current AI request quota of the caller."""
    quota = await get_usage_metering_service().check_ai_request_quota(user.user_id)
    return QuotaResponse(quota=quota)


@router.get("/billing/usage/stats", response_model=UsageStats)
async def get_usage_stats(
    days: int = Query(default=30, ge=1, le=365),
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Usage totals by type and by day over the last `days` days."""
    return await get_usage_metering_service().get_user_usage_stats(user.user_id, days=days)


@router.get("/models", response_model=AllowedModelsResponse)
async def get_allowed_models(
    user: AuthenticatedUser = Depends(get_current_user),
):
    resolver = get_plan_resolver()
    plan = await resolver.resolve_effective_plan(user.user_id)
    models = await resolver.resolve_allowed_models(user.user_id)
    return AllowedModelsResponse(plan=plan, models=models)
