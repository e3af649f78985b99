"""
Integration tests for PlanResolver: personal and workspace subscriptions,
highest plan wins, fail closed to free.
"""

from contextlib import asynccontextmanager

import pytest

from aisaas.domain.plans import PlanName
from aisaas.infrastructure.services.plan_resolver import PlanResolver


@asynccontextmanager
async def _broken_session():
    raise RuntimeError("database unavailable")
    yield  # pragma: no cover


@pytest.fixture
def broken_resolver():
    return PlanResolver(_broken_session)


class TestResolveEffectivePlan:
    """Tests for plan precedence."""

    @pytest.mark.asyncio
    async def test_no_subscriptions_is_free(self, plan_resolver, seed):
        user_id = await seed.user()
        assert await plan_resolver.resolve_effective_plan(user_id) == PlanName.FREE

    @pytest.mark.asyncio
    async def test_personal_subscription(self, plan_resolver, seed):
        user_id = await seed.user()
        await seed.subscription("pro", user_id=user_id)

        assert await plan_resolver.resolve_effective_plan(user_id) == PlanName.PRO

    @pytest.mark.asyncio
    async def test_workspace_plan_beats_personal_free(self, plan_resolver, seed):
        user_id = await seed.user()
        owner = await seed.user("owner@example.com")
        workspace_id = await seed.workspace(owner)
        await seed.member(workspace_id, user_id)
        await seed.subscription("free", user_id=user_id)
        await seed.subscription("startup", workspace_id=workspace_id)

        assert await plan_resolver.resolve_effective_plan(user_id) == PlanName.STARTUP

    @pytest.mark.asyncio
    async def test_personal_plan_beats_lower_workspace_plan(self, plan_resolver, seed):
        user_id = await seed.user()
        workspace_id = await seed.workspace(user_id)
        await seed.subscription("pro", user_id=user_id)
        await seed.subscription("free", workspace_id=workspace_id)

        assert await plan_resolver.resolve_effective_plan(user_id) == PlanName.PRO

    @pytest.mark.asyncio
    async def test_inactive_subscriptions_ignored(self, plan_resolver, seed):
        user_id = await seed.user()
        await seed.subscription("startup", status="canceled", user_id=user_id)
        await seed.subscription("pro", status="past_due", user_id=user_id, polar_id="sub_2")

        assert await plan_resolver.resolve_effective_plan(user_id) == PlanName.FREE

    @pytest.mark.asyncio
    async def test_unknown_plan_string_ignored(self, plan_resolver, seed):
        user_id = await seed.user()
        await seed.subscription("enterprise", user_id=user_id)

        assert await plan_resolver.resolve_effective_plan(user_id) == PlanName.FREE

    @pytest.mark.asyncio
    async def test_storage_error_falls_back_to_free(self, broken_resolver):
        assert await broken_resolver.resolve_effective_plan("user-1") == PlanName.FREE
        assert await broken_resolver.resolve_plan_limit("user-1") == 10

    @pytest.mark.asyncio
    async def test_workspace_plan(self, plan_resolver, seed):
        owner = await seed.user()
        workspace_id = await seed.workspace(owner)
        assert await plan_resolver.resolve_workspace_plan(workspace_id) == PlanName.FREE

        await seed.subscription("pro", workspace_id=workspace_id)
        assert await plan_resolver.resolve_workspace_plan(workspace_id) == PlanName.PRO


class TestFeatureChecks:
    """Tests for model and feature gates."""

    @pytest.mark.asyncio
    async def test_allowed_models(self, plan_resolver, seed):
        user_id = await seed.user()
        assert await plan_resolver.resolve_allowed_models(user_id) == ["gpt-3.5-turbo"]

        await seed.subscription("startup", user_id=user_id)
        assert await plan_resolver.resolve_allowed_models(user_id) == ["*"]
        assert await plan_resolver.user_can_use_model(user_id, "brand-new-model")

    @pytest.mark.asyncio
    async def test_free_user_model_gate(self, plan_resolver, seed):
        user_id = await seed.user()
        assert await plan_resolver.user_can_use_model(user_id, "gpt-3.5-turbo")
        assert not await plan_resolver.user_can_use_model(user_id, "gpt-4")

    @pytest.mark.asyncio
    async def test_feature_value_shapes(self, plan_resolver, seed):
        user_id = await seed.user()

        assert await plan_resolver.user_can_use_feature(user_id, "priority_support") is False
        assert await plan_resolver.user_can_use_feature(user_id, "ai_requests") is True
        assert await plan_resolver.user_can_use_feature(user_id, "models") is True

    @pytest.mark.asyncio
    async def test_unknown_feature_denied(self, plan_resolver, seed):
        user_id = await seed.user()
        assert await plan_resolver.user_can_use_feature(user_id, "teleportation") is False
        assert await plan_resolver.user_can_use_feature(user_id, "display_name") is False

    @pytest.mark.asyncio
    async def test_unlimited_numeric_feature_allowed(self, plan_resolver, seed):
        user_id = await seed.user()
        await seed.subscription("startup", user_id=user_id)
        assert await plan_resolver.user_can_use_feature(user_id, "storage_mb") is True
        assert await plan_resolver.has_unlimited_ai_requests(user_id) is True

    @pytest.mark.asyncio
    async def test_api_key_allowance(self, plan_resolver, seed):
        user_id = await seed.user()
        assert await plan_resolver.can_create_api_key(user_id, 0) is True
        assert await plan_resolver.can_create_api_key(user_id, 1) is False

        await seed.subscription("startup", user_id=user_id)
        assert await plan_resolver.can_create_api_key(user_id, 500) is True

    @pytest.mark.asyncio
    async def test_checks_fail_closed(self, broken_resolver):
        assert await broken_resolver.user_can_use_model("user-1", "gpt-4") is False
        assert await broken_resolver.user_can_use_feature("user-1", "priority_support") is False
        assert await broken_resolver.resolve_allowed_models("user-1") == ["gpt-3.5-turbo"]
