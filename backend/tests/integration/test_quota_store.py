"""
Integration tests for QuotaStore against a real (SQLite) database.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from aisaas.domain.usage import next_reset_date
from aisaas.infrastructure.db.models import UsageQuotaModel
from aisaas.infrastructure.db.repositories import UsageQuotaRepository
from aisaas.infrastructure.exceptions import DatabaseError


class TestGetOrCreateQuota:
    """Tests for first-use quota creation."""

    @pytest.mark.asyncio
    async def test_new_quota_starts_at_zero(self, quota_store, seed):
        user_id = await seed.user()

        quota = await quota_store.get_or_create_quota(user_id)

        assert quota.ai_requests_used == 0
        assert quota.ai_requests_limit == 10
        assert quota.reset_at == next_reset_date()
        assert quota.warnings_sent() == {80: False, 90: False, 100: False}

    @pytest.mark.asyncio
    async def test_limit_comes_from_effective_plan(self, quota_store, seed):
        user_id = await seed.user()
        await seed.subscription("pro", user_id=user_id)

        quota = await quota_store.get_or_create_quota(user_id)

        assert quota.ai_requests_limit == 1000

    @pytest.mark.asyncio
    async def test_existing_quota_returned_unchanged(self, quota_store, seed):
        user_id = await seed.user()
        await seed.quota(user_id, used=4, limit=10)

        quota = await quota_store.get_or_create_quota(user_id)

        assert quota.ai_requests_used == 4

    @pytest.mark.asyncio
    async def test_concurrent_first_use_creates_one_row(self, quota_store, seed):
        user_id = await seed.user()

        quotas = await asyncio.gather(
            *(quota_store.get_or_create_quota(user_id) for _ in range(5))
        )

        assert all(q.user_id == user_id for q in quotas)
        assert await seed.count(UsageQuotaModel) == 1


class TestResetQuota:
    """Tests for explicit and lazy monthly resets."""

    @pytest.mark.asyncio
    async def test_reset_clears_counters_and_flags(self, quota_store, seed):
        user_id = await seed.user()
        await seed.quota(user_id, used=9, limit=10, warning_80_sent=True, warning_90_sent=True)

        quota = await quota_store.reset_quota(user_id)

        assert quota.ai_requests_used == 0
        assert quota.ai_requests_limit == 10
        assert quota.reset_at == next_reset_date()
        assert not any(quota.warnings_sent().values())

    @pytest.mark.asyncio
    async def test_reset_is_idempotent(self, quota_store, seed):
        user_id = await seed.user()
        await seed.quota(user_id, used=3)

        first = await quota_store.reset_quota(user_id)
        second = await quota_store.reset_quota(user_id)

        assert first.ai_requests_used == second.ai_requests_used == 0
        assert first.reset_at == second.reset_at
        assert first.ai_requests_limit == second.ai_requests_limit

    @pytest.mark.asyncio
    async def test_reset_creates_missing_row(self, quota_store, seed):
        user_id = await seed.user()

        quota = await quota_store.reset_quota(user_id)

        assert quota.ai_requests_used == 0

    @pytest.mark.asyncio
    async def test_lazy_reset_when_period_ended(self, quota_store, seed):
        user_id = await seed.user()
        past = datetime.now(timezone.utc) - timedelta(days=1)
        await seed.quota(user_id, used=10, limit=10, reset_at=past, warning_100_sent=True)

        quota = await quota_store.ensure_current_quota(user_id)

        assert quota.ai_requests_used == 0
        assert quota.reset_at > datetime.now(timezone.utc)
        assert quota.warning_100_sent is False

    @pytest.mark.asyncio
    async def test_no_reset_before_period_end(self, quota_store, seed):
        user_id = await seed.user()
        await seed.quota(user_id, used=6)

        quota = await quota_store.ensure_current_quota(user_id)

        assert quota.ai_requests_used == 6

    @pytest.mark.asyncio
    async def test_reset_expired_quotas_batch(self, quota_store, seed):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        expired_a = await seed.user("a@example.com")
        expired_b = await seed.user("b@example.com")
        current = await seed.user("c@example.com")
        await seed.quota(expired_a, used=5, reset_at=past)
        await seed.quota(expired_b, used=7, reset_at=past)
        await seed.quota(current, used=2)

        count = await quota_store.reset_expired_quotas()

        assert count == 2
        assert (await quota_store.get_quota(expired_a)).ai_requests_used == 0
        assert (await quota_store.get_quota(current)).ai_requests_used == 2


class TestIncrement:
    """Tests for atomic counter increments."""

    @pytest.mark.asyncio
    async def test_increment_adds_count(self, quota_store, seed):
        user_id = await seed.user()
        await seed.quota(user_id, used=2)

        quota = await quota_store.increment_ai_requests(user_id, 3)

        assert quota.ai_requests_used == 5

    @pytest.mark.asyncio
    async def test_concurrent_increments_are_not_lost(self, quota_store, seed):
        user_id = await seed.user()
        await seed.quota(user_id, used=0, limit=1000)

        await asyncio.gather(*(quota_store.increment_ai_requests(user_id) for _ in range(10)))

        assert (await quota_store.get_quota(user_id)).ai_requests_used == 10

    @pytest.mark.asyncio
    async def test_increment_failure_raises(self, quota_store, seed):
        user_id = await seed.user()
        await seed.quota(user_id)

        with patch.object(UsageQuotaRepository, "increment", AsyncMock(return_value=0)):
            with pytest.raises(DatabaseError):
                await quota_store.increment_ai_requests(user_id)

    @pytest.mark.asyncio
    async def test_notifier_errors_do_not_fail_increment(self, quota_store, notifier, seed):
        user_id = await seed.user()
        await seed.quota(user_id, used=7)

        failing = AsyncMock(side_effect=RuntimeError("mail down"))
        with patch.object(notifier, "check_and_notify", failing):
            quota = await quota_store.increment_ai_requests(user_id)

        assert quota.ai_requests_used == 8


class TestReinitializeQuota:
    """Tests for applying plan changes to quotas."""

    @pytest.mark.asyncio
    async def test_creates_row_when_absent(self, quota_store, seed):
        user_id = await seed.user()
        await seed.subscription("pro", user_id=user_id)

        quota = await quota_store.reinitialize_quota(user_id)

        assert quota.ai_requests_used == 0
        assert quota.ai_requests_limit == 1000

    @pytest.mark.asyncio
    async def test_keeps_usage_and_refreshes_limit(self, quota_store, seed):
        user_id = await seed.user()
        await seed.quota(user_id, used=8, limit=10)
        await seed.subscription("startup", user_id=user_id)

        quota = await quota_store.reinitialize_quota(user_id)

        assert quota.ai_requests_used == 8
        assert quota.ai_requests_limit == -1
