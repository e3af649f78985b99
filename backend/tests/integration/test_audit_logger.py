"""
Integration tests for AuditLogger.
"""

from contextlib import asynccontextmanager

import pytest

from aisaas.infrastructure.services.audit_logger import AuditAction, AuditLogger


class TestAuditLogger:

    @pytest.mark.asyncio
    async def test_subscription_change_recorded(self, audit_logger, seed):
        user_id = await seed.user()

        await audit_logger.log_subscription_change(
            user_id,
            AuditAction.SUBSCRIPTION_UPDATED,
            {"plan": "pro", "status": "active", "subscriptionId": "sub_1"},
            {"before": {"plan": "free"}},
        )

        entries = await audit_logger.get_user_audit_logs(user_id)
        assert len(entries) == 1
        assert entries[0].action == "subscription.updated"
        assert entries[0].resource_id == "sub_1"
        assert entries[0].changes["before"] == {"plan": "free"}
        assert entries[0].changes["plan"] == "pro"

    @pytest.mark.asyncio
    async def test_filters(self, audit_logger, seed):
        first = await seed.user("a@example.com")
        second = await seed.user("b@example.com")
        await audit_logger.log_admin_access(first, "audit-logs")
        await audit_logger.log_subscription_change(
            second, AuditAction.SUBSCRIPTION_CANCELED, {"subscriptionId": "sub_2"}
        )

        admin_entries = await audit_logger.get_all_audit_logs(action="admin.access")
        assert [e.user_id for e in admin_entries] == [first]

        everything = await audit_logger.get_all_audit_logs()
        assert len(everything) == 2

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self):
        @asynccontextmanager
        async def broken_session():
            raise RuntimeError("database unavailable")
            yield  # pragma: no cover

        logger = AuditLogger(broken_session)

        await logger.log_admin_access("user-1", "quotas.reset-expired")
