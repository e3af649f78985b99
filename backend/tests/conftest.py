"""
Test configuration and fixtures for the AI SaaS backend.

Service tests run against a throwaway SQLite file (aiosqlite) created from
SQLModel.metadata; the email transport is always mocked.
"""

import os

# Settings are cached on first import, so test configuration goes first
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret-with-enough-length-123")
os.environ.setdefault("POLAR_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("POLAR_PRODUCT_FREE", "prod_free")
os.environ.setdefault("POLAR_PRODUCT_PRO", "prod_pro")
os.environ.setdefault("POLAR_PRODUCT_STARTUP", "prod_startup")
os.environ.setdefault("ADMIN_API_KEY", "admin-test-key")

import time
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from aisaas.infrastructure.db import models  # noqa: F401  (registers tables)
from aisaas.infrastructure.db.database import session_context_from
from aisaas.infrastructure.db.models import (
    SubscriptionModel,
    UsageQuotaModel,
    UserModel,
    WorkspaceMemberModel,
    WorkspaceModel,
)
from aisaas.infrastructure.payments.polar_service import PolarService
from aisaas.infrastructure.services.audit_logger import AuditLogger
from aisaas.infrastructure.services.plan_resolver import PlanResolver
from aisaas.infrastructure.services.quota_store import QuotaStore
from aisaas.infrastructure.services.quota_warning_notifier import QuotaWarningNotifier
from aisaas.infrastructure.services.subscription_webhook_processor import (
    SubscriptionWebhookProcessor,
)
from aisaas.infrastructure.services.usage_metering_service import UsageMeteringService


WEBHOOK_SECRET = "whsec_test_secret"
PRODUCT_PLAN_MAP = {
    "prod_free": "free",
    "prod_pro": "pro",
    "prod_startup": "startup",
}


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def session_factory(session_maker):
    """Committing session context, same contract as get_session_context."""
    return session_context_from(session_maker)


class Seeder:
    """Inserts fixture rows directly through the ORM models."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def user(
        self,
        email: str = "user@example.com",
        name: Optional[str] = "Test User",
        role: str = "member",
    ) -> str:
        async with self._session_factory() as session:
            model = UserModel(email=email, name=name, role=role)
            session.add(model)
            await session.flush()
            return model.id

    async def workspace(self, owner_id: str, slug: str = "acme", name: str = "Acme") -> str:
        async with self._session_factory() as session:
            workspace = WorkspaceModel(name=name, slug=slug, owner_id=owner_id)
            session.add(workspace)
            await session.flush()
            session.add(
                WorkspaceMemberModel(workspace_id=workspace.id, user_id=owner_id, role="owner")
            )
            return workspace.id

    async def member(self, workspace_id: str, user_id: str, role: str = "member") -> None:
        async with self._session_factory() as session:
            session.add(WorkspaceMemberModel(workspace_id=workspace_id, user_id=user_id, role=role))

    async def subscription(
        self,
        plan: str,
        status: str = "active",
        user_id: Optional[str] = None,
        workspace_id: Optional[str] = None,
        polar_id: Optional[str] = None,
    ) -> str:
        polar_id = polar_id or f"sub_{plan}_{user_id or workspace_id}"
        async with self._session_factory() as session:
            session.add(
                SubscriptionModel(
                    id=polar_id,
                    user_id=user_id,
                    workspace_id=workspace_id,
                    polar_subscription_id=polar_id,
                    polar_customer_id="cus_test",
                    status=status,
                    plan=plan,
                )
            )
        return polar_id

    async def quota(
        self,
        user_id: str,
        used: int = 0,
        limit: int = 10,
        reset_at: Optional[datetime] = None,
        **flags: bool,
    ) -> None:
        if reset_at is None:
            reset_at = datetime.now(timezone.utc) + timedelta(days=10)
        async with self._session_factory() as session:
            session.add(
                UsageQuotaModel(
                    user_id=user_id,
                    ai_requests_used=used,
                    ai_requests_limit=limit,
                    reset_at=reset_at,
                    **flags,
                )
            )

    async def count(self, model, *criteria) -> int:
        async with self._session_factory() as session:
            stmt = select(func.count()).select_from(model)
            if criteria:
                stmt = stmt.where(*criteria)
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def get(self, model, key):
        async with self._session_factory() as session:
            return await session.get(model, key, populate_existing=True)


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


# =============================================================================
# Mock Fixtures
# =============================================================================

@pytest.fixture
def mock_email_service():
    """EmailService stand-in that reports every send as delivered."""
    mock = MagicMock()
    mock.send_quota_warning = AsyncMock(return_value=True)
    mock.send_subscription_confirmation = AsyncMock(return_value=True)
    mock.send_subscription_cancelled = AsyncMock(return_value=True)
    return mock


# =============================================================================
# Service Fixtures (wired to the test database)
# =============================================================================

@pytest.fixture
def plan_resolver(session_factory):
    return PlanResolver(session_factory)


@pytest.fixture
def notifier(session_factory, mock_email_service, plan_resolver):
    return QuotaWarningNotifier(session_factory, mock_email_service, plan_resolver)


@pytest.fixture
def quota_store(session_factory, plan_resolver, notifier):
    return QuotaStore(session_factory, plan_resolver, notifier)


@pytest.fixture
def metering(session_factory, plan_resolver, quota_store):
    return UsageMeteringService(session_factory, plan_resolver, quota_store)


@pytest.fixture
def audit_logger(session_factory):
    return AuditLogger(session_factory)


@pytest.fixture
def polar_service():
    return PolarService(webhook_secret=WEBHOOK_SECRET, product_plan_map=PRODUCT_PLAN_MAP)


@pytest.fixture
def webhook_processor(session_factory, polar_service, quota_store, audit_logger, mock_email_service):
    return SubscriptionWebhookProcessor(
        session_factory,
        polar_service=polar_service,
        quota_store=quota_store,
        audit_logger=audit_logger,
        email_service=mock_email_service,
    )


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app(session_maker):
    """FastAPI application with request sessions bound to the test database."""
    from aisaas.main import app
    from aisaas.infrastructure.db.database import get_session

    async def _get_test_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_session] = _get_test_session
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async test client sharing the test's event loop."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def make_token(user_id: str, role: str = "member", expires_in: int = 3600) -> str:
    """HS256 token signed with the test secret."""
    payload = {
        "sub": user_id,
        "role": role,
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(payload, os.environ["AUTH_JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def auth_headers():
    def _headers(user_id: str, role: str = "member") -> dict:
        return {"Authorization": f"Bearer {make_token(user_id, role)}"}
    return _headers
