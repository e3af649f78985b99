"""
Dependency Injection Providers for the AI SaaS backend

Provides FastAPI dependencies for database sessions and repositories.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from aisaas.infrastructure.db.database import get_session
from aisaas.infrastructure.db.repositories import (
    WorkspaceRepository,
    WebhookEventRepository,
)


# Type alias for session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_workspace_repository(
    session: SessionDep,
) -> AsyncGenerator[WorkspaceRepository, None]:
    """
    Dependency provider for WorkspaceRepository.

    Usage:
        @router.get("/workspaces/{workspace_id}/usage")
        async def usage(repo: WorkspaceRepoDep):
            ...
    """
    yield WorkspaceRepository(session)


async def get_webhook_event_repository(
    session: SessionDep,
) -> AsyncGenerator[WebhookEventRepository, None]:
    """Dependency provider for WebhookEventRepository."""
    yield WebhookEventRepository(session)


# Type aliases for repository dependencies
WorkspaceRepoDep = Annotated[
    WorkspaceRepository,
    Depends(get_workspace_repository)
]
WebhookEventRepoDep = Annotated[
    WebhookEventRepository,
    Depends(get_webhook_event_repository)
]
