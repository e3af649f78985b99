"""
Workspace Usage Routes

Aggregated AI request usage of a workspace, visible to its members.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from aisaas.api.dependencies import WorkspaceRepoDep, get_current_user
from aisaas.domain.identity import AuthenticatedUser
from aisaas.domain.usage import WorkspaceUsage
from aisaas.infrastructure.services.usage_metering_service import (
    get_usage_metering_service,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workspaces", tags=["workspaces"])


@router.get("/{workspace_id}/usage", response_model=WorkspaceUsage)
async def get_workspace_usage(
    workspace_id: str,
    repo: WorkspaceRepoDep,
    user: AuthenticatedUser = Depends(get_current_user),
):
    """This month's AI requests of all members against the workspace plan."""
    membership = await repo.get_membership(workspace_id, user.user_id)
    if membership is None and not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workspace not found",
        )

    return await get_usage_metering_service().get_workspace_usage(workspace_id)
