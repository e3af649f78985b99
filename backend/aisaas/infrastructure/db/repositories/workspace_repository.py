"""
Workspace Repository

Membership reads used for entitlement resolution and workspace usage.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from aisaas.infrastructure.db.models.workspace import (
    WorkspaceModel,
    WorkspaceMemberModel,
)
from aisaas.infrastructure.db.repositories.base_repository import BaseRepository


class WorkspaceRepository(BaseRepository[WorkspaceModel]):
    """Repository for workspaces and their members."""

    def __init__(self, session: AsyncSession):
        super().__init__(WorkspaceModel, session)

    async def get_workspace_ids_for_user(self, user_id: str) -> List[str]:
        """IDs of every workspace the user is a member of."""
        stmt = select(WorkspaceMemberModel.workspace_id).where(
            WorkspaceMemberModel.user_id == user_id
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_member_ids(self, workspace_id: str) -> List[str]:
        """User IDs of all members of a workspace."""
        stmt = select(WorkspaceMemberModel.user_id).where(
            WorkspaceMemberModel.workspace_id == workspace_id
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_membership(
        self,
        workspace_id: str,
        user_id: str,
    ) -> Optional[WorkspaceMemberModel]:
        return await self._session.get(WorkspaceMemberModel, (workspace_id, user_id))

    async def set_plan_display(self, workspace_id: str, display_name: str) -> None:
        """Update the denormalized plan label shown in the UI."""
        stmt = (
            update(WorkspaceModel)
            .where(WorkspaceModel.id == workspace_id)
            .values(plan=display_name, updated_at=datetime.now(timezone.utc))
        )
        await self._session.execute(stmt)
