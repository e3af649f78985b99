"""
Workspace Database Models

Workspaces and their memberships. Membership CRUD lives elsewhere;
entitlement resolution only reads these tables.
"""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from aisaas.domain.identity import WorkspaceRole
from aisaas.infrastructure.db.models.base import TimestampMixin, new_id, utc_now


class WorkspaceModel(TimestampMixin, table=True):
    """Maps to the 'workspaces' table."""

    __tablename__ = "workspaces"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(nullable=False, max_length=255)
    slug: str = Field(unique=True, index=True, nullable=False, max_length=100)
    owner_id: str = Field(foreign_key="users.id", index=True, nullable=False)

    # Denormalized display name of the workspace plan
    plan: str = Field(default="Free", max_length=50)


class WorkspaceMemberModel(SQLModel, table=True):
    """
    Maps to the 'workspace_members' table.

    Composite key (workspace_id, user_id); exactly one owner per workspace.
    """

    __tablename__ = "workspace_members"

    workspace_id: str = Field(foreign_key="workspaces.id", primary_key=True)
    user_id: str = Field(foreign_key="users.id", primary_key=True, index=True)
    role: str = Field(default=WorkspaceRole.MEMBER.value, max_length=20)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        nullable=False,
    )
