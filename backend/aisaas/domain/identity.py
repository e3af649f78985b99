"""
Identity Domain Models

Roles and the authenticated identity handed to business logic.
The identity is resolved once at the HTTP boundary and passed explicitly.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserRole(str, Enum):
    """Application-wide roles, least to most privileged."""
    VIEWER = "viewer"
    MEMBER = "member"
    EDITOR = "editor"
    MODERATOR = "moderator"
    ADMIN = "admin"


class WorkspaceRole(str, Enum):
    """Roles inside a workspace (separate hierarchy from UserRole)."""
    VIEWER = "viewer"
    MEMBER = "member"
    ADMIN = "admin"
    OWNER = "owner"


USER_ROLE_LEVELS = {role: level for level, role in enumerate(UserRole)}
WORKSPACE_ROLE_LEVELS = {role: level for level, role in enumerate(WorkspaceRole)}


def parse_user_role(value: Optional[str]) -> UserRole:
    """Parse a role claim; anything unrecognised becomes MEMBER."""
    if value:
        try:
            return UserRole(value.strip().lower())
        except ValueError:
            pass
    return UserRole.MEMBER


def has_role_at_least(role: UserRole, minimum: UserRole) -> bool:
    return USER_ROLE_LEVELS[role] >= USER_ROLE_LEVELS[minimum]


def has_workspace_role_at_least(role: WorkspaceRole, minimum: WorkspaceRole) -> bool:
    return WORKSPACE_ROLE_LEVELS[role] >= WORKSPACE_ROLE_LEVELS[minimum]


class AuthenticatedUser(BaseModel):
    """Caller identity resolved from the session token."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole = UserRole.MEMBER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
