"""
Unit tests for role parsing and role hierarchies.
"""

from aisaas.domain.identity import (
    AuthenticatedUser,
    UserRole,
    WorkspaceRole,
    has_role_at_least,
    has_workspace_role_at_least,
    parse_user_role,
)


class TestUserRoles:

    def test_parse_known_role(self):
        assert parse_user_role("ADMIN") == UserRole.ADMIN

    def test_unknown_role_defaults_to_member(self):
        assert parse_user_role("superuser") == UserRole.MEMBER
        assert parse_user_role(None) == UserRole.MEMBER

    def test_hierarchy(self):
        assert has_role_at_least(UserRole.ADMIN, UserRole.EDITOR)
        assert has_role_at_least(UserRole.EDITOR, UserRole.EDITOR)
        assert not has_role_at_least(UserRole.VIEWER, UserRole.MEMBER)

    def test_workspace_hierarchy_is_separate(self):
        assert has_workspace_role_at_least(WorkspaceRole.OWNER, WorkspaceRole.ADMIN)
        assert not has_workspace_role_at_least(WorkspaceRole.MEMBER, WorkspaceRole.ADMIN)

    def test_is_admin(self):
        assert AuthenticatedUser(user_id="u1", role=UserRole.ADMIN).is_admin
        assert not AuthenticatedUser(user_id="u1").is_admin
