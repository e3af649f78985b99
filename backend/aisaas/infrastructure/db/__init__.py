"""
Database Infrastructure Package for the AI SaaS backend

Exports database utilities and repository dependencies.
"""

from aisaas.infrastructure.db.database import (
    DatabaseManager,
    SessionFactory,
    get_db_manager,
    get_session,
    get_session_context,
    session_context_from,
    init_db,
    close_db,
)

from aisaas.infrastructure.db.dependencies import (
    SessionDep,
    get_workspace_repository,
    get_webhook_event_repository,
    WorkspaceRepoDep,
    WebhookEventRepoDep,
)


__all__ = [
    # Database management
    "DatabaseManager",
    "SessionFactory",
    "get_db_manager",
    "get_session",
    "get_session_context",
    "session_context_from",
    "init_db",
    "close_db",
    # Dependencies
    "SessionDep",
    "get_workspace_repository",
    "get_webhook_event_repository",
    "WorkspaceRepoDep",
    "WebhookEventRepoDep",
]
