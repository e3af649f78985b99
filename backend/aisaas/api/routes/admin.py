"""
Admin Routes for Quota and Billing Operations

Eager quota reset, audit trail and webhook ledger queries.
Protected by the admin API key or an admin-role token.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from aisaas.api.dependencies import WebhookEventRepoDep, verify_admin_access
from aisaas.domain.identity import AuthenticatedUser
from aisaas.domain.subscription import AuditEntry
from aisaas.domain.webhook import WebhookEventStatus
from aisaas.infrastructure.services.audit_logger import get_audit_logger
from aisaas.infrastructure.services.quota_store import get_quota_store

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
)


class QuotaResetResult(BaseModel):
    """Response from the eager quota reset endpoint."""
    success: bool
    quotas_reset: int
    message: str


class WebhookEventSummary(BaseModel):
    id: str
    source: str
    event_type: str
    status: str
    last_error: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime


@router.post("/quotas/reset-expired", response_model=QuotaResetResult)
async def reset_expired_quotas(
    admin: Optional[AuthenticatedUser] = Depends(verify_admin_access),
):
    """
    Reset every quota whose period has ended.

    Lazy resets on each request stay authoritative; this only refreshes
    dormant rows for reporting.
    """
    await get_audit_logger().log_admin_access(
        admin.user_id if admin else None,
        "quotas.reset-expired",
    )

    count = await get_quota_store().reset_expired_quotas()
    return QuotaResetResult(
        success=True,
        quotas_reset=count,
        message=f"Reset {count} expired quotas",
    )


@router.get("/audit-logs", response_model=List[AuditEntry])
async def list_audit_logs(
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    admin: Optional[AuthenticatedUser] = Depends(verify_admin_access),
):
    return await get_audit_logger().get_all_audit_logs(
        limit=limit,
        offset=offset,
        user_id=user_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/webhook-events", response_model=List[WebhookEventSummary])
async def list_webhook_events(
    repo: WebhookEventRepoDep,
    status: Optional[WebhookEventStatus] = None,
    limit: int = Query(default=50, ge=1, le=500),
    admin: Optional[AuthenticatedUser] = Depends(verify_admin_access),
):
    """Webhook ledger entries, newest first, optionally filtered by status."""
    events = await repo.list_by_status(status, limit=limit)
    return [WebhookEventSummary.model_validate(e, from_attributes=True) for e in events]
