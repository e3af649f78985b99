"""
Usage Domain Models

Quota snapshots, usage metadata and the pure date/percentage helpers
behind monthly metering.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from aisaas.domain.plans import UNLIMITED


class ResourceType(str, Enum):
    """Kinds of metered resources."""
    AI_REQUEST = "ai_request"
    API_CALL = "api_call"
    STORAGE = "storage"


WARNING_THRESHOLDS = (100, 90, 80)
"""Quota warning thresholds, highest first."""


# =============================================================================
# Time helpers
# =============================================================================

def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from the database."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def next_reset_date(now: Optional[datetime] = None) -> datetime:
    """First instant of the calendar month after `now`, in UTC."""
    now = ensure_utc(now or utcnow())
    if now.month == 12:
        return datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)


def month_start(now: Optional[datetime] = None) -> datetime:
    """First instant of the current calendar month, in UTC."""
    now = ensure_utc(now or utcnow())
    return datetime(now.year, now.month, 1, tzinfo=timezone.utc)


def usage_percentage(used: int, limit: int) -> int:
    """Percentage of quota consumed, capped at 100."""
    if limit == UNLIMITED:
        return 0
    if limit <= 0:
        return 100
    return min(100, round(used / limit * 100))


def warning_threshold_for(percentage: int, sent: Dict[int, bool]) -> Optional[int]:
    """
    Pick the single warning to send for a percentage.

    Thresholds are checked highest first and the first one that is reached
    and not yet sent wins.
    """
    for threshold in WARNING_THRESHOLDS:
        if percentage >= threshold and not sent.get(threshold, False):
            return threshold
    return None


# =============================================================================
# Domain Entities
# =============================================================================

class UsageMetadata(BaseModel):
    """Free-form context attached to a usage log entry."""
    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    tokens: Optional[int] = None
    provider: Optional[str] = None


class UsageQuota(BaseModel):
    """Per-user monthly counter."""
    user_id: str
    ai_requests_used: int = 0
    ai_requests_limit: int
    reset_at: datetime
    warning_80_sent: bool = False
    warning_90_sent: bool = False
    warning_100_sent: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("reset_at")
    @classmethod
    def _reset_at_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def is_unlimited(self) -> bool:
        return self.ai_requests_limit == UNLIMITED

    def is_due_for_reset(self, now: Optional[datetime] = None) -> bool:
        return ensure_utc(now or utcnow()) >= ensure_utc(self.reset_at)

    def warnings_sent(self) -> Dict[int, bool]:
        return {
            80: self.warning_80_sent,
            90: self.warning_90_sent,
            100: self.warning_100_sent,
        }


class UsageLogEntry(BaseModel):
    """Append-only record of one metered action."""
    id: str
    user_id: str
    resource_type: str
    resource_id: Optional[str] = None
    quantity: int = 1
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Request/Response DTOs
# =============================================================================

class QuotaStatus(BaseModel):
    """Result of a quota check."""
    allowed: bool
    used: int
    limit: int
    remaining: int
    unlimited: bool = False
    reset_at: Optional[datetime] = None

    @classmethod
    def unlimited_status(cls) -> "QuotaStatus":
        return cls(allowed=True, used=0, limit=UNLIMITED, remaining=UNLIMITED, unlimited=True)

    @classmethod
    def from_quota(cls, quota: UsageQuota) -> "QuotaStatus":
        used = quota.ai_requests_used
        limit = quota.ai_requests_limit
        return cls(
            allowed=used < limit,
            used=used,
            limit=limit,
            remaining=max(0, limit - used),
            unlimited=False,
            reset_at=quota.reset_at,
        )


class TrackResult(BaseModel):
    """Outcome of track_and_check_ai_request."""
    allowed: bool
    quota: QuotaStatus


class QuotaResponse(BaseModel):
    """Response DTO for the quota read endpoint."""
    quota: QuotaStatus


class UsageStats(BaseModel):
    """Usage statistics over a trailing window."""
    quota: QuotaStatus
    total_requests: int
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_day: Dict[str, int] = Field(default_factory=dict)
    recent_logs: List[UsageLogEntry] = Field(default_factory=list)


class WorkspaceUsage(BaseModel):
    """AI request usage of all workspace members this month."""
    workspace_id: str
    total_ai_requests: int
    ai_requests_limit: int
    remaining_requests: int
    usage_percentage: float
    reset_at: datetime
    member_count: int
