"""
Plan Domain Models

Static plan catalogue and the entitlement ordering between plans.
Plan names form a total order by generosity: free < pro < startup.
"""

from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict


UNLIMITED = -1
"""Sentinel for numeric features without an upper bound."""

WILDCARD_MODEL = "*"

FREE_TIER_MODELS = ["gpt-3.5-turbo"]


class PlanName(str, Enum):
    """Subscription plans, declared from least to most generous."""
    FREE = "free"
    PRO = "pro"
    STARTUP = "startup"


PLAN_PRIORITY = {
    PlanName.FREE: 0,
    PlanName.PRO: 1,
    PlanName.STARTUP: 2,
}


class PlanFeatures(BaseModel):
    """Feature bundle granted by a plan. -1 means unlimited."""
    model_config = ConfigDict(frozen=True)

    ai_requests: int
    models: tuple[str, ...]
    api_keys: int
    storage_mb: int
    priority_support: bool
    display_name: str
    price: int  # USD per month


class PlanInfo(BaseModel):
    """Public plan description for pricing pages."""
    id: PlanName
    name: str
    price: int
    features: PlanFeatures


# =============================================================================
# Plan Configuration (Business Logic)
# =============================================================================

PLAN_FEATURES = {
    PlanName.FREE: PlanFeatures(
        ai_requests=10,  # per month
        models=tuple(FREE_TIER_MODELS),
        api_keys=1,
        storage_mb=100,
        priority_support=False,
        display_name="Free",
        price=0,
    ),
    PlanName.PRO: PlanFeatures(
        ai_requests=1000,
        models=(
            "gpt-3.5-turbo",
            "gpt-4",
            "gpt-4-turbo",
            "claude-3-5-sonnet-20241022",
        ),
        api_keys=5,
        storage_mb=10240,  # 10GB
        priority_support=True,
        display_name="Pro",
        price=19,
    ),
    PlanName.STARTUP: PlanFeatures(
        ai_requests=UNLIMITED,
        models=(WILDCARD_MODEL,),
        api_keys=UNLIMITED,
        storage_mb=UNLIMITED,
        priority_support=True,
        display_name="Startup",
        price=29,
    ),
}


def parse_plan_name(value: Optional[str]) -> Optional[PlanName]:
    """Map a stored plan string to a PlanName (case-insensitive). None if unknown."""
    if not value:
        return None
    try:
        return PlanName(value.strip().lower())
    except ValueError:
        return None


def highest_plan(plans: Iterable[PlanName]) -> PlanName:
    """Pick the most generous plan; free when nothing is given."""
    return max(plans, key=PLAN_PRIORITY.__getitem__, default=PlanName.FREE)


def get_plan_features(plan: PlanName) -> PlanFeatures:
    """Get the feature bundle for a plan."""
    return PLAN_FEATURES[plan]


def get_ai_request_limit(plan: PlanName) -> int:
    """Get the monthly AI request limit for a plan. -1 means unlimited."""
    return PLAN_FEATURES[plan].ai_requests


def get_upgrade_plan(current: PlanName) -> Optional[PlanName]:
    """Next plan up, or None when already on the highest plan."""
    ordered = sorted(PLAN_PRIORITY, key=PLAN_PRIORITY.__getitem__)
    index = ordered.index(current)
    if index + 1 < len(ordered):
        return ordered[index + 1]
    return None


def get_all_plans() -> list[PlanInfo]:
    """All plans for display, cheapest first."""
    return [
        PlanInfo(
            id=plan,
            name=features.display_name,
            price=features.price,
            features=features,
        )
        for plan, features in PLAN_FEATURES.items()
    ]


def allows_model(features: PlanFeatures, model_id: str) -> bool:
    """Check whether a feature bundle grants access to a model."""
    return WILDCARD_MODEL in features.models or model_id in features.models
