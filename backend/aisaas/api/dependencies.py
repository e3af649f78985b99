"""
API Dependencies

FastAPI dependency injection for authentication, role checks and quota
enforcement.

The caller's identity is resolved once here, from a verified HS256 JWT,
into an AuthenticatedUser that is passed explicitly to the services.
"""

import logging
import secrets
from typing import Callable, Optional

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from aisaas.config.settings import get_settings
from aisaas.domain.identity import (
    AuthenticatedUser,
    UserRole,
    has_role_at_least,
    parse_user_role,
)
from aisaas.domain.usage import TrackResult
from aisaas.infrastructure.exceptions import QuotaExceededError
from aisaas.infrastructure.services.usage_metering_service import (
    get_usage_metering_service,
)


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _decode_token(token: str) -> dict:
    """Verify a JWT signed with the shared HS256 secret."""
    settings = get_settings()
    options = {"require": ["exp", "sub"]}

    kwargs = {}
    if settings.auth_jwt_issuer:
        kwargs["issuer"] = settings.auth_jwt_issuer
    if settings.auth_jwt_audience:
        kwargs["audience"] = settings.auth_jwt_audience
    else:
        options["verify_aud"] = False

    return jwt.decode(
        token,
        settings.auth_jwt_secret,
        algorithms=["HS256"],
        options=options,
        **kwargs,
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedUser:
    """
    Verify the bearer token and map it to an AuthenticatedUser.

    Raises:
        HTTPException 401: token missing, expired, or invalid
        HTTPException 503: token verification not configured
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not get_settings().auth_jwt_secret:
        logger.error("AUTH_JWT_SECRET not set, cannot verify tokens")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication not configured",
        )

    try:
        payload = _decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError as e:
        logger.warning("JWT verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or unverifiable token",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
        )

    return AuthenticatedUser(user_id=str(user_id), role=parse_user_role(payload.get("role")))


def require_role(minimum: UserRole) -> Callable:
    """
    Dependency factory rejecting callers below `minimum`.

    Usage:
        @router.get("/reports", dependencies=[Depends(require_role(UserRole.EDITOR))])
    """

    async def _require_role(
        user: AuthenticatedUser = Depends(get_current_user),
    ) -> AuthenticatedUser:
        if not has_role_at_least(user.role, minimum):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {minimum.value} or higher",
            )
        return user

    return _require_role


async def verify_admin_access(
    x_admin_key: Optional[str] = Header(
        default=None,
        description="Admin API key for operational endpoints",
    ),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[AuthenticatedUser]:
    """
    Allow either the shared admin API key or an admin-role token.

    Returns:
        The admin user, or None when the API key was used
    """
    if x_admin_key is not None:
        expected_key = get_settings().admin_api_key

        if not expected_key:
            logger.error("ADMIN_API_KEY environment variable not set")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Admin authentication not configured",
            )

        # Use secrets.compare_digest for timing-attack resistance
        if not secrets.compare_digest(x_admin_key, expected_key):
            logger.warning("Invalid admin API key attempt")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid admin API key",
            )
        return None

    user = await get_current_user(credentials)
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


async def enforce_ai_quota(
    user: AuthenticatedUser = Depends(get_current_user),
) -> TrackResult:
    """
    Gate a metered AI route: count the request or raise 429.

    Usage:
        @router.post("/chat")
        async def chat(result: TrackResult = Depends(enforce_ai_quota)):
            ...
    """
    result = await get_usage_metering_service().track_and_check_ai_request(user.user_id)

    if not result.allowed:
        raise QuotaExceededError(
            limit=result.quota.limit,
            used=result.quota.used,
            reset_at=result.quota.reset_at,
        )

    return result


# =============================================================================
# Re-export DB dependencies for a single import source
# Routers should import from api.dependencies, not db.dependencies directly.
# =============================================================================
from aisaas.infrastructure.db.dependencies import (  # noqa: E402, F401
    SessionDep,
    WorkspaceRepoDep,
    WebhookEventRepoDep,
)
