"""
Usage quota and entitlement API.

Serves plan and usage reads for signed-in users, workspace usage for
members, operator endpoints behind the admin key, and the Polar webhook
that keeps subscriptions and quotas in step with billing.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aisaas.config.settings import settings
from aisaas.domain.plans import PlanName
from aisaas.infrastructure.exceptions import (
    AISaaSError,
    ValidationError,
    NotFoundError,
    QuotaExceededError,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _warn_on_missing_billing_config() -> None:
    """Entitlements degrade to free when these are absent; say so at boot."""
    if not settings.polar_webhook_secret:
        logger.warning("POLAR_WEBHOOK_SECRET not set, every Polar webhook will get a 500")

    mapped = set(settings.product_plan_map.values())
    unmapped = [plan.value for plan in PlanName if plan.value not in mapped]
    if unmapped:
        logger.warning(f"No Polar product id configured for plans: {', '.join(unmapped)}")

    if not settings.auth_jwt_secret:
        logger.warning("AUTH_JWT_SECRET not set, authenticated endpoints will answer 503")
    if not settings.resend_api_key:
        logger.info("RESEND_API_KEY not set, quota and billing e-mails are disabled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Quota API starting ({settings.environment})")
    _warn_on_missing_billing_config()

    if settings.database_url:
        try:
            from aisaas.infrastructure.db.database import init_db
            await init_db()
        except Exception as e:
            logger.warning(f"Database engine not initialized: {e}")

    yield

    if settings.database_url:
        try:
            from aisaas.infrastructure.db.database import close_db
            await close_db()
        except Exception as e:
            logger.warning(f"Database engine shutdown error: {e}")

    logger.info("Quota API stopped")


app = FastAPI(
    title="AI SaaS Backend",
    description="Usage metering, quotas and plan entitlements for a multi-tenant AI SaaS",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content=exc.to_dict())


@app.exception_handler(QuotaExceededError)
async def quota_exceeded_handler(request: Request, exc: QuotaExceededError):
    """Denied metered action: remaining is 0, details carry the reset date."""
    return JSONResponse(status_code=429, content=exc.to_dict())


@app.exception_handler(AISaaSError)
async def general_error_handler(request: Request, exc: AISaaSError):
    """Database and configuration failures."""
    logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content=exc.to_dict())


# ============================================================================
# Health
# ============================================================================

@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "aisaas-backend"}


@app.get("/")
async def root():
    return {
        "message": "AI SaaS usage and entitlement API",
        "version": "1.0.0",
        "plans": [plan.value for plan in PlanName],
        "docs": "/docs",
    }


# ============================================================================
# Routers
# ============================================================================

from aisaas.api.routes import admin, billing, webhooks, workspaces

app.include_router(billing.router)
app.include_router(workspaces.router)
app.include_router(admin.router)
app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])
