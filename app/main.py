import logging

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.api.admin_users import router as admin_users_router
from app.api.auth_routes import router as auth_router
from app.api.contacts import router as contacts_router
from app.api.engagement import dashboard_router
from app.api.engagement import router as engagement_router
from app.api.messages import router as messages_router
from app.api.ops import router as ops_router
from app.api.users import router as users_router
from app.api.vendor import router as vendor_router
from app.api.verify import router as verify_router
from app.api.webhooks import router as webhooks_router
from app.core.config import settings
from app.db.deps import get_db
from app.middleware.correlation_id import CorrelationIdMiddleware
from app.middleware.rate_limit import RateLimitMiddleware

logger = logging.getLogger(__name__)

WEAK_JWT_SECRETS = {"secret", "changeme", "change-me", "dev", "test", "jwt_secret"}
MIN_PRODUCTION_JWT_SECRET_LENGTH = 32

app = FastAPI(title="Vendor Engagement Bot")

# Rate limit login, OTP and ops endpoints
app.add_middleware(
    RateLimitMiddleware,
    rate_limited_paths=["/api/auth", "/api/verify", "/admin"],
)
# Added last so it wraps everything (rate-limited responses carry the ID too)
app.add_middleware(CorrelationIdMiddleware)


def validate_settings() -> list[str]:
    """Return configuration errors that must stop startup."""
    required_settings = [
        "database_url",
        "whatsapp_verify_token",
        "whatsapp_access_token",
        "whatsapp_phone_number_id",
        "jwt_secret",
    ]
    errors = [
        f"Missing required environment variable: {key.upper()}"
        for key in required_settings
        if not getattr(settings, key, None)
    ]

    if settings.app_env == "production":
        if not settings.admin_api_key:
            errors.append(
                "ADMIN_API_KEY is required in production. "
                "Set ADMIN_API_KEY environment variable with a strong random key."
            )
        if not settings.whatsapp_app_secret:
            errors.append(
                "WHATSAPP_APP_SECRET is required in production for webhook signature verification. "
                "Set WHATSAPP_APP_SECRET environment variable with your Meta App Secret."
            )
        if (
            settings.jwt_secret.lower() in WEAK_JWT_SECRETS
            or len(settings.jwt_secret) < MIN_PRODUCTION_JWT_SECRET_LENGTH
        ):
            errors.append(
                f"JWT_SECRET must be a random value of at least {MIN_PRODUCTION_JWT_SECRET_LENGTH} "
                "characters in production."
            )
    return errors


@app.on_event("startup")
async def startup_event():
    """Run startup checks and start the in-process scheduler if enabled."""
    from app.services.messaging.template_check import startup_check_templates

    errors = validate_settings()
    if errors:
        error_message = (
            "Configuration validation failed:\n\n"
            + "\n".join(f"  - {error}" for error in errors)
            + "\n\nThe application cannot start with these missing or invalid settings."
        )
        logger.error(error_message)
        raise RuntimeError(error_message)

    logger.info(
        "Startup: Configuration loaded - "
        f"Environment: {settings.app_env}, "
        f"Timezone: {settings.timezone}, "
        f"WhatsApp dry-run: {settings.whatsapp_dry_run}, "
        f"Twilio configured: {bool(settings.twilio_account_sid)}, "
        f"Scheduler: {settings.scheduler_enabled}"
    )

    template_status = startup_check_templates()
    logger.info(
        f"Startup: Template check completed - "
        f"{len(template_status['templates_configured'])} templates configured"
    )

    if settings.scheduler_enabled:
        from app.services.scheduler import start_scheduler

        start_scheduler()


@app.on_event("shutdown")
async def shutdown_event():
    from app.services.scheduler import shutdown_scheduler

    shutdown_scheduler()


@app.get("/health")
def health():
    """
    Health check endpoint with template and feature flag visibility.

    Returns 200 immediately - used for basic health checks.
    """
    from app.services.messaging.template_check import REQUIRED_TEMPLATES

    return {
        "ok": True,
        "templates": REQUIRED_TEMPLATES,
        "features": {
            "scheduler_enabled": settings.scheduler_enabled,
            "location_reminder_enabled": settings.location_reminder_enabled,
            "support_reminder_enabled": settings.support_reminder_enabled,
            "announcement_configured": bool(settings.announcement_template),
            "weekly_campaign_configured": bool(settings.weekly_campaign_template),
            "whatsapp_dry_run": settings.whatsapp_dry_run,
            "twilio_configured": bool(settings.twilio_account_sid and settings.twilio_auth_token),
        },
    }


@app.get("/ready")
def ready(db: Session = Depends(get_db)):
    """
    Readiness check endpoint - verifies database connectivity.

    Returns 200 if database is accessible, 503 if not.
    """
    try:
        db.execute(text("SELECT 1"))
        return {"ok": True, "database": "connected"}
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"ok": False, "database": "disconnected", "error": str(e)},
        )


app.include_router(webhooks_router, prefix="/webhooks", tags=["webhooks"])
app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(admin_users_router, prefix="/api/admin/users", tags=["admin-users"])
app.include_router(users_router, prefix="/api/users", tags=["users"])
app.include_router(vendor_router, prefix="/api/vendor", tags=["vendor"])
app.include_router(contacts_router, prefix="/api/contacts", tags=["contacts"])
app.include_router(messages_router, prefix="/api/messages", tags=["messages"])
app.include_router(engagement_router, prefix="/api/webhook", tags=["engagement"])
app.include_router(dashboard_router, prefix="/api", tags=["engagement"])
app.include_router(verify_router, prefix="/api/verify", tags=["verify"])
app.include_router(ops_router, prefix="/admin", tags=["ops"])
