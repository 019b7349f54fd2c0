# bridge/core/lifespan.py
from contextlib import asynccontextmanager

from bridge.config import settings
from bridge.utils.logging import logger


@asynccontextmanager
async def lifespan(app):
    """Run setup and teardown logic for the app lifecycle."""

    # ---------- Startup ----------
    logger.info("Application starting", extra={
        "environment": settings.environment,
        "storage_backend": settings.storage_backend,
        "llm_model": settings.llm_model,
        "max_upload_bytes": settings.max_upload_bytes,
    })

    # Warn loudly if mock mode is enabled
    if settings.mock_mode:
        logger.warning("=" * 60)
        logger.warning("MOCK MODE ENABLED - RETURNING TEST TRANSLATIONS ONLY")
        logger.warning("Set MOCK_MODE=false in .env to use the real API")
        logger.warning("=" * 60)

    missing = [
        name for name, value in (
            ("ANTHROPIC_API_KEY", settings.anthropic_api_key),
            ("CLERK_SECRET_KEY", settings.clerk_secret_key),
            ("STRIPE_SECRET_KEY", settings.stripe_secret_key),
            ("RESEND_API_KEY", settings.resend_api_key),
        )
        if not value
    ]
    if missing:
        logger.warning("Provider settings missing; dependent endpoints will fail", extra={"missing": missing})

    # yield control to the running app
    yield

    # ---------- Shutdown ----------
    logger.info("Application shutting down")
