# bridge/api/health.py
"""Liveness and Prometheus scrape endpoints"""
from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from bridge.config import settings
from bridge.utils.dates import isoformat, utcnow

router = APIRouter()


@router.get("/api/health")
async def health_check():
    """Detailed health check"""
    return {
        "status": "healthy",
        "timestamp": isoformat(utcnow()),
        "environment": settings.environment,
        "mock_mode": settings.mock_mode,
        "anthropic_configured": bool(settings.anthropic_api_key),
        "r2_configured": settings.r2_configured,
        "billing_configured": bool(settings.stripe_secret_key),
    }


@router.get("/metrics", summary="Prometheus metrics scrape endpoint", tags=["metrics"])
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
