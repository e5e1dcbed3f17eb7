"""
Health check and status endpoints
"""

from datetime import datetime
from fastapi import APIRouter

from dentalhub import __version__
from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger
from dentalhub.db import get_database
from dentalhub.services.cache import RedisClient

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint
    """
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - verifies the service is ready to handle requests
    """
    checks = {
        "database": get_database().is_connected(),
        "redis": await RedisClient().health_check(),
        "supabase": bool(settings.supabase_url and settings.supabase_jwt_secret),
        "sikka": bool(settings.sikka_app_id and settings.sikka_app_key),
        "retell": bool(settings.retell_api_key),
        "openai": bool(settings.openai_api_key),
    }

    all_ready = all(checks.values())

    return {
        "status": "ready" if all_ready else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": checks
    }


@router.get("/info")
async def service_info():
    """
    Get service information and configuration (non-sensitive)
    """
    return {
        "service": "DentalHub API",
        "version": __version__,
        "environment": settings.environment,
        "api_base_url": settings.api_base_url,
        "database_type": settings.database_type,
        "openai_model": settings.openai_model,
        "integrations": {
            "sikka": bool(settings.sikka_app_id),
            "retell": bool(settings.retell_api_key),
            "beehiiv": bool(settings.beehiiv_api_key),
            "instantly": bool(settings.instantly_api_key),
            "twilio": bool(settings.twilio_account_sid),
        }
    }
