"""
Health check and status endpoints
"""
from fastapi import APIRouter
from datetime import datetime
from app.config import get_settings
from app.models.base import check_database

settings = get_settings()

router = APIRouter()


@router.get("/health")
async def health_check():
    """Liveness plus a database ping"""
    database_ok = check_database()
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "ok" if database_ok else "unavailable",
        "timestamp": datetime.utcnow().isoformat(),
        "version": settings.app_version
    }


@router.get("/status")
async def get_status():
    """Feature flags and scheduled jobs"""
    from app.scheduler import get_scheduled_jobs

    return {
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "features": {
            "scheduler": settings.enable_scheduler,
            "email": bool(settings.resend_api_key),
            "cron_endpoints": bool(settings.cron_secret),
            "free_shipping_threshold": settings.free_shipping_threshold,
        },
        "jobs": get_scheduled_jobs(),
        "timestamp": datetime.utcnow().isoformat()
    }
