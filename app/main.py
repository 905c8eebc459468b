"""
Essence Storefront backend
Main FastAPI application
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager

from app.config import get_settings
from app.utils.logger import log

# Import routers
from app.api import health, shipping, cart_recovery, cron
from app.middleware.cron_auth_middleware import CronAuthMiddleware
from app.middleware.security_middleware import SecurityMiddleware

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    log.info(f"Starting {settings.app_name} v{settings.app_version}")
    log.info(f"Environment: {settings.environment}")

    # Initialize database
    try:
        from app.models.base import init_db
        init_db()
        log.info("Database initialized")
    except Exception as e:
        log.error(f"Database initialization error: {str(e)}")

    # Start the scheduler for reminder e-mails and cart expiry
    scheduler_started = False
    if settings.enable_scheduler:
        try:
            from app.scheduler import start_scheduler
            start_scheduler()
            scheduler_started = True
        except Exception as e:
            log.error(f"Scheduler startup error: {str(e)}")
    else:
        log.info("Scheduler disabled (ENABLE_SCHEDULER=false)")

    yield

    # Shutdown
    if scheduler_started:
        from app.scheduler import stop_scheduler
        stop_scheduler()
    log.info("Shutting down application")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Storefront backend for Fortune Essence

    - Multi-carrier shipping quotes for Swedish deliveries
      (PostNord, DHL, Bring, DB Schenker, Instabee, Budbee, Instabox, Early Bird)
    - Free shipping, eco-friendly options and postal-zone pricing
    - Abandoned cart tracking, reminder e-mails and recovery links
    """,
    lifespan=lifespan
)

# CORS: the storefront calls the cart and shipping endpoints from the browser
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials="*" not in settings.cors_origin_list,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)

# Security headers, Cache-Control
app.add_middleware(SecurityMiddleware)

# Bearer secret on /api/cron/*
app.add_middleware(CronAuthMiddleware)

# Gzip compression
app.add_middleware(GZipMiddleware, minimum_size=500)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(shipping.router)
app.include_router(cart_recovery.router)
app.include_router(cron.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
