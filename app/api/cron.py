"""
Cron API

HTTP triggers for the abandoned-cart jobs, for hosts that drive scheduling
externally. Requests need `Authorization: Bearer <CRON_SECRET>`, enforced by
CronAuthMiddleware.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.base import get_db
from app.services.abandoned_cart_store import AbandonedCartStore
from app.services.email_service import EmailService
from app.services.product_service import ProductService
from app.services.reminder_job import AbandonedCartReminderJob, expire_stale_carts
from app.utils.logger import log

router = APIRouter(prefix="/api/cron", tags=["cron"])


def get_email_sender() -> EmailService:
    return EmailService()


@router.get("/abandoned-cart-reminders")
async def send_abandoned_cart_reminders(
    db: Session = Depends(get_db),
    email_sender=Depends(get_email_sender)
):
    """
    Send reminder e-mails for carts idle past the threshold

    Always 200 with a summary once candidates are loaded, even if every send
    failed; 500 only when candidates cannot be read.
    """
    settings = get_settings()
    try:
        job = AbandonedCartReminderJob(
            store=AbandonedCartStore(db),
            email_sender=email_sender,
            product_lookup=ProductService(db),
        )
        result = await job.run(
            hours_abandoned=settings.abandoned_cart_hours,
            max_reminders=settings.abandoned_cart_max_reminders,
            cooldown_hours=settings.abandoned_cart_cooldown_hours,
        )
    except Exception as e:
        log.exception(f"Unexpected error in reminder cron: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Unexpected error"}
        )

    if not result.success:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": result.error or "Failed to get abandoned carts"}
        )

    return result.data.to_response()


@router.get("/expire-abandoned-carts")
async def expire_abandoned_carts(db: Session = Depends(get_db)):
    """Expire carts older than the recovery window"""
    result = expire_stale_carts(AbandonedCartStore(db), get_settings().recovery_max_age_days)
    if not result.success:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": result.error}
        )

    return {
        "success": True,
        "expired": result.data
    }
