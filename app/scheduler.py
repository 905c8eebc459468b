"""
Scheduler for abandoned-cart background jobs

Uses APScheduler to send reminder e-mails and expire stale carts.
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from zoneinfo import ZoneInfo
import asyncio

from app.models.base import SessionLocal
from app.services.abandoned_cart_store import AbandonedCartStore
from app.services.email_service import EmailService
from app.services.product_service import ProductService
from app.services.reminder_job import AbandonedCartReminderJob, expire_stale_carts
from app.config import get_settings
from app.utils.logger import log

STOCKHOLM_TZ = ZoneInfo("Europe/Stockholm")

settings = get_settings()
scheduler = AsyncIOScheduler()


# Job Functions

async def send_abandoned_cart_reminders() -> dict:
    """Send recovery e-mails for carts that are due a reminder"""
    db = SessionLocal()
    try:
        job = AbandonedCartReminderJob(
            store=AbandonedCartStore(db),
            email_sender=EmailService(),
            product_lookup=ProductService(db),
        )
        result = await job.run(
            hours_abandoned=settings.abandoned_cart_hours,
            max_reminders=settings.abandoned_cart_max_reminders,
            cooldown_hours=settings.abandoned_cart_cooldown_hours,
        )

        if not result.success:
            log.error(f"Abandoned cart reminder job failed: {result.error}")
            return {'success': False, 'error': result.error}

        return result.data.to_response()

    except Exception as e:
        log.exception(f"Abandoned cart reminder job error: {e}")
        return {'success': False, 'error': str(e)}

    finally:
        db.close()


async def expire_abandoned_carts() -> dict:
    """Expire carts older than the recovery window (daily)"""
    db = SessionLocal()
    try:
        result = expire_stale_carts(AbandonedCartStore(db), settings.recovery_max_age_days)
        if not result.success:
            log.error(f"Abandoned cart expiry failed: {result.error}")
            return {'success': False, 'error': result.error}

        log.info(f"Abandoned cart expiry completed: {result.data} carts expired")
        return {'success': True, 'expired': result.data}

    except Exception as e:
        log.exception(f"Abandoned cart expiry error: {e}")
        return {'success': False, 'error': str(e)}

    finally:
        db.close()


JOBS = {
    'abandoned_cart_reminders': send_abandoned_cart_reminders,
    'expire_abandoned_carts': expire_abandoned_carts,
}


def setup_scheduler():
    """
    Register background jobs

    Schedule:
    - Cart reminders:   Every reminder_interval_minutes (default hourly)
    - Cart expiry:      Daily 3:15am Stockholm time
    """

    # ── Abandoned cart reminders ─────────────────────────
    scheduler.add_job(
        send_abandoned_cart_reminders,
        trigger=IntervalTrigger(minutes=settings.reminder_interval_minutes),
        id='abandoned_cart_reminders',
        name='Abandoned Cart Reminder E-mails',
        replace_existing=True,
        max_instances=1
    )

    # ── Abandoned cart expiry ────────────────────────────
    scheduler.add_job(
        expire_abandoned_carts,
        trigger=CronTrigger(hour=3, minute=15, timezone=STOCKHOLM_TZ),
        id='expire_abandoned_carts',
        name='Expire Stale Abandoned Carts',
        replace_existing=True,
        max_instances=1
    )


def start_scheduler():
    """Start the scheduler"""
    setup_scheduler()
    scheduler.start()
    log.info("Scheduler started")


def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        log.info("Scheduler stopped")


def run_job_now(job_name: str) -> dict:
    """
    Manually run a background job outside the scheduler

    Args:
        job_name: abandoned_cart_reminders or expire_abandoned_carts

    Returns:
        Dict with job results
    """
    if job_name not in JOBS:
        return {
            'success': False,
            'error': f'Unknown job: {job_name}. Valid options: {", ".join(JOBS.keys())}'
        }

    log.info(f"Manually triggering {job_name}...")
    return asyncio.run(JOBS[job_name]())


def get_scheduled_jobs() -> list:
    """
    Get list of all scheduled jobs

    Returns:
        List of job info dicts
    """
    jobs = []

    for job in scheduler.get_jobs():
        next_run = getattr(job, 'next_run_time', None)

        jobs.append({
            'id': job.id,
            'name': job.name,
            'next_run': next_run.isoformat() if next_run else None,
            'trigger': str(job.trigger)
        })

    return jobs


# CLI for manual runs

if __name__ == "__main__":
    import sys

    if len(sys.argv) < 3 or sys.argv[1] != "run":
        print("Usage: python -m app.scheduler run <job_name>")
        print("\nJobs:")
        print("  " + ", ".join(JOBS.keys()))
        sys.exit(1)

    result = run_job_now(sys.argv[2])

    if result.get('success'):
        print(f"✓ {result}")
    else:
        print(f"✗ Error: {result.get('error')}")
        sys.exit(1)
