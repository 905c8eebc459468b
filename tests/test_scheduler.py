"""
Background job registration and manual runs.
"""
from datetime import timedelta

import pytest

from app import scheduler as scheduler_module
from app.models.abandoned_cart import AbandonedCart, AbandonedCartStatus
from app.utils.helpers import utcnow


@pytest.fixture
def clean_scheduler():
    yield scheduler_module.scheduler
    scheduler_module.scheduler.remove_all_jobs()


def test_jobs_are_registered(clean_scheduler):
    scheduler_module.setup_scheduler()

    ids = sorted(job["id"] for job in scheduler_module.get_scheduled_jobs())
    assert ids == ["abandoned_cart_reminders", "expire_abandoned_carts"]


def test_unknown_job():
    result = scheduler_module.run_job_now("sync_everything")
    assert result["success"] is False
    assert "Unknown job" in result["error"]


def test_run_expiry_job_now(db, make_cart, monkeypatch):
    stale_id = make_cart(abandoned_at=utcnow() - timedelta(days=60)).id
    monkeypatch.setattr(scheduler_module, "SessionLocal", lambda: db)

    result = scheduler_module.run_job_now("expire_abandoned_carts")

    assert result == {"success": True, "expired": 1}
    # the job closes its session, so read the row back
    assert db.get(AbandonedCart, stale_id).status == AbandonedCartStatus.EXPIRED


def test_reminder_job_without_email_provider_reports_failures(db, make_cart, monkeypatch):
    make_cart()
    monkeypatch.setattr(scheduler_module, "SessionLocal", lambda: db)

    result = scheduler_module.run_job_now("abandoned_cart_reminders")

    # RESEND_API_KEY is empty under test, every send fails
    assert result["success"] is True
    assert result["remindersSent"] == 0
    assert result["remindersFailed"] == 1
    assert "Email service not configured" in result["errors"][0]
