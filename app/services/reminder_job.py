"""
Abandoned Cart Reminder Job

Finds carts due a reminder, e-mails each customer a recovery link and records
the reminder. Runs from the scheduler and from the cron endpoint.

One cart failing (lookup, e-mail, bookkeeping) never stops the others. Failed
sends are not retried within a run; the next run picks the cart up again.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.config import get_settings
from app.models.abandoned_cart import AbandonedCart
from app.services.abandoned_cart_store import AbandonedCartStore
from app.utils.logger import log
from app.utils.result import ErrorType, ServiceResult

REMINDER_LOCALE = "sv"


@dataclass
class ReminderJobSummary:
    """Outcome of one reminder run."""
    reminders_sent: int = 0
    reminders_failed: int = 0
    total_processed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.total_processed == 0:
            return "No abandoned carts to remind"
        return f"Sent {self.reminders_sent} abandoned cart reminders"

    def to_response(self) -> Dict[str, Any]:
        response = {
            "success": True,
            "message": self.message,
            "remindersSent": self.reminders_sent,
            "remindersFailed": self.reminders_failed,
            "totalProcessed": self.total_processed,
        }
        if self.errors:
            response["errors"] = list(self.errors)
        return response


class AbandonedCartReminderJob:

    def __init__(
        self,
        store: AbandonedCartStore,
        email_sender,
        product_lookup,
        concurrency: Optional[int] = None,
    ):
        self.store = store
        self.email_sender = email_sender
        self.product_lookup = product_lookup
        self.concurrency = max(1, concurrency or get_settings().abandoned_cart_reminder_concurrency)

    async def run(
        self,
        hours_abandoned: float = 1,
        max_reminders: int = 3,
        cooldown_hours: Optional[float] = None,
    ) -> ServiceResult:
        log.info("Starting abandoned cart reminder job...")

        candidates = self.store.find_for_reminder(hours_abandoned, max_reminders, cooldown_hours)
        if not candidates.success:
            log.error(f"Failed to get abandoned carts: {candidates.error}")
            return ServiceResult.fail(
                ErrorType.PERSISTENCE,
                candidates.error or "Failed to get abandoned carts"
            )

        carts: List[AbandonedCart] = candidates.data
        summary = ReminderJobSummary(total_processed=len(carts))
        log.info(f"Found {len(carts)} abandoned carts to remind")

        if not carts:
            return ServiceResult.ok(summary)

        semaphore = asyncio.Semaphore(self.concurrency)

        async def remind_with_limit(cart: AbandonedCart):
            async with semaphore:
                await self._remind(cart, summary)

        await asyncio.gather(*(remind_with_limit(cart) for cart in carts))

        log.info(
            f"Reminder job completed. Sent: {summary.reminders_sent}, "
            f"Failed: {summary.reminders_failed}"
        )
        return ServiceResult.ok(summary)

    async def _remind(self, cart: AbandonedCart, summary: ReminderJobSummary):
        """enrich -> send -> mark, for one cart"""
        cart_id, record_id, email = cart.cart_id, cart.id, cart.email
        reminder_count = cart.reminder_count or 0

        try:
            payload = {
                "items": [self._enrich_item(item) for item in (cart.items or [])],
                "total": float(cart.total),
                "recovery_token": cart.recovery_token,
            }

            sent = await self.email_sender.send_abandoned_cart_recovery(email, payload, REMINDER_LOCALE)
            if not sent.success:
                log.error(f"Failed to send reminder to {email}: {sent.error}")
                summary.errors.append(f"Failed to send email to {email}: {sent.error}")
                summary.reminders_failed += 1
                return

            marked = self.store.mark_reminded(record_id, reminder_count + 1)
            if not marked.success:
                # E-mail already went out, still counts as sent
                log.error(f"Failed to mark cart {record_id} as reminded: {marked.error}")
                summary.errors.append(f"Failed to mark cart {record_id} as reminded: {marked.error}")

            summary.reminders_sent += 1
            log.info(f"Sent reminder to {email} (reminder #{reminder_count + 1})")

        except Exception as e:
            log.exception(f"Error processing cart {cart_id}: {e}")
            summary.errors.append(f"Error processing cart {cart_id}: {e}")
            summary.reminders_failed += 1

    def _enrich_item(self, item: Dict[str, Any]) -> Dict[str, Any]:
        product_id = item.get("product_id")
        name = f"Product {product_id}"
        try:
            result = self.product_lookup.get_product(product_id)
            if result.success and getattr(result.data, "name", None):
                name = result.data.name
        except Exception as e:
            log.warning(f"Product lookup failed for {product_id}, using fallback name: {e}")

        return {
            "name": name,
            "quantity": item.get("quantity", 0),
            "price": item.get("price", 0),
        }


def expire_stale_carts(store: AbandonedCartStore, max_age_days: Optional[int] = None) -> ServiceResult:
    """Close carts too old to recover"""
    days = max_age_days if max_age_days is not None else get_settings().recovery_max_age_days
    return store.expire_older_than(days)
