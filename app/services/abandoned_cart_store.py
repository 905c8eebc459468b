"""
Abandoned Cart Store

Persistence for abandoned-cart records, keyed by cart id and by recovery
token. Every method returns a ServiceResult; database errors roll the session
back and surface as PERSISTENCE failures.

Status changes are single conditional UPDATEs so that overlapping job runs and
repeated recovery clicks never move a recovered/expired cart backwards.
"""
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.abandoned_cart import AbandonedCart, AbandonedCartStatus
from app.utils.helpers import mask_token, round_money, utcnow
from app.utils.logger import log
from app.utils.result import ErrorType, ServiceResult

REFRESHABLE_FIELDS = frozenset({
    "email", "items", "subtotal", "total", "abandoned_at",
    "customer_id", "session_id", "ip_address", "user_agent",
})


def generate_recovery_token() -> str:
    """64 hex chars, unguessable"""
    return secrets.token_hex(32)


class AbandonedCartStore:
    """Repository for AbandonedCart rows"""

    def __init__(self, db: Session):
        self.db = db

    def _persistence_failure(self, action: str, error: Exception) -> ServiceResult:
        self.db.rollback()
        log.error(f"Abandoned cart store: {action} failed: {error}")
        return ServiceResult.fail(ErrorType.PERSISTENCE, f"Failed to {action}")

    def create(self, data: Dict[str, Any]) -> ServiceResult:
        """Insert a new record in status 'abandoned' with zero reminders"""
        if not data.get("cart_id"):
            return ServiceResult.fail(ErrorType.VALIDATION, "Cart id is required")
        if not data.get("email"):
            return ServiceResult.fail(ErrorType.VALIDATION, "Email is required")

        try:
            cart = AbandonedCart(
                cart_id=data["cart_id"],
                customer_id=data.get("customer_id"),
                session_id=data.get("session_id"),
                email=data["email"],
                items=list(data.get("items") or []),
                subtotal=round_money(data.get("subtotal", 0)),
                total=round_money(data.get("total", data.get("subtotal", 0))),
                currency=data.get("currency") or "SEK",
                recovery_token=data.get("recovery_token") or generate_recovery_token(),
                abandoned_at=data.get("abandoned_at") or utcnow(),
                reminder_count=0,
                status=AbandonedCartStatus.ABANDONED,
                ip_address=data.get("ip_address"),
                user_agent=data.get("user_agent"),
            )
            self.db.add(cart)
            self.db.commit()
            self.db.refresh(cart)
        except SQLAlchemyError as e:
            return self._persistence_failure("create abandoned cart", e)

        log.info(f"Abandoned cart recorded: cart={cart.cart_id} id={cart.id}")
        return ServiceResult.ok(cart)

    def update(self, cart_record_id: str, **fields) -> ServiceResult:
        """Refresh the contents of a record that is still awaiting recovery"""
        rejected = sorted(set(fields) - REFRESHABLE_FIELDS)
        if rejected:
            return ServiceResult.fail(
                ErrorType.VALIDATION,
                f"Fields cannot be updated: {', '.join(rejected)}"
            )

        try:
            cart = self.db.query(AbandonedCart).filter(AbandonedCart.id == cart_record_id).first()
            if cart is None:
                return ServiceResult.fail(ErrorType.NOT_FOUND, f"Abandoned cart not found: {cart_record_id}")
            if cart.status in AbandonedCartStatus.TERMINAL:
                return ServiceResult.fail(
                    ErrorType.VALIDATION,
                    f"Abandoned cart {cart_record_id} is already {cart.status}"
                )

            for name, value in fields.items():
                if name in ("subtotal", "total"):
                    value = round_money(value)
                setattr(cart, name, value)

            self.db.commit()
            self.db.refresh(cart)
        except SQLAlchemyError as e:
            return self._persistence_failure("update abandoned cart", e)

        return ServiceResult.ok(cart)

    def find_by_cart_id(self, cart_id: str, status: Optional[str] = None) -> ServiceResult:
        try:
            query = self.db.query(AbandonedCart).filter(AbandonedCart.cart_id == cart_id)
            if status:
                query = query.filter(AbandonedCart.status == status)
            cart = query.first()
        except SQLAlchemyError as e:
            return self._persistence_failure("look up abandoned cart", e)

        if cart is None:
            return ServiceResult.fail(ErrorType.NOT_FOUND, f"No abandoned cart for cart {cart_id}")
        return ServiceResult.ok(cart)

    def find_by_recovery_token(self, token: str) -> ServiceResult:
        """
        Look up a cart that can still be recovered.

        Unknown, recovered and expired tokens all get the same failure.
        """
        try:
            cart = (
                self.db.query(AbandonedCart)
                .filter(
                    AbandonedCart.recovery_token == token,
                    AbandonedCart.status.in_(AbandonedCartStatus.ACTIVE),
                )
                .first()
            )
        except SQLAlchemyError as e:
            return self._persistence_failure("look up recovery token", e)

        if cart is None:
            log.info(f"Recovery token not usable: {mask_token(token)}")
            return ServiceResult.fail(ErrorType.NOT_FOUND_OR_EXPIRED, "Cart not found or expired")
        return ServiceResult.ok(cart)

    def find_for_reminder(
        self,
        hours_abandoned: float,
        max_reminders: int,
        cooldown_hours: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        """
        Carts due a reminder: still 'abandoned', idle for at least
        hours_abandoned, under the reminder cap, and outside the cooldown
        since the previous reminder.
        """
        now = now or utcnow()
        cutoff = now - timedelta(hours=hours_abandoned)
        cooldown_cutoff = now - timedelta(
            hours=cooldown_hours if cooldown_hours is not None else hours_abandoned
        )

        try:
            carts = (
                self.db.query(AbandonedCart)
                .filter(
                    and_(
                        AbandonedCart.status == AbandonedCartStatus.ABANDONED,
                        AbandonedCart.abandoned_at < cutoff,
                        AbandonedCart.reminder_count < max_reminders,
                        or_(
                            AbandonedCart.reminded_at.is_(None),
                            AbandonedCart.reminded_at < cooldown_cutoff,
                        ),
                    )
                )
                .order_by(AbandonedCart.abandoned_at.asc())
                .all()
            )
        except SQLAlchemyError as e:
            return self._persistence_failure("query reminder candidates", e)

        return ServiceResult.ok(carts)

    def mark_reminded(self, cart_record_id: str, new_reminder_count: int) -> ServiceResult:
        """Record a sent reminder. Last writer wins on reminder_count."""
        try:
            updated = (
                self.db.query(AbandonedCart)
                .filter(
                    AbandonedCart.id == cart_record_id,
                    AbandonedCart.status.in_(AbandonedCartStatus.ACTIVE),
                )
                .update(
                    {
                        AbandonedCart.reminded_at: utcnow(),
                        AbandonedCart.reminder_count: new_reminder_count,
                        AbandonedCart.status: AbandonedCartStatus.REMINDED,
                        AbandonedCart.updated_at: utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            self.db.commit()

            if updated == 0:
                exists = (
                    self.db.query(AbandonedCart.id)
                    .filter(AbandonedCart.id == cart_record_id)
                    .first()
                )
                if exists is None:
                    return ServiceResult.fail(ErrorType.NOT_FOUND, f"Abandoned cart not found: {cart_record_id}")
                log.info(f"Cart {cart_record_id} already closed, reminder not recorded")
        except SQLAlchemyError as e:
            return self._persistence_failure("mark cart reminded", e)

        return ServiceResult.ok({"updated": updated})

    def mark_recovered(self, token: str, order_id: str) -> ServiceResult:
        """
        Close the cart as recovered by order_id.

        Safe to repeat: a second call matches no rows and keeps the first order id.
        """
        try:
            now = utcnow()
            updated = (
                self.db.query(AbandonedCart)
                .filter(
                    AbandonedCart.recovery_token == token,
                    AbandonedCart.status.in_(AbandonedCartStatus.ACTIVE),
                )
                .update(
                    {
                        AbandonedCart.status: AbandonedCartStatus.RECOVERED,
                        AbandonedCart.recovered_at: now,
                        AbandonedCart.recovery_order_id: order_id,
                        AbandonedCart.updated_at: now,
                    },
                    synchronize_session=False,
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            return self._persistence_failure("mark cart recovered", e)

        if updated:
            log.info(f"Cart recovered via token {mask_token(token)} -> order {order_id}")
        return ServiceResult.ok({"updated": updated})

    def mark_expired(self, cart_record_id: str) -> ServiceResult:
        try:
            updated = (
                self.db.query(AbandonedCart)
                .filter(
                    AbandonedCart.id == cart_record_id,
                    AbandonedCart.status.in_(AbandonedCartStatus.ACTIVE),
                )
                .update(
                    {
                        AbandonedCart.status: AbandonedCartStatus.EXPIRED,
                        AbandonedCart.updated_at: utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            return self._persistence_failure("mark cart expired", e)

        return ServiceResult.ok({"updated": updated})

    def expire_older_than(self, max_age_days: int, now: Optional[datetime] = None) -> ServiceResult:
        """Expire every open cart abandoned more than max_age_days ago"""
        cutoff = (now or utcnow()) - timedelta(days=max_age_days)
        try:
            expired = (
                self.db.query(AbandonedCart)
                .filter(
                    AbandonedCart.status.in_(AbandonedCartStatus.ACTIVE),
                    AbandonedCart.abandoned_at < cutoff,
                )
                .update(
                    {
                        AbandonedCart.status: AbandonedCartStatus.EXPIRED,
                        AbandonedCart.updated_at: utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            return self._persistence_failure("expire stale carts", e)

        if expired:
            log.info(f"Expired {expired} abandoned carts older than {max_age_days} days")
        return ServiceResult.ok(expired)
