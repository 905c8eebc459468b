"""
Cart Recovery Resolver

Turns a recovery token from an e-mail link into the cart snapshot the
storefront uses to refill the customer's cart. Viewing a cart does not consume
the token; only a placed order (complete_recovery) closes it.
"""
from datetime import datetime, timedelta
from typing import Optional

from app.config import get_settings
from app.services.abandoned_cart_store import AbandonedCartStore
from app.utils.helpers import mask_token, utcnow
from app.utils.logger import log
from app.utils.result import ErrorType, ServiceResult

INVALID_TOKEN_MESSAGE = "Invalid or expired recovery link"


class CartRecoveryResolver:

    def __init__(self, store: AbandonedCartStore, max_age_days: Optional[int] = None):
        self.store = store
        self.max_age_days = (
            max_age_days if max_age_days is not None else get_settings().recovery_max_age_days
        )

    def recover(self, token: Optional[str], now: Optional[datetime] = None) -> ServiceResult:
        if not token or not token.strip():
            return ServiceResult.fail(ErrorType.VALIDATION, "Recovery token is required")

        found = self.store.find_by_recovery_token(token.strip())
        if not found.success:
            if found.error_type == ErrorType.NOT_FOUND_OR_EXPIRED:
                return ServiceResult.fail(ErrorType.INVALID_OR_EXPIRED_TOKEN, INVALID_TOKEN_MESSAGE)
            return found

        cart = found.data
        if cart.abandoned_at < (now or utcnow()) - timedelta(days=self.max_age_days):
            log.info(f"Recovery token {mask_token(token)} is past {self.max_age_days} days, expiring cart")
            expired = self.store.mark_expired(cart.id)
            if not expired.success:
                return expired
            return ServiceResult.fail(ErrorType.INVALID_OR_EXPIRED_TOKEN, INVALID_TOKEN_MESSAGE)

        log.info(f"Cart {cart.cart_id} resolved from recovery token {mask_token(token)}")
        return ServiceResult.ok({
            "cart_id": cart.cart_id,
            "items": cart.items or [],
            "total": float(cart.total),
            "email": cart.email,
        })

    def complete_recovery(self, token: str, order_id: str) -> ServiceResult:
        """Called once an order is placed from a recovered cart. Idempotent."""
        if not token or not order_id:
            return ServiceResult.fail(ErrorType.VALIDATION, "Token and order id are required")
        return self.store.mark_recovered(token, order_id)
