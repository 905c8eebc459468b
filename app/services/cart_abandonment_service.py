"""
Cart Abandonment Service

Records an idle cart so the reminder job can pick it up. Re-tracking a cart
that is still open refreshes its contents but keeps its recovery token, so
links in e-mails already sent stay valid.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.models.abandoned_cart import AbandonedCartStatus
from app.services.abandoned_cart_store import AbandonedCartStore
from app.utils.helpers import round_money, to_decimal, utcnow
from app.utils.logger import log
from app.utils.result import ErrorType, ServiceResult


class CartAbandonmentService:

    def __init__(self, store: AbandonedCartStore):
        self.store = store

    def track(
        self,
        cart_id: str,
        email: Optional[str],
        items: List[Dict[str, Any]],
        customer_id: Optional[str] = None,
        session_id: Optional[str] = None,
        total: Any = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> ServiceResult:
        if not cart_id:
            return ServiceResult.fail(ErrorType.VALIDATION, "Cart id is required")
        if not items:
            return ServiceResult.fail(ErrorType.VALIDATION, "Cart is empty")
        if not email:
            return ServiceResult.fail(ErrorType.VALIDATION, "Email is required for cart recovery")

        snapshot = [
            {
                "product_id": str(item["product_id"]),
                "quantity": int(item["quantity"]),
                "price": float(round_money(item.get("price", 0))),
            }
            for item in items
        ]
        subtotal = sum(
            (to_decimal(item["price"]) * item["quantity"] for item in snapshot),
            Decimal("0"),
        )
        cart_total = round_money(total if total is not None else subtotal)

        existing = self.store.find_by_cart_id(cart_id)
        if existing.success and existing.data.status in AbandonedCartStatus.TERMINAL:
            # cart_id is unique, a closed cart cannot be tracked again
            return ServiceResult.fail(
                ErrorType.VALIDATION,
                f"Cart {cart_id} is already {existing.data.status}"
            )
        if existing.success:
            result = self.store.update(
                existing.data.id,
                email=email,
                items=snapshot,
                subtotal=subtotal,
                total=cart_total,
                abandoned_at=utcnow(),
            )
        elif existing.error_type == ErrorType.NOT_FOUND:
            result = self.store.create({
                "cart_id": cart_id,
                "email": email,
                "items": snapshot,
                "subtotal": subtotal,
                "total": cart_total,
                "customer_id": customer_id,
                "session_id": session_id,
                "ip_address": ip_address,
                "user_agent": user_agent,
            })
        else:
            return existing

        if not result.success:
            return result

        cart = result.data
        log.info(f"Tracked abandoned cart {cart_id} ({len(snapshot)} lines, {cart_total} SEK)")
        return ServiceResult.ok({
            "abandoned_cart_id": cart.id,
            "recovery_token": cart.recovery_token,
        })
