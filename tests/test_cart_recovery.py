"""
Recovery links and cart tracking.
"""
from datetime import timedelta

import pytest

from app.models.abandoned_cart import AbandonedCartStatus
from app.services.cart_abandonment_service import CartAbandonmentService
from app.services.cart_recovery_resolver import CartRecoveryResolver
from app.utils.helpers import utcnow
from app.utils.result import ErrorType, ServiceResult


@pytest.fixture
def resolver(store):
    return CartRecoveryResolver(store, max_age_days=30)


# ────────────────────────────────────────────
# RESOLVER
# ────────────────────────────────────────────

class TestRecover:

    def test_returns_cart_snapshot(self, resolver, make_cart):
        cart = make_cart(cart_id="cart-42", email="anna@example.com")
        result = resolver.recover(cart.recovery_token)

        assert result.success
        assert result.data == {
            "cart_id": "cart-42",
            "items": cart.items,
            "total": 1049.48,
            "email": "anna@example.com",
        }

    def test_viewing_does_not_consume_token(self, resolver, make_cart):
        cart = make_cart()
        resolver.recover(cart.recovery_token)
        assert cart.status == AbandonedCartStatus.ABANDONED
        assert resolver.recover(cart.recovery_token).success

    @pytest.mark.parametrize("token", [None, "", "   "])
    def test_blank_token_is_validation(self, resolver, token):
        assert resolver.recover(token).error_type == ErrorType.VALIDATION

    def test_unknown_token(self, resolver):
        result = resolver.recover("does-not-exist")
        assert result.error_type == ErrorType.INVALID_OR_EXPIRED_TOKEN

    def test_already_recovered_cart_gets_the_same_error(self, resolver, store, make_cart):
        cart = make_cart()
        store.mark_recovered(cart.recovery_token, "order-1")

        recovered = resolver.recover(cart.recovery_token)
        unknown = resolver.recover("does-not-exist")

        assert recovered.error_type == ErrorType.INVALID_OR_EXPIRED_TOKEN
        assert recovered.error == unknown.error

    def test_cart_past_recovery_window_is_expired(self, resolver, make_cart):
        cart = make_cart(abandoned_at=utcnow() - timedelta(days=31))

        result = resolver.recover(cart.recovery_token)

        assert result.error_type == ErrorType.INVALID_OR_EXPIRED_TOKEN
        assert cart.status == AbandonedCartStatus.EXPIRED

    def test_storage_failure_passes_through(self, resolver, store, monkeypatch):
        monkeypatch.setattr(
            store, "find_by_recovery_token",
            lambda token: ServiceResult.fail(ErrorType.PERSISTENCE, "Failed to look up recovery token"),
        )
        assert resolver.recover("anything").error_type == ErrorType.PERSISTENCE


class TestCompleteRecovery:

    def test_closes_cart_and_is_idempotent(self, resolver, make_cart):
        cart = make_cart()

        assert resolver.complete_recovery(cart.recovery_token, "order-1").success
        assert resolver.complete_recovery(cart.recovery_token, "order-2").success

        assert cart.status == AbandonedCartStatus.RECOVERED
        assert cart.recovery_order_id == "order-1"
        assert resolver.recover(cart.recovery_token).error_type == ErrorType.INVALID_OR_EXPIRED_TOKEN

    def test_requires_order_id(self, resolver, make_cart):
        cart = make_cart()
        assert resolver.complete_recovery(cart.recovery_token, "").error_type == ErrorType.VALIDATION


# ────────────────────────────────────────────
# TRACKING
# ────────────────────────────────────────────

ITEMS = [
    {"product_id": "p-lavender", "quantity": 2, "price": 299.99},
    {"product_id": "p-diffuser", "quantity": 1, "price": 449.50},
]


class TestTrack:

    def test_creates_record_with_computed_subtotal(self, store):
        result = CartAbandonmentService(store).track("cart-1", "anna@example.com", ITEMS)

        assert result.success
        cart = store.find_by_recovery_token(result.data["recovery_token"]).data
        assert cart.id == result.data["abandoned_cart_id"]
        assert float(cart.subtotal) == 1049.48
        assert float(cart.total) == 1049.48

    def test_explicit_total_is_kept(self, store):
        result = CartAbandonmentService(store).track("cart-1", "anna@example.com", ITEMS, total=999)
        cart = store.find_by_recovery_token(result.data["recovery_token"]).data
        assert float(cart.total) == 999.0
        assert float(cart.subtotal) == 1049.48

    def test_retracking_refreshes_and_keeps_token(self, store):
        service = CartAbandonmentService(store)
        first = service.track("cart-1", "anna@example.com", ITEMS)
        second = service.track("cart-1", "anna@example.com", ITEMS[:1])

        assert second.data == first.data
        cart = store.find_by_cart_id("cart-1").data
        assert len(cart.items) == 1
        assert float(cart.total) == 599.98

    def test_empty_cart_rejected(self, store):
        result = CartAbandonmentService(store).track("cart-1", "anna@example.com", [])
        assert result.error_type == ErrorType.VALIDATION

    def test_email_required(self, store):
        result = CartAbandonmentService(store).track("cart-1", None, ITEMS)
        assert result.error_type == ErrorType.VALIDATION

    def test_closed_cart_cannot_be_retracked(self, store):
        service = CartAbandonmentService(store)
        token = service.track("cart-1", "anna@example.com", ITEMS).data["recovery_token"]
        store.mark_recovered(token, "order-1")

        result = service.track("cart-1", "anna@example.com", ITEMS)
        assert result.error_type == ErrorType.VALIDATION
