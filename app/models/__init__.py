"""Database models for the Essence storefront"""

from app.models.product import Product

from app.models.abandoned_cart import (
    AbandonedCart,
    AbandonedCartStatus
)

__all__ = [
    "Product",
    "AbandonedCart",
    "AbandonedCartStatus",
]
