"""
Abandoned Cart Model

Tracks carts that went idle before checkout so recovery e-mails can be sent.
Rows are never deleted; recovered and expired carts stay for analytics.
"""
import uuid
from sqlalchemy import Column, Integer, String, DateTime, JSON, Numeric, Text
from app.models.base import Base
from app.utils.helpers import utcnow


class AbandonedCartStatus:
    ABANDONED = "abandoned"
    REMINDED = "reminded"
    RECOVERED = "recovered"
    EXPIRED = "expired"

    # A recovery token is only usable while the cart is in one of these
    ACTIVE = (ABANDONED, REMINDED)
    TERMINAL = (RECOVERED, EXPIRED)


class AbandonedCart(Base):
    """
    An idle cart awaiting recovery.

    Lifecycle: abandoned -> reminded -> recovered | expired,
    or abandoned -> recovered | expired directly.
    """
    __tablename__ = "abandoned_carts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Live cart reference
    cart_id = Column(String(255), unique=True, index=True, nullable=False)
    customer_id = Column(String(64), index=True, nullable=True)
    session_id = Column(String(255), nullable=True)

    # Recovery is e-mail driven, so an address is required
    email = Column(String(255), index=True, nullable=False)

    # Contents: [{product_id, quantity, price}]
    items = Column(JSON, nullable=False, default=list)
    subtotal = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), default="SEK")

    # Sole external handle, sent in the recovery link
    recovery_token = Column(String(255), unique=True, index=True, nullable=False)

    # Lifecycle
    abandoned_at = Column(DateTime, index=True, nullable=False)
    reminded_at = Column(DateTime, index=True, nullable=True)
    recovered_at = Column(DateTime, nullable=True)
    recovery_order_id = Column(String(64), nullable=True)
    reminder_count = Column(Integer, default=0, nullable=False)
    status = Column(String(20), index=True, default=AbandonedCartStatus.ABANDONED, nullable=False)

    # Audit only
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "cart_id": self.cart_id,
            "customer_id": self.customer_id,
            "email": self.email,
            "items": self.items or [],
            "subtotal": float(self.subtotal) if self.subtotal is not None else None,
            "total": float(self.total) if self.total is not None else None,
            "currency": self.currency,
            "status": self.status,
            "reminder_count": self.reminder_count,
            "abandoned_at": self.abandoned_at.isoformat() if self.abandoned_at else None,
            "reminded_at": self.reminded_at.isoformat() if self.reminded_at else None,
            "recovered_at": self.recovered_at.isoformat() if self.recovered_at else None,
            "recovery_order_id": self.recovery_order_id,
        }
